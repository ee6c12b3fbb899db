"""CineScope: movie and TV discovery with multi-source ratings.

Importing the package is cheap. ``app.main`` builds the FastAPI instance and
reads settings, so it is only loaded when one of its exports is accessed.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "1.0.0"
__all__ = ["app", "create_app", "get_settings", "__version__"]

_LAZY_EXPORTS = {
    "app": "app.main",
    "create_app": "app.main",
    "get_settings": "app.config",
}


def __getattr__(name: str) -> Any:
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module 'app' has no attribute {name}")
    return getattr(import_module(module_name), name)
