"""Console entry point for the CineScope API server."""

from __future__ import annotations

from app import __version__

from .cli import build_parser, main

__all__ = ["__version__", "build_parser", "main"]
