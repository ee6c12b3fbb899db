"""Pytest configuration and shared factories."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import pytest


# Make ``app`` importable without an editable install; it lives at the
# project root next to ``tests``.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.models import EnrichedItem  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    """Run AnyIO tests on asyncio only."""

    return "asyncio"


@pytest.fixture
def make_item() -> Callable[..., EnrichedItem]:
    """Return a factory for enriched titles with neutral defaults."""

    def _factory(item_id: int = 1, **overrides: Any) -> EnrichedItem:
        data: dict[str, Any] = {
            "id": item_id,
            "kind": "movie",
            "title": f"Title {item_id}",
            "release_date": "2020-01-01",
            "vote_average": 7.0,
            "vote_count": 100,
            "genre_ids": [],
            "popularity": 50.0,
        }
        data.update(overrides)
        return EnrichedItem.model_validate(data)

    return _factory
