"""Client-side watchlist store keyed by ``(id, kind)``."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from pydantic import TypeAdapter, ValidationError

from .models import EnrichedItem, MediaKind, SavedItem

logger = logging.getLogger(__name__)

_SAVED_LIST = TypeAdapter(list[SavedItem])


class Watchlist:
    """Ordered, de-duplicated collection of saved titles.

    Entries are immutable; toggling ``watched`` swaps in an updated copy.
    """

    def __init__(self, items: Iterable[SavedItem] | None = None) -> None:
        self._items: dict[tuple[int, str], SavedItem] = {}
        for item in items or []:
            self._items.setdefault(item.key, item)

    @property
    def items(self) -> list[SavedItem]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def add(self, item: EnrichedItem, *, now: datetime | None = None) -> SavedItem:
        """Save ``item`` unless it is already present; return the stored entry."""

        existing = self._items.get(item.key)
        if existing is not None:
            return existing
        data = item.model_dump()
        data.update(
            added_at=now or datetime.now(timezone.utc),
            watched=False,
            watched_at=None,
        )
        saved = SavedItem.model_validate(data)
        self._items[saved.key] = saved
        return saved

    def remove(self, item_id: int, kind: MediaKind) -> bool:
        return self._items.pop((item_id, kind), None) is not None

    def contains(self, item_id: int, kind: MediaKind) -> bool:
        return (item_id, kind) in self._items

    def is_watched(self, item_id: int, kind: MediaKind) -> bool:
        item = self._items.get((item_id, kind))
        return bool(item and item.watched)

    def toggle_watched(
        self, item_id: int, kind: MediaKind, *, now: datetime | None = None
    ) -> SavedItem | None:
        """Flip the watched flag, stamping or clearing ``watched_at``."""

        item = self._items.get((item_id, kind))
        if item is None:
            return None
        watched = not item.watched
        updated = item.model_copy(
            update={
                "watched": watched,
                "watched_at": (now or datetime.now(timezone.utc)) if watched else None,
            }
        )
        self._items[updated.key] = updated
        return updated

    def clear(self) -> None:
        self._items.clear()

    def stats(self) -> dict[str, int]:
        watched = sum(1 for item in self._items.values() if item.watched)
        return {
            "total": len(self._items),
            "watched": watched,
            "unwatched": len(self._items) - watched,
        }

    def to_json(self) -> str:
        return _SAVED_LIST.dump_json(self.items).decode("utf-8")

    @classmethod
    def from_json(cls, payload: str | bytes | None) -> "Watchlist":
        """Load a stored watchlist, starting empty if the payload is unreadable."""

        if not payload:
            return cls()
        try:
            items = _SAVED_LIST.validate_json(payload)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable watchlist payload: %s", exc.error_count())
            return cls()
        return cls(items)

    @classmethod
    def from_payload(cls, entries: Iterable[Any] | None) -> "Watchlist":
        """Build a watchlist from request JSON, skipping malformed entries."""

        items: list[SavedItem] = []
        for entry in entries or []:
            try:
                items.append(SavedItem.model_validate(entry))
            except ValidationError as exc:
                logger.warning("Skipping malformed watchlist entry: %s", exc.error_count())
        return cls(items)
