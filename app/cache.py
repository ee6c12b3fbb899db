"""In-memory TTL cache for upstream API responses."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping


@dataclass(slots=True)
class CacheEntry:
    value: Any
    stored_at: float
    expires_at: float


class ResponseCache:
    """Key/value store whose entries expire after a per-entry TTL."""

    def __init__(
        self,
        default_ttl: float = 300.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        now = self._clock()
        lifetime = self._default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(value=value, stored_at=now, expires_at=now + lifetime)

    def get(self, key: str) -> Any | None:
        """Return the cached value, evicting it first if it has expired."""

        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Drop every expired entry and return how many were removed."""

        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> dict[str, int]:
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if now > entry.expires_at)
        return {
            "total": len(self._entries),
            "active": len(self._entries) - expired,
            "expired": expired,
        }

    @staticmethod
    def make_key(prefix: str, params: Mapping[str, Any] | None = None) -> str:
        """Build a stable key from a prefix and request parameters."""

        pairs = "&".join(
            f"{name}={value}"
            for name, value in sorted((params or {}).items())
            if value is not None
        )
        return f"{prefix}:{pairs}"
