"""Utility helpers for parsing loosely typed provider values."""

from __future__ import annotations

import math
import re
from typing import Any, Iterable


MISSING_SENTINELS = frozenset({"", "n/a", "na", "none", "null"})
NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
YEAR_RE = re.compile(r"^\s*(\d{4})")


def clean_text(value: Any) -> str | None:
    """Return a stripped string, or ``None`` for blanks and ``"N/A"``."""

    if value is None:
        return None
    text = str(value).strip()
    if text.casefold() in MISSING_SENTINELS:
        return None
    return text


def parse_score(value: Any) -> float | None:
    """Parse a provider score such as ``"8.1/10"``, ``"87%"`` or ``7.4``.

    Returns ``None`` for anything that is missing, non-numeric or negative.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = clean_text(value)
        if text is None:
            return None
        head = text.split("/", 1)[0].replace(",", "").rstrip("%").strip()
        match = NUMBER_RE.fullmatch(head)
        if not match:
            return None
        number = float(match.group(0))
    if number != number or number < 0:
        return None
    return number


def coerce_float(value: Any, *, default: float = 0.0) -> float:
    """Return ``value`` as a float, or ``default`` when it is unusable."""

    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(number):
        return default
    return number


def coerce_int(value: Any, *, default: int | None = None) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def parse_year(value: Any) -> int | None:
    """Return the year from an ISO date string such as ``"2021-07-30"``."""

    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return None
    match = YEAR_RE.match(value)
    if not match:
        return None
    return int(match.group(1))


def split_names(value: Any) -> list[str]:
    """Split a comma separated credit list like OMDb's ``Actors`` field."""

    if isinstance(value, (list, tuple)):
        raw: Iterable[Any] = value
    else:
        text = clean_text(value)
        if text is None:
            return []
        raw = text.split(",")
    names: list[str] = []
    for entry in raw:
        name = clean_text(entry)
        if name:
            names.append(name)
    return names


def normalize_name(value: str) -> str:
    """Case and whitespace normalise a person or language name."""

    return " ".join(value.split()).casefold()
