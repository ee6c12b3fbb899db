"""Infer a taste profile from the user's saved items."""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Sequence

from .genres import genre_name
from .models import (
    EnrichedItem,
    GenreAffinity,
    RatingRange,
    UserPreferences,
    YearRange,
)
from .tuning import DEFAULT_TUNING, EngineTuning
from .utils import normalize_name


def current_utc_year() -> int:
    return datetime.now(timezone.utc).year


def top_values(values: Iterable[str], limit: int) -> list[str]:
    """Return the ``limit`` most frequent normalised values.

    Ties keep the order in which values were first seen.
    """

    counter: Counter[str] = Counter()
    for value in values:
        normalized = normalize_name(value)
        if normalized:
            counter[normalized] += 1
    return [value for value, _ in counter.most_common(limit)]


def _favorite_genres(
    items: Sequence[EnrichedItem], tuning: EngineTuning
) -> list[GenreAffinity]:
    counts: Counter[int] = Counter()
    rating_totals: dict[int, float] = {}
    for item in items:
        rating = item.effective_rating
        for genre_id in item.genre_ids:
            counts[genre_id] += 1
            rating_totals[genre_id] = rating_totals.get(genre_id, 0.0) + rating

    total = len(items)
    affinities = [
        GenreAffinity(
            genre_id=genre_id,
            name=genre_name(genre_id),
            weight=(count / total) * (rating_totals[genre_id] / count / 10.0),
        )
        for genre_id, count in counts.items()
    ]
    affinities.sort(
        key=lambda affinity: (-affinity.weight, -counts[affinity.genre_id], affinity.genre_id)
    )
    return affinities[: tuning.favorite_genre_limit]


def _rating_band(
    items: Sequence[EnrichedItem], tuning: EngineTuning
) -> tuple[float, RatingRange]:
    ratings = [item.effective_rating for item in items if item.effective_rating > 0]
    average = sum(ratings) / len(ratings) if ratings else tuning.default_average_rating
    band = RatingRange(
        min=max(average - tuning.rating_band_offset, 0.0),
        max=tuning.rating_band_max,
    )
    return average, band


def _year_band(
    items: Sequence[EnrichedItem], current_year: int, tuning: EngineTuning
) -> YearRange:
    years = sorted(
        {
            year
            for item in items
            if (year := item.release_year) is not None and year > tuning.min_valid_year
        },
        reverse=True,
    )
    if not years:
        return YearRange(min=current_year - tuning.fallback_year_span, max=current_year)
    recent = years[: math.ceil(len(years) * tuning.recent_year_share)]
    return YearRange(min=min(recent), max=current_year)


def _languages(item: EnrichedItem) -> list[str]:
    if item.original_language:
        return [item.original_language]
    return item.languages[:1]


def build_preferences(
    saved_items: Sequence[EnrichedItem],
    *,
    current_year: int | None = None,
    tuning: EngineTuning = DEFAULT_TUNING,
) -> UserPreferences | None:
    """Derive :class:`UserPreferences` from the saved-items list.

    Returns ``None`` for an empty list: that is the cold-start signal, not an
    error. The result depends only on the arguments, so it is safe to call on
    every watchlist change.
    """

    items = list(saved_items or [])
    if not items:
        return None
    year = current_year if current_year is not None else current_utc_year()

    average, rating_band = _rating_band(items, tuning)

    languages = [language for item in items for language in _languages(item)]
    actors = [
        actor for item in items for actor in item.actors[: tuning.actors_per_item]
    ]
    directors = [item.director for item in items if item.director]

    return UserPreferences(
        favorite_genres=_favorite_genres(items, tuning),
        preferred_rating_range=rating_band,
        preferred_year_range=_year_band(items, year, tuning),
        average_rating=average,
        total_watched=len(items),
        preferred_languages=top_values(languages, tuning.language_limit),
        actor_preferences=top_values(actors, tuning.actor_limit),
        director_preferences=top_values(directors, tuning.director_limit),
    )
