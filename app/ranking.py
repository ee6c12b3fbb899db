"""Rank candidate titles into recommendations."""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping, Sequence, Union

from pydantic import ValidationError

from .models import (
    RECOMMENDATION_CATEGORIES,
    EnrichedItem,
    Recommendation,
    RecommendationPage,
    RecommendationReason,
)
from .scoring import categorize, popularity_score, score
from .taste_profile import build_preferences
from .tuning import DEFAULT_TUNING, EngineTuning

logger = logging.getLogger(__name__)

CandidateLike = Union[EnrichedItem, Mapping[str, Any]]


def coerce_candidates(candidates: Iterable[CandidateLike] | None) -> list[EnrichedItem]:
    """Validate raw candidate records, skipping ones that cannot be identified.

    Missing or malformed genres, ratings, counts or dates fall back to
    neutral defaults on the model, so only records without a usable id or
    media kind are dropped.
    """

    items: list[EnrichedItem] = []
    for candidate in candidates or []:
        if isinstance(candidate, EnrichedItem):
            items.append(candidate)
            continue
        if not isinstance(candidate, Mapping):
            logger.warning("Skipping candidate of unexpected type %s", type(candidate).__name__)
            continue
        try:
            items.append(EnrichedItem.model_validate(candidate))
        except ValidationError as exc:
            logger.warning(
                "Skipping unidentifiable candidate %r: %s",
                candidate.get("id"),
                exc.error_count(),
            )
    return items


def _unique(items: Iterable[EnrichedItem]) -> list[EnrichedItem]:
    seen: set[tuple[int, str]] = set()
    unique: list[EnrichedItem] = []
    for item in items:
        if item.key in seen:
            continue
        seen.add(item.key)
        unique.append(item)
    return unique


def trending_recommendations(
    candidates: Sequence[EnrichedItem],
    limit: int,
    *,
    tuning: EngineTuning = DEFAULT_TUNING,
) -> list[Recommendation]:
    """Cold-start ranking: most popular first, everything tagged trending."""

    popular = [
        item
        for item in _unique(candidates)
        if item.popularity > tuning.cold_start_popularity_floor
    ]
    popular.sort(key=lambda item: item.popularity, reverse=True)
    return [
        Recommendation(
            item=item,
            score=popularity_score(item, tuning),
            reasons=[
                RecommendationReason(
                    kind="trending",
                    human_text="Currently trending",
                    confidence=tuning.cold_start_confidence,
                )
            ],
            category="trending",
        )
        for item in popular[:limit]
    ]


def rank(
    candidates: Iterable[CandidateLike] | None,
    saved_items: Sequence[EnrichedItem] | None,
    limit: int = 20,
    *,
    current_year: int | None = None,
    tuning: EngineTuning = DEFAULT_TUNING,
) -> list[Recommendation]:
    """Return up to ``limit`` recommendations for the saved-items list.

    With nothing saved this falls back to popularity; otherwise each unsaved
    candidate is scored against the taste profile, cut at ``tuning.min_score``
    and sorted by score.
    """

    if limit <= 0:
        return []
    pool = coerce_candidates(candidates)
    saved = list(saved_items or [])
    prefs = build_preferences(saved, current_year=current_year, tuning=tuning)
    if prefs is None:
        return trending_recommendations(pool, limit, tuning=tuning)

    saved_keys = {item.key for item in saved}
    recommendations: list[Recommendation] = []
    for item in _unique(pool):
        if item.key in saved_keys:
            continue
        scored = score(item, prefs, tuning=tuning)
        if scored.score < tuning.min_score:
            continue
        recommendations.append(
            Recommendation(
                item=item,
                score=scored.score,
                reasons=scored.reasons,
                category=categorize(item, scored.reasons, tuning=tuning),
            )
        )

    recommendations.sort(key=lambda recommendation: recommendation.score, reverse=True)
    return recommendations[:limit]


def filter_by_category(
    recommendations: Sequence[Recommendation], category: str | None
) -> list[Recommendation]:
    """Return the recommendations in ``category``; ``"all"`` keeps everything."""

    if not category or category == "all":
        return list(recommendations)
    return [rec for rec in recommendations if rec.category == category]


def paginate(
    recommendations: Sequence[Recommendation], page: int = 1, limit: int = 20
) -> RecommendationPage:
    """Slice an already ranked list without re-scoring it."""

    page = max(page, 1)
    limit = max(limit, 1)
    start = (page - 1) * limit
    total = len(recommendations)
    return RecommendationPage(
        items=list(recommendations[start : start + limit]),
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
    )


def category_stats(recommendations: Iterable[Recommendation]) -> dict[str, int]:
    stats = {category: 0 for category in RECOMMENDATION_CATEGORIES}
    for recommendation in recommendations:
        stats[recommendation.category] += 1
    return stats
