"""Score a candidate title against a taste profile."""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import (
    EnrichedItem,
    RecommendationCategory,
    RecommendationReason,
    UserPreferences,
)
from .tuning import DEFAULT_TUNING, EngineTuning
from .utils import normalize_name


@dataclass(slots=True)
class ScoredCandidate:
    """Match score in ``[0, 1]`` plus the reasons shown to the user."""

    score: float
    reasons: list[RecommendationReason] = field(default_factory=list)


def genre_score(candidate: EnrichedItem, prefs: UserPreferences) -> float:
    if not candidate.genre_ids:
        return 0.0
    total = sum(prefs.genre_weight(genre_id) for genre_id in candidate.genre_ids)
    return total / len(candidate.genre_ids)


def rating_score(candidate: EnrichedItem, prefs: UserPreferences) -> float:
    rating = candidate.effective_rating
    band = prefs.preferred_rating_range
    if rating <= 0 or not band.min <= rating <= band.max:
        return 0.0
    return min(rating / 10.0, 1.0)


def year_score(candidate: EnrichedItem, prefs: UserPreferences) -> float:
    year = candidate.release_year
    band = prefs.preferred_year_range
    if year is None or not band.min <= year <= band.max:
        return 0.0
    return 1.0


def popularity_score(candidate: EnrichedItem, tuning: EngineTuning = DEFAULT_TUNING) -> float:
    if candidate.popularity <= 0:
        return 0.0
    return min(candidate.popularity / tuning.popularity_normalizer, 1.0)


def _matching_actors(candidate: EnrichedItem, prefs: UserPreferences) -> list[str]:
    preferred = set(prefs.actor_preferences)
    return [actor for actor in candidate.actors if normalize_name(actor) in preferred]


def _director_matches(candidate: EnrichedItem, prefs: UserPreferences) -> bool:
    if not candidate.director:
        return False
    return normalize_name(candidate.director) in prefs.director_preferences


def people_score(
    candidate: EnrichedItem, prefs: UserPreferences, tuning: EngineTuning = DEFAULT_TUNING
) -> float:
    value = 0.0
    if candidate.actors and prefs.actor_preferences:
        overlap = len(_matching_actors(candidate, prefs)) / len(candidate.actors)
        value += overlap * tuning.actor_overlap_share
    if prefs.director_preferences and _director_matches(candidate, prefs):
        value += tuning.director_match_bonus
    return min(value, 1.0)


def build_reasons(
    candidate: EnrichedItem,
    prefs: UserPreferences,
    *,
    tuning: EngineTuning = DEFAULT_TUNING,
) -> list[RecommendationReason]:
    """Explain a match: strongest genre first, then rating, then people."""

    reasons: list[RecommendationReason] = []

    matching = [
        affinity
        for affinity in prefs.favorite_genres
        if affinity.genre_id in candidate.genre_ids
    ]
    if matching:
        top = max(matching, key=lambda affinity: affinity.weight)
        noun = "movies" if candidate.kind == "movie" else "shows"
        reasons.append(
            RecommendationReason(
                kind="genre",
                human_text=f"You enjoy {top.name} {noun}",
                confidence=min(top.weight, 1.0),
            )
        )

    rating = candidate.effective_rating
    if rating > 0 and rating >= prefs.preferred_rating_range.min:
        reasons.append(
            RecommendationReason(
                kind="rating",
                human_text=f"Highly rated ({rating:.1f}/10)",
                confidence=min(rating / 10.0, 1.0),
            )
        )

    if prefs.director_preferences and _director_matches(candidate, prefs):
        reasons.append(
            RecommendationReason(
                kind="director",
                human_text=f"Directed by {candidate.director}, whose work you save",
                confidence=tuning.director_reason_confidence,
            )
        )

    actors = _matching_actors(candidate, prefs) if prefs.actor_preferences else []
    if actors:
        shown = ", ".join(actors[:2])
        reasons.append(
            RecommendationReason(
                kind="actor",
                human_text=f"Stars {shown}",
                confidence=min(len(actors) / len(candidate.actors), 1.0),
            )
        )

    return reasons[: tuning.max_reasons]


def score(
    candidate: EnrichedItem,
    prefs: UserPreferences,
    *,
    tuning: EngineTuning = DEFAULT_TUNING,
) -> ScoredCandidate:
    """Weighted match of ``candidate`` against ``prefs``.

    Every term is always evaluated, so the result divides by the full weight
    total and lands in ``[0, 1]`` without further renormalisation.
    """

    weights = tuning.score_weights
    terms = {
        "genre": genre_score(candidate, prefs),
        "rating": rating_score(candidate, prefs),
        "year": year_score(candidate, prefs),
        "popularity": popularity_score(candidate, tuning),
        "people": people_score(candidate, prefs, tuning),
    }
    max_score = sum(weights.get(name, 0.0) for name in terms)
    total = sum(value * weights.get(name, 0.0) for name, value in terms.items())
    value = total / max_score if max_score > 0 else 0.0
    return ScoredCandidate(
        score=min(max(value, 0.0), 1.0),
        reasons=build_reasons(candidate, prefs, tuning=tuning),
    )


def categorize(
    candidate: EnrichedItem,
    reasons: list[RecommendationReason],
    *,
    tuning: EngineTuning = DEFAULT_TUNING,
) -> RecommendationCategory:
    """Assign exactly one display bucket to a scored candidate."""

    if any(
        reason.kind == "genre" and reason.confidence > tuning.genre_match_confidence
        for reason in reasons
    ):
        return "genre_match"
    if candidate.effective_rating >= tuning.highly_rated_threshold:
        return "highly_rated"
    if candidate.popularity > tuning.trending_popularity:
        return "trending"
    return "similar_taste"
