"""Tunable constants for rating aggregation and recommendation scoring."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping


def _frozen(mapping: dict[str, float]) -> Mapping[str, float]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class EngineTuning:
    """Weights and thresholds shared by the normalizer, scorer and ranker.

    ``popularity_normalizer`` and ``rating_band_offset`` have no derivation
    beyond "worked well enough"; treat them as knobs rather than facts.
    """

    provider_weights: Mapping[str, float] = field(
        default_factory=lambda: _frozen(
            {
                "primary": 0.25,
                "secondary_critic": 0.35,
                "aggregator_critics": 0.25,
                "aggregator_metascore": 0.15,
            }
        )
    )
    score_weights: Mapping[str, float] = field(
        default_factory=lambda: _frozen(
            {
                "genre": 0.40,
                "rating": 0.25,
                "year": 0.15,
                "popularity": 0.10,
                "people": 0.10,
            }
        )
    )

    favorite_genre_limit: int = 5
    language_limit: int = 3
    actor_limit: int = 10
    director_limit: int = 5
    actors_per_item: int = 3

    rating_band_offset: float = 1.5
    rating_band_max: float = 10.0
    default_average_rating: float = 7.0
    recent_year_share: float = 0.7
    fallback_year_span: int = 10
    min_valid_year: int = 1900

    popularity_normalizer: float = 1000.0
    actor_overlap_share: float = 0.7
    director_match_bonus: float = 0.3
    director_reason_confidence: float = 0.7

    min_score: float = 0.3
    max_reasons: int = 3
    genre_match_confidence: float = 0.7
    highly_rated_threshold: float = 8.0
    trending_popularity: float = 500.0

    cold_start_popularity_floor: float = 100.0
    cold_start_confidence: float = 0.8

    def with_overrides(self, **overrides: Any) -> "EngineTuning":
        """Return a copy with the supplied fields replaced."""

        return replace(self, **overrides)


DEFAULT_TUNING = EngineTuning()
