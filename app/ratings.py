"""Merge ratings from the catalog and ratings providers into one score."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from .models import (
    CatalogItem,
    EnrichedItem,
    NormalizedRating,
    ProviderRatings,
    SecondaryRecord,
)
from .tuning import DEFAULT_TUNING, EngineTuning
from .utils import clean_text, parse_score, split_names

logger = logging.getLogger(__name__)

IMDB_SOURCE = "Internet Movie Database"
ROTTEN_TOMATOES_SOURCE = "Rotten Tomatoes"
METACRITIC_SOURCE = "Metacritic"


def _rating(value: Any, *, out_of: int, votes: int | str | None = None) -> NormalizedRating | None:
    score = parse_score(value)
    # Zero is how the providers spell "no data".
    if score is None or score == 0 or score > out_of:
        return None
    return NormalizedRating(score=score, out_of=out_of, votes=votes)


def build_provider_ratings(
    item: CatalogItem, secondary: SecondaryRecord | None = None
) -> ProviderRatings:
    """Collect every provider rating that carries data for ``item``."""

    primary = _rating(item.vote_average, out_of=10, votes=item.vote_count)
    if secondary is None:
        return ProviderRatings(primary=primary)

    imdb_raw = secondary.imdb_rating or secondary.rating_value(IMDB_SOURCE)
    metascore_raw = secondary.rating_value(METACRITIC_SOURCE) or secondary.metascore
    return ProviderRatings(
        primary=primary,
        secondary_critic=_rating(imdb_raw, out_of=10, votes=secondary.imdb_votes),
        aggregator_critics=_rating(
            secondary.rating_value(ROTTEN_TOMATOES_SOURCE), out_of=100
        ),
        aggregator_metascore=_rating(metascore_raw, out_of=100),
    )


def aggregate_score(
    ratings: ProviderRatings | None, *, tuning: EngineTuning = DEFAULT_TUNING
) -> float:
    """Weighted mean of the present ratings on a 0-10 scale.

    Weights are renormalised over the providers that reported data, so a
    single provider's rating comes back unchanged.
    """

    if ratings is None:
        return 0.0
    weighted_sum = 0.0
    total_weight = 0.0
    for slot, rating in ratings.present().items():
        weight = tuning.provider_weights.get(slot, 0.0)
        if weight <= 0:
            continue
        weighted_sum += rating.scaled * weight
        total_weight += weight
    if total_weight <= 0:
        return 0.0
    return min(weighted_sum / total_weight, 10.0)


def combined_rating(ratings: ProviderRatings) -> float | None:
    """Blend the catalog and IMDb ratings (40/60), rounded to one decimal."""

    primary = ratings.primary.score if ratings.primary else None
    critic = ratings.secondary_critic.score if ratings.secondary_critic else None
    if primary is None and critic is None:
        return None
    if critic is None:
        return primary
    if primary is None:
        return critic
    return round(primary * 0.4 + critic * 0.6, 1)


def parse_secondary_record(payload: Mapping[str, Any] | None) -> SecondaryRecord | None:
    """Validate a raw OMDb payload, returning ``None`` if it is unusable."""

    if not payload:
        return None
    try:
        return SecondaryRecord.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Discarding malformed ratings record: %s", exc)
        return None


def normalize(
    item: CatalogItem,
    secondary: SecondaryRecord | Mapping[str, Any] | None = None,
    *,
    tuning: EngineTuning = DEFAULT_TUNING,
) -> EnrichedItem:
    """Return ``item`` enriched with normalised multi-provider ratings."""

    record = (
        secondary
        if secondary is None or isinstance(secondary, SecondaryRecord)
        else parse_secondary_record(secondary)
    )
    ratings = build_provider_ratings(item, record)

    base = item.model_dump()
    for extra in EnrichedItem.model_fields.keys() - CatalogItem.model_fields.keys():
        base.pop(extra, None)
    update: dict[str, Any] = {
        "ratings": ratings,
        "aggregated_score": aggregate_score(ratings, tuning=tuning),
        "data_source": "primary-only",
    }

    if record is not None:
        update.update(
            {
                "data_source": "primary+secondary",
                "combined_rating": combined_rating(ratings),
                "imdb_id": record.imdb_id or item.imdb_id,
                "director": record.director,
                "actors": split_names(record.actors),
                "runtime": record.runtime,
                "awards": record.awards,
                "box_office": record.box_office,
                "plot": record.plot or clean_text(item.overview),
                "languages": split_names(record.language),
            }
        )

    return EnrichedItem.model_validate({**base, **update})
