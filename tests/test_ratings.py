"""Rating normalization and aggregation behaviour."""

from __future__ import annotations

import pytest

from app.models import CatalogItem
from app.ratings import (
    aggregate_score,
    build_provider_ratings,
    combined_rating,
    normalize,
    parse_secondary_record,
)
from app.tuning import DEFAULT_TUNING


def build_item(**overrides) -> CatalogItem:
    data = {"id": 949, "title": "Heat", "release_date": "1995-12-15", "vote_average": 8.0, "vote_count": 7000}
    data.update(overrides)
    return CatalogItem.from_tmdb(data, kind="movie")


FULL_RECORD = {
    "Title": "Heat",
    "imdbID": "tt0113277",
    "imdbRating": "9.0",
    "imdbVotes": "700,000",
    "Metascore": "N/A",
    "Ratings": [
        {"Source": "Internet Movie Database", "Value": "9.0/10"},
        {"Source": "Rotten Tomatoes", "Value": "80%"},
        {"Source": "Metacritic", "Value": "70/100"},
    ],
    "Director": "Michael Mann",
    "Actors": "Al Pacino, Robert De Niro, Val Kilmer",
    "Language": "English, Spanish",
    "Runtime": "170 min",
    "Response": "True",
}


def test_primary_only_score_is_returned_unchanged():
    enriched = normalize(build_item(vote_average=7.5))

    assert enriched.aggregated_score == 7.5
    assert enriched.data_source == "primary-only"
    assert enriched.ratings is not None
    assert set(enriched.ratings.present()) == {"primary"}


def test_all_providers_are_weighted():
    enriched = normalize(build_item(), FULL_RECORD)

    # 8.0*0.25 + 9.0*0.35 + 8.0*0.25 + 7.0*0.15
    assert enriched.aggregated_score == pytest.approx(8.2)
    assert enriched.data_source == "primary+secondary"
    assert enriched.imdb_id == "tt0113277"
    assert enriched.director == "Michael Mann"
    assert enriched.actors == ["Al Pacino", "Robert De Niro", "Val Kilmer"]
    assert enriched.languages == ["English", "Spanish"]


def test_weights_renormalise_over_present_providers():
    record = parse_secondary_record({"Title": "Heat", "imdbRating": "6.0"})
    ratings = build_provider_ratings(build_item(), record)

    assert set(ratings.present()) == {"primary", "secondary_critic"}
    assert aggregate_score(ratings) == pytest.approx((8.0 * 0.25 + 6.0 * 0.35) / 0.60)


def test_zero_means_absent_everywhere():
    enriched = normalize(
        build_item(vote_average=0),
        {"Title": "Heat", "imdbRating": "0", "Ratings": [{"Source": "Rotten Tomatoes", "Value": "0%"}]},
    )

    assert enriched.ratings is not None
    assert enriched.ratings.is_empty()
    assert enriched.aggregated_score == 0.0
    assert enriched.combined_rating is None


def test_out_of_range_scores_are_discarded():
    ratings = build_provider_ratings(
        build_item(),
        parse_secondary_record({"imdbRating": "11", "Metascore": "101"}),
    )

    assert ratings.secondary_critic is None
    assert ratings.aggregator_metascore is None


def test_metascore_field_backs_up_missing_metacritic_entry():
    ratings = build_provider_ratings(
        build_item(), parse_secondary_record({"Metascore": "64", "Ratings": []})
    )

    assert ratings.aggregator_metascore is not None
    assert ratings.aggregator_metascore.scaled == pytest.approx(6.4)


def test_combined_rating_blends_primary_and_imdb():
    ratings = build_provider_ratings(build_item(), parse_secondary_record(FULL_RECORD))

    assert combined_rating(ratings) == 8.6


def test_parse_secondary_record_ignores_empty_payload():
    assert parse_secondary_record(None) is None
    assert parse_secondary_record({}) is None


def test_normalize_replaces_previous_enrichment():
    enriched = normalize(build_item(), FULL_RECORD)
    refreshed = normalize(enriched)

    assert refreshed.director is None
    assert refreshed.actors == []
    assert refreshed.data_source == "primary-only"
    assert refreshed.aggregated_score == 8.0


def test_custom_provider_weights_are_respected():
    tuning = DEFAULT_TUNING.with_overrides(
        provider_weights={"primary": 1.0, "secondary_critic": 0.0}
    )
    enriched = normalize(build_item(), FULL_RECORD, tuning=tuning)

    assert enriched.aggregated_score == pytest.approx(8.0)
