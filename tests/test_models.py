import pytest
from pydantic import ValidationError

from app.models import (
    CatalogItem,
    EnrichedItem,
    RecommendationRequest,
    SecondaryRecord,
    UserPreferences,
)


def test_catalog_item_from_tmdb_movie_and_tv():
    movie = CatalogItem.from_tmdb(
        {
            "id": 27205,
            "title": "Inception",
            "release_date": "2010-07-15",
            "vote_average": 8.4,
            "genre_ids": [28, 878, 28],
            "popularity": 90.5,
        },
        kind="movie",
    )
    show = CatalogItem.from_tmdb(
        {"id": 1399, "name": "Game of Thrones", "first_air_date": "2011-04-17", "media_type": "tv"}
    )

    assert movie.key == (27205, "movie")
    assert movie.genre_ids == [28, 878]
    assert movie.release_year == 2010
    assert show.kind == "tv"
    assert show.title == "Game of Thrones"
    assert show.release_year == 2011


def test_catalog_item_uses_neutral_defaults_for_missing_fields():
    item = CatalogItem.from_tmdb(
        {
            "id": 5,
            "title": None,
            "vote_average": None,
            "popularity": -3,
            "genre_ids": None,
            "release_date": None,
        },
        kind="movie",
    )

    assert item.title == ""
    assert item.vote_average == 0.0
    assert item.popularity == 0.0
    assert item.genre_ids == []
    assert item.release_year is None


def test_catalog_item_detail_genres_become_ids():
    item = CatalogItem.from_tmdb(
        {"id": 9, "title": "Heat", "genres": [{"id": 80, "name": "Crime"}, {"id": 18}]},
        kind="movie",
    )

    assert item.genre_ids == [80, 18]


def test_catalog_item_rejects_people_and_missing_ids():
    with pytest.raises(ValueError):
        CatalogItem.from_tmdb({"id": 31, "name": "Tom Hanks", "media_type": "person"})
    with pytest.raises(ValidationError):
        CatalogItem.from_tmdb({"title": "No id"}, kind="movie")


def test_secondary_record_drops_na_sentinels():
    record = SecondaryRecord.model_validate(
        {
            "Title": "Heat",
            "imdbRating": "8.3",
            "Metascore": "N/A",
            "Director": "Michael Mann",
            "Ratings": [
                {"Source": "Rotten Tomatoes", "Value": "88%"},
                {"Source": "Broken"},
            ],
        }
    )

    assert record.metascore is None
    assert record.imdb_rating == "8.3"
    assert record.rating_value("Rotten Tomatoes") == "88%"
    assert record.rating_value("Metacritic") is None
    assert len(record.ratings) == 1


def test_effective_rating_prefers_aggregated_score(make_item):
    assert make_item(vote_average=6.0, aggregated_score=7.5).effective_rating == 7.5
    assert make_item(vote_average=6.0).effective_rating == 6.0


def test_enriched_item_splits_actor_strings():
    item = EnrichedItem.model_validate(
        {"id": 3, "kind": "movie", "actors": "Al Pacino, Robert De Niro"}
    )

    assert item.actors == ["Al Pacino", "Robert De Niro"]


def test_user_preferences_genre_weight_lookup():
    prefs = UserPreferences.model_validate(
        {
            "favorite_genres": [{"genre_id": 28, "name": "Action", "weight": 0.9}],
            "preferred_rating_range": {"min": 7.5, "max": 10},
            "preferred_year_range": {"min": 2020, "max": 2024},
            "average_rating": 9.0,
            "total_watched": 1,
        }
    )

    assert prefs.genre_weight(28) == 0.9
    assert prefs.genre_weight(35) == 0.0


def test_recommendation_request_validates_category():
    assert RecommendationRequest.model_validate({"category": None}).category == "all"
    assert RecommendationRequest.model_validate({"watchlist": None}).watchlist == []
    with pytest.raises(ValidationError):
        RecommendationRequest.model_validate({"category": "mystery"})
    with pytest.raises(ValidationError):
        RecommendationRequest.model_validate({"page": 0})


def test_enriched_item_neutralises_bad_rating_fields():
    item = EnrichedItem.model_validate(
        {
            "id": 3,
            "kind": "movie",
            "title": 1917,
            "aggregated_score": 12,
            "combined_rating": "great",
            "ratings": {"primary": {"score": -4}},
            "data_source": "tertiary",
            "poster_path": "N/A",
            "imdb_id": " tt8579674 ",
        }
    )

    assert item.title == "1917"
    assert item.aggregated_score == 0.0
    assert item.combined_rating is None
    assert item.ratings is None
    assert item.data_source == "primary-only"
    assert item.poster_path is None
    assert item.imdb_id == "tt8579674"
    assert EnrichedItem.model_validate({"id": 4, "kind": "tv", "aggregated_score": "7.5"}).aggregated_score == 7.5
