"""Ranking, cold start and post-processing of recommendations."""

from __future__ import annotations

import pytest

from app.ranking import (
    category_stats,
    coerce_candidates,
    filter_by_category,
    paginate,
    rank,
    trending_recommendations,
)
from app.scoring import score
from app.taste_profile import build_preferences
from app.tuning import DEFAULT_TUNING


@pytest.fixture
def saved(make_item):
    return [make_item(100, genre_ids=[28], vote_average=9.0, release_date="2020-05-01")]


def test_cold_start_orders_by_popularity(make_item):
    candidates = [
        make_item(1, popularity=150),
        make_item(2, popularity=900),
        make_item(3, popularity=80),
        make_item(2, popularity=900),
    ]

    recommendations = rank(candidates, [], limit=10)

    assert [rec.item.id for rec in recommendations] == [2, 1]
    assert all(rec.category == "trending" for rec in recommendations)
    assert recommendations[0].score == pytest.approx(0.9)
    assert recommendations[0].reasons[0].kind == "trending"
    assert recommendations[0].reasons[0].confidence == pytest.approx(0.8)


def test_cold_start_respects_limit(make_item):
    candidates = [make_item(index, popularity=200 + index) for index in range(1, 6)]

    assert len(trending_recommendations(candidates, 2)) == 2


def test_rank_excludes_saved_and_low_scores(make_item, saved):
    candidates = [
        make_item(100, genre_ids=[28], vote_average=9.0, release_date="2020-05-01"),
        make_item(1, genre_ids=[28], vote_average=8.5, release_date="2021-03-01", popularity=600),
        make_item(2, genre_ids=[35], vote_average=5.0, release_date="1980-01-01", popularity=10),
    ]

    recommendations = rank(candidates, saved, limit=10, current_year=2024)

    assert [rec.item.id for rec in recommendations] == [1]
    assert recommendations[0].category == "genre_match"


def test_rank_sorts_descending_and_truncates(make_item, saved):
    candidates = [
        make_item(1, genre_ids=[28], vote_average=3.0, release_date="2021-03-01", popularity=600),
        make_item(2, genre_ids=[28], vote_average=8.5, release_date="2021-03-01", popularity=600),
        make_item(3, genre_ids=[28], vote_average=8.5, release_date="2021-03-01", popularity=900),
    ]

    recommendations = rank(candidates, saved, limit=2, current_year=2024)

    assert [rec.item.id for rec in recommendations] == [3, 2]
    scores = [rec.score for rec in recommendations]
    assert scores == sorted(scores, reverse=True)


def test_rank_keeps_movie_and_show_with_same_id(make_item, saved):
    candidates = [
        make_item(5, kind="movie", genre_ids=[28], vote_average=8.5, release_date="2021-03-01"),
        make_item(5, kind="tv", genre_ids=[28], vote_average=8.5, release_date="2021-03-01"),
    ]

    recommendations = rank(candidates, saved, current_year=2024)

    assert {rec.item.key for rec in recommendations} == {(5, "movie"), (5, "tv")}


def test_rank_handles_empty_inputs(saved):
    assert rank([], saved) == []
    assert rank(None, None) == []
    assert rank([], saved, limit=0) == []


def test_cutoff_is_inclusive(make_item, saved):
    candidate = make_item(1, genre_ids=[35], vote_average=8.0, release_date="2021-01-01", popularity=0)
    prefs = build_preferences(saved, current_year=2024)
    exact = score(candidate, prefs).score

    included = rank([candidate], saved, current_year=2024, tuning=DEFAULT_TUNING.with_overrides(min_score=exact))
    excluded = rank(
        [candidate], saved, current_year=2024, tuning=DEFAULT_TUNING.with_overrides(min_score=min(exact + 0.01, 1.0))
    )

    assert exact == pytest.approx(0.35)
    assert [rec.score for rec in included] == [exact]
    assert excluded == []


def test_coerce_candidates_skips_unidentifiable_records(make_item):
    items = coerce_candidates(
        [
            {"id": 1, "kind": "movie", "title": "Raw"},
            {"title": "No id", "kind": "movie"},
            {"id": 2, "kind": "person"},
            "junk",
            make_item(3),
        ]
    )

    assert [item.id for item in items] == [1, 3]


def test_filter_paginate_and_stats(make_item):
    recommendations = trending_recommendations(
        [make_item(index, popularity=1000 - index) for index in range(1, 6)], 10
    )

    assert filter_by_category(recommendations, "all") == recommendations
    assert filter_by_category(recommendations, "genre_match") == []

    page = paginate(recommendations, page=2, limit=2)
    assert [rec.item.id for rec in page.items] == [3, 4]
    assert (page.total, page.total_pages) == (5, 3)
    assert paginate(recommendations, page=0, limit=0).page == 1
    assert paginate([], page=1, limit=20).total_pages == 0

    stats = category_stats(recommendations)
    assert stats["trending"] == 5
    assert set(stats) == {
        "because_you_watched",
        "genre_match",
        "highly_rated",
        "trending",
        "similar_taste",
    }


def test_malformed_numbers_are_scored_not_dropped(saved):
    base = {
        "id": 1,
        "kind": "movie",
        "title": "Odd",
        "genre_ids": [28],
        "vote_average": 8.5,
        "release_date": "2021-03-01",
        "popularity": 600,
    }
    candidates = [
        {**base, "vote_count": float("inf")},
        {**base, "id": 2, "genre_ids": [28, float("inf")]},
        {**base, "id": 3, "aggregated_score": 12},
        {**base, "id": 4, "ratings": "broken", "data_source": "tertiary", "combined_rating": "n/a"},
        {**base, "id": 5, "popularity": 10**400},
    ]

    recommendations = rank(candidates, saved, limit=10, current_year=2024)

    assert [rec.item.id for rec in recommendations] == [1, 2, 3, 4, 5]
    by_id = {rec.item.id: rec.item for rec in recommendations}
    assert set(by_id) == {1, 2, 3, 4, 5}
    assert by_id[1].vote_count == 0
    assert by_id[2].genre_ids == [28]
    assert by_id[3].aggregated_score == 0.0
    assert by_id[3].effective_rating == 8.5
    assert by_id[4].ratings is None
    assert by_id[4].data_source == "primary-only"
    assert by_id[4].combined_rating is None
    assert by_id[5].popularity == 0.0
    assert all(rec.category == "genre_match" for rec in recommendations)


def test_ranking_is_deterministic(make_item):
    saved_items = [
        make_item(100, genre_ids=[28, 18], vote_average=9.0, release_date="2020-05-01", actors=["Al Pacino"]),
        make_item(101, genre_ids=[18], vote_average=7.5, release_date="2018-01-01", director="Michael Mann"),
    ]
    candidates = [
        make_item(
            index,
            genre_ids=[28] if index % 2 else [18],
            vote_average=6.0 + index / 4,
            release_date=f"{2010 + index}-01-01",
            popularity=100.0 * index,
        )
        for index in range(1, 9)
    ]

    first_prefs = build_preferences(saved_items, current_year=2024)
    second_prefs = build_preferences(list(saved_items), current_year=2024)
    first = rank(candidates, saved_items, limit=5, current_year=2024)
    second = rank(list(candidates), list(saved_items), limit=5, current_year=2024)

    assert first_prefs == second_prefs
    assert first
    assert first == second
