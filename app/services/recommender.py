"""Personalised recommendations built on top of :class:`MovieService`."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Iterable, Sequence

from ..config import Settings
from ..models import EnrichedItem, Recommendation, UserPreferences
from ..ranking import category_stats, filter_by_category, paginate, rank
from ..taste_profile import build_preferences
from .catalog import MovieService
from .tmdb import TMDBError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CandidatePool:
    """Unique candidates plus the saved title that surfaced each one."""

    items: list[EnrichedItem] = field(default_factory=list)
    seeds: dict[tuple[int, str], EnrichedItem] = field(default_factory=dict)


class RecommendationService:
    """Gather candidates from TMDB and rank them against a saved-items list."""

    def __init__(self, movies: MovieService, settings: Settings) -> None:
        self._movies = movies
        self._settings = settings

    async def gather_candidates(self, saved_items: Sequence[EnrichedItem]) -> CandidatePool:
        sources: list[tuple[EnrichedItem | None, Awaitable[list[EnrichedItem]]]] = [
            (None, self._movies.trending("movie", "week")),
            (None, self._movies.popular("movie")),
            (None, self._movies.top_rated("movie")),
        ]
        for seed in list(saved_items)[: self._settings.similar_seed_limit]:
            sources.append((seed, self._movies.similar(seed.kind, seed.id)))

        results = await asyncio.gather(
            *(source for _, source in sources), return_exceptions=True
        )

        pool = CandidatePool()
        seen: set[tuple[int, str]] = set()
        for (seed, _), result in zip(sources, results):
            if isinstance(result, Exception):
                label = f"similar to {seed.title!r}" if seed else "listing"
                logger.warning("Candidate fetch (%s) failed: %s", label, result)
                continue
            for item in result:
                if item.key in seen:
                    continue
                seen.add(item.key)
                pool.items.append(item)
                if seed is not None:
                    pool.seeds[item.key] = seed
        logger.info(
            "Gathered %s candidates from %s sources", len(pool.items), len(sources)
        )
        return pool

    async def recommend(
        self,
        saved_items: Sequence[EnrichedItem],
        category: str | None = "all",
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """Rank, filter and paginate recommendations for ``saved_items``."""

        limit = max(limit, 1)
        tuning = self._settings.engine_tuning
        pool = await self.gather_candidates(saved_items)
        ranked = rank(pool.items, saved_items, limit * 3, tuning=tuning)
        ranked = [self._with_seed(recommendation, pool) for recommendation in ranked]

        filtered = filter_by_category(ranked, category)
        page_result = paginate(filtered, page, limit)
        preferences = build_preferences(saved_items, tuning=tuning)

        return {
            "recommendations": [
                self._dump_recommendation(recommendation)
                for recommendation in page_result.items
            ],
            "pagination": {
                "page": page_result.page,
                "limit": page_result.limit,
                "total": page_result.total,
                "total_pages": page_result.total_pages,
            },
            "preferences": self._dump_preferences(preferences),
            "categories": category_stats(ranked),
            "watchlist_size": len(saved_items),
        }

    async def resolve_watchlist(self, ids: Iterable[int]) -> list[EnrichedItem]:
        """Fetch enriched details for saved movie ids, skipping failures."""

        unique_ids = list(dict.fromkeys(ids))[: self._settings.watchlist_fetch_limit]
        results = await asyncio.gather(
            *(self._movies.details("movie", tmdb_id) for tmdb_id in unique_ids),
            return_exceptions=True,
        )
        items: list[EnrichedItem] = []
        for tmdb_id, result in zip(unique_ids, results):
            if isinstance(result, TMDBError):
                logger.warning("Skipping watchlist id %s: %s", tmdb_id, result)
                continue
            if isinstance(result, BaseException):
                raise result
            items.append(result)
        return items

    def _dump_recommendation(self, recommendation: Recommendation) -> dict[str, Any]:
        data = recommendation.model_dump(mode="json")
        data["item"] = self._movies.dump(recommendation.item)
        if recommendation.based_on is not None:
            data["based_on"] = self._movies.dump(recommendation.based_on)
        return data

    @staticmethod
    def _with_seed(recommendation: Recommendation, pool: CandidatePool) -> Recommendation:
        seed = pool.seeds.get(recommendation.item.key)
        if seed is None:
            return recommendation
        return recommendation.model_copy(update={"based_on": seed})

    @staticmethod
    def _dump_preferences(preferences: UserPreferences | None) -> dict[str, Any] | None:
        if preferences is None:
            return None
        return preferences.model_dump(mode="json")
