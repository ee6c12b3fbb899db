"""Catalog access layer combining TMDB listings with OMDb ratings."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import replace
from typing import Any, Literal, Sequence

from ..cache import ResponseCache
from ..config import Settings
from ..genres import genres_for_kind
from ..models import CatalogItem, EnrichedItem, MediaKind
from ..ratings import normalize
from .omdb import OMDbClient, OMDbError
from .tmdb import TimeWindow, TMDBClient, TMDBError, TMDBPage, TrendingMediaType

logger = logging.getLogger(__name__)

SearchKind = Literal["all", "movie", "tv"]


class MovieService:
    """Fetch, cache and enrich catalog data for the API layer.

    Either provider may be missing. Without TMDB every listing raises a
    :class:`TMDBError`; without OMDb enrichment quietly returns primary-only
    items.
    """

    def __init__(
        self,
        tmdb: TMDBClient | None,
        omdb: OMDbClient | None,
        cache: ResponseCache,
        settings: Settings,
    ) -> None:
        self._tmdb = tmdb
        self._omdb = omdb
        self._cache = cache
        self._settings = settings
        self._tuning = settings.engine_tuning
        self._cleanup_task: asyncio.Task[None] | None = None

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def start(self) -> None:
        """Launch the periodic cache cleanup loop."""

        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop(self) -> None:
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._cleanup_task
        self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.cache_cleanup_seconds)
            try:
                removed = self._cache.cleanup()
                if removed:
                    logger.info("Evicted %s expired cache entries", removed)
            except Exception as exc:  # pragma: no cover - background safety net
                logger.exception("Cache cleanup failed: %s", exc)

    def _require_tmdb(self) -> TMDBClient:
        if self._tmdb is None:
            raise TMDBError("TMDB API key is not configured", status_code=401)
        return self._tmdb

    async def search(
        self,
        query: str,
        page: int = 1,
        kind: SearchKind = "all",
        *,
        enhanced: bool = False,
    ) -> TMDBPage:
        tmdb = self._require_tmdb()
        key = self._cache.make_key(
            "search",
            {"query": query.strip().casefold(), "page": page, "kind": kind, "enhanced": enhanced},
        )
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = await tmdb.search_multi(query, page)
        items = [item for item in result.items if kind == "all" or item.kind == kind]
        page_result = replace(result, items=await self._prepare(items, enhanced))
        self._cache.set(key, page_result, self._settings.search_cache_seconds)
        return page_result

    async def details(
        self, kind: MediaKind, tmdb_id: int, *, enhanced: bool = True
    ) -> EnrichedItem:
        tmdb = self._require_tmdb()
        key = self._cache.make_key(
            "details", {"kind": kind, "id": tmdb_id, "enhanced": enhanced}
        )
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        item = await tmdb.details(kind, tmdb_id)
        result = await self.enrich(item) if enhanced else normalize(item, tuning=self._tuning)
        self._cache.set(key, result, self._settings.details_cache_seconds)
        return result

    async def trending(
        self,
        media_type: TrendingMediaType = "movie",
        time_window: TimeWindow = "day",
        *,
        enhanced: bool = False,
    ) -> list[EnrichedItem]:
        tmdb = self._require_tmdb()
        key = self._cache.make_key(
            "trending",
            {"media_type": media_type, "time_window": time_window, "enhanced": enhanced},
        )
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = await tmdb.trending(media_type, time_window)
        items = await self._prepare(result.items, enhanced)
        self._cache.set(key, items, self._settings.trending_cache_seconds)
        return items

    async def popular(self, kind: MediaKind = "movie", page: int = 1) -> list[EnrichedItem]:
        return await self._cached_listing("popular", kind, page)

    async def top_rated(self, kind: MediaKind = "movie", page: int = 1) -> list[EnrichedItem]:
        return await self._cached_listing("top_rated", kind, page)

    async def _cached_listing(
        self, endpoint: Literal["popular", "top_rated"], kind: MediaKind, page: int
    ) -> list[EnrichedItem]:
        tmdb = self._require_tmdb()
        key = self._cache.make_key(endpoint, {"kind": kind, "page": page})
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        fetch = tmdb.popular if endpoint == "popular" else tmdb.top_rated
        result = await fetch(kind, page)
        items = await self._prepare(result.items, enhanced=False)
        self._cache.set(key, items, self._settings.trending_cache_seconds)
        return items

    async def discover(
        self,
        kind: MediaKind,
        *,
        genre_id: str | int | None = None,
        page: int = 1,
        sort_by: str = "popularity.desc",
        year: int | None = None,
        vote_average_gte: float | None = None,
        vote_average_lte: float | None = None,
        runtime_gte: int | None = None,
        runtime_lte: int | None = None,
    ) -> TMDBPage:
        tmdb = self._require_tmdb()
        filters: dict[str, Any] = {
            "genre_id": genre_id,
            "page": page,
            "sort_by": sort_by,
            "year": year,
            "vote_average_gte": vote_average_gte,
            "vote_average_lte": vote_average_lte,
            "runtime_gte": runtime_gte,
            "runtime_lte": runtime_lte,
        }
        key = self._cache.make_key(f"discover:{kind}", filters)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = await tmdb.discover(kind, **filters)
        page_result = replace(result, items=await self._prepare(result.items, enhanced=False))
        self._cache.set(key, page_result, self._settings.default_cache_seconds)
        return page_result

    async def genres(self, kind: MediaKind = "movie") -> list[dict[str, Any]]:
        """Return the genre list, falling back to the built-in table."""

        if self._tmdb is None:
            return genres_for_kind(kind)
        key = self._cache.make_key("genres", {"kind": kind})
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        try:
            genres = await self._tmdb.genres(kind)
        except TMDBError as exc:
            logger.warning("Falling back to built-in %s genres: %s", kind, exc)
            return genres_for_kind(kind)
        self._cache.set(key, genres, self._settings.genre_cache_seconds)
        return genres

    async def similar(
        self,
        kind: MediaKind,
        tmdb_id: int,
        *,
        limit: int = 20,
        enhanced: bool = False,
    ) -> list[EnrichedItem]:
        """Return titles similar to ``tmdb_id``, enriching at most ten."""

        tmdb = self._require_tmdb()
        limit = max(limit, 1)
        key = self._cache.make_key(
            "similar", {"kind": kind, "id": tmdb_id, "limit": limit, "enhanced": enhanced}
        )
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = await tmdb.similar(kind, tmdb_id)
        items = list(result.items[:limit])
        head = await self._prepare(items[:10], enhanced)
        tail = await self._prepare(items[10:], enhanced=False)
        similar = head + tail
        self._cache.set(key, similar, self._settings.default_cache_seconds)
        return similar

    async def related(self, kind: MediaKind, tmdb_id: int, *, limit: int = 10) -> list[EnrichedItem]:
        """TMDB's own recommendations for a title; empty when unavailable."""

        tmdb = self._require_tmdb()
        try:
            result = await tmdb.recommendations(kind, tmdb_id)
        except TMDBError as exc:
            logger.warning("TMDB recommendations for %s/%s failed: %s", kind, tmdb_id, exc)
            return []
        return await self._prepare(result.items[: max(limit, 0)], enhanced=False)

    async def enrich(self, item: CatalogItem) -> EnrichedItem:
        """Merge OMDb ratings into ``item``, degrading to primary-only data."""

        if self._omdb is None or not item.title:
            return normalize(item, tuning=self._tuning)

        key = self._cache.make_key("enrich", {"kind": item.kind, "id": item.id})
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        record = None
        year = item.release_year
        try:
            if item.imdb_id:
                record = await self._omdb.get_by_imdb_id(item.imdb_id)
            else:
                record = await self._omdb.get_by_title(item.title, year=year, kind=item.kind)
        except OMDbError as exc:
            logger.warning("OMDb lookup failed for %s (%s): %s", item.title, year, exc)
            # Release years drift between providers; retry once without one.
            if not item.imdb_id and year is not None and self._omdb.can_make_request():
                try:
                    record = await self._omdb.get_by_title(item.title, kind=item.kind)
                except OMDbError as retry_exc:
                    logger.warning(
                        "OMDb retry without year failed for %s: %s", item.title, retry_exc
                    )

        enriched = normalize(item, record, tuning=self._tuning)
        if record is not None:
            self._cache.set(key, enriched, self._settings.details_cache_seconds)
        return enriched

    async def enrich_many(self, items: Sequence[CatalogItem]) -> list[EnrichedItem]:
        """Enrich ``items`` concurrently, preserving their order."""

        semaphore = asyncio.Semaphore(self._settings.enrichment_concurrency)

        async def _bounded(item: CatalogItem) -> EnrichedItem:
            async with semaphore:
                return await self.enrich(item)

        return list(await asyncio.gather(*(_bounded(item) for item in items)))

    async def _prepare(
        self, items: Sequence[CatalogItem], enhanced: bool
    ) -> list[EnrichedItem]:
        if enhanced:
            return await self.enrich_many(items)
        return [normalize(item, tuning=self._tuning) for item in items]

    def image_url(self, path: str | None, size: str = "w500") -> str | None:
        if self._tmdb is None:
            return None
        return self._tmdb.image_url(path, size)

    def dump(self, item: EnrichedItem) -> dict[str, Any]:
        """JSON view of ``item`` with absolute poster and backdrop URLs."""

        data = item.model_dump(mode="json")
        data["poster_url"] = self.image_url(item.poster_path)
        data["backdrop_url"] = self.image_url(item.backdrop_path, "w1280")
        return data

    def api_status(self) -> dict[str, Any]:
        """Report provider configuration, remaining budgets and cache health."""

        return {
            "tmdb": {
                "configured": self._tmdb is not None,
                "remaining_requests": (
                    self._tmdb.remaining_requests() if self._tmdb is not None else None
                ),
                "limit": self._settings.tmdb_rate_limit,
                "window_seconds": self._settings.tmdb_rate_window_seconds,
            },
            "omdb": {
                "configured": self._omdb is not None,
                "remaining_requests": (
                    self._omdb.remaining_requests() if self._omdb is not None else None
                ),
                "daily_limit": self._settings.omdb_daily_limit,
            },
            "cache": self._cache.stats(),
        }
