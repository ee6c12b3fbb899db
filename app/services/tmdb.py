"""Client for The Movie Database (TMDB), the primary catalog provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..models import CatalogItem, MediaKind
from ..rate_limit import SlidingWindowRateLimiter
from ..utils import coerce_int

logger = logging.getLogger(__name__)

TrendingMediaType = Literal["all", "movie", "tv"]
TimeWindow = Literal["day", "week"]


class TMDBError(RuntimeError):
    """Raised when TMDB cannot satisfy a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class TMDBPage:
    """One page of catalog results."""

    items: list[CatalogItem] = field(default_factory=list)
    page: int = 1
    total_pages: int = 1
    total_results: int = 0


class TMDBClient:
    """Thin async wrapper around the TMDB v3 REST API."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        rate_limiter: SlidingWindowRateLimiter | None = None,
    ):
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client
        self._rate_limiter = rate_limiter

    async def search_multi(self, query: str, page: int = 1) -> TMDBPage:
        """Search movies and shows at once; people are dropped."""

        query = (query or "").strip()
        if not query:
            raise TMDBError("Search query cannot be empty", status_code=400)
        data = await self._get(
            "/search/multi",
            {"query": query, "page": page, "include_adult": "false"},
        )
        return self._parse_page(data)

    async def trending(
        self,
        media_type: TrendingMediaType = "movie",
        time_window: TimeWindow = "day",
    ) -> TMDBPage:
        data = await self._get(f"/trending/{media_type}/{time_window}")
        kind: MediaKind | None = None if media_type == "all" else media_type
        return self._parse_page(data, kind=kind)

    async def popular(self, kind: MediaKind = "movie", page: int = 1) -> TMDBPage:
        data = await self._get(f"/{kind}/popular", {"page": page})
        return self._parse_page(data, kind=kind)

    async def top_rated(self, kind: MediaKind = "movie", page: int = 1) -> TMDBPage:
        data = await self._get(f"/{kind}/top_rated", {"page": page})
        return self._parse_page(data, kind=kind)

    async def similar(self, kind: MediaKind, tmdb_id: int, page: int = 1) -> TMDBPage:
        data = await self._get(f"/{kind}/{tmdb_id}/similar", {"page": page})
        return self._parse_page(data, kind=kind)

    async def recommendations(
        self, kind: MediaKind, tmdb_id: int, page: int = 1
    ) -> TMDBPage:
        data = await self._get(f"/{kind}/{tmdb_id}/recommendations", {"page": page})
        return self._parse_page(data, kind=kind)

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
        """Browse titles by genre and optional filters."""

        params: dict[str, Any] = {
            "page": page,
            "sort_by": sort_by,
            "include_adult": "false",
        }
        if genre_id is not None:
            params["with_genres"] = genre_id
        if year:
            params["year" if kind == "movie" else "first_air_date_year"] = year
        if vote_average_gte is not None:
            params["vote_average.gte"] = vote_average_gte
        if vote_average_lte is not None:
            params["vote_average.lte"] = vote_average_lte
        if kind == "movie":
            if runtime_gte is not None:
                params["with_runtime.gte"] = runtime_gte
            if runtime_lte is not None:
                params["with_runtime.lte"] = runtime_lte
        data = await self._get(f"/discover/{kind}", params)
        return self._parse_page(data, kind=kind)

    async def genres(self, kind: MediaKind) -> list[dict[str, Any]]:
        data = await self._get(f"/genre/{kind}/list")
        genres = data.get("genres")
        if not isinstance(genres, list):
            raise TMDBError("Invalid response format from TMDB")
        return [
            {"id": genre_id, "name": str(entry.get("name") or "")}
            for entry in genres
            if isinstance(entry, dict)
            and (genre_id := coerce_int(entry.get("id"))) is not None
        ]

    async def details(
        self, kind: MediaKind, tmdb_id: int, *, append: str | None = None
    ) -> CatalogItem:
        """Fetch a single title by id."""

        params = {"append_to_response": append} if append else None
        data = await self._get(f"/{kind}/{tmdb_id}", params)
        try:
            return CatalogItem.from_tmdb(data, kind=kind)
        except (ValidationError, ValueError) as exc:
            raise TMDBError(f"Invalid {kind} payload for id {tmdb_id}") from exc

    def image_url(self, path: str | None, size: str = "w500") -> str | None:
        if not path:
            return None
        if path.startswith("http"):
            return path
        base_url = str(self._settings.tmdb_image_url).rstrip("/")
        return f"{base_url}/{size}{path}"

    def remaining_requests(self) -> int | None:
        if self._rate_limiter is None:
            return None
        return self._rate_limiter.remaining()

    async def _get(
        self, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()

        query: dict[str, Any] = {
            "api_key": self._settings.tmdb_api_key,
            "language": "en-US",
        }
        query.update(params or {})
        try:
            response = await self._client.get(path, params=query)
        except httpx.HTTPError as exc:
            raise TMDBError(f"Network error talking to TMDB: {exc}") from exc

        if response.status_code == 401:
            raise TMDBError("Invalid API key", status_code=401)
        if response.status_code == 404:
            raise TMDBError("Content not found", status_code=404)
        if response.status_code >= 400:
            logger.warning(
                "TMDB request to %s failed (%s): %s",
                path,
                response.status_code,
                response.text,
            )
            raise TMDBError(
                f"TMDB API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise TMDBError("Invalid response format from TMDB") from exc
        if not isinstance(data, dict):
            raise TMDBError("Invalid response format from TMDB")
        return data

    @staticmethod
    def _parse_page(data: dict[str, Any], *, kind: MediaKind | None = None) -> TMDBPage:
        results = data.get("results")
        if not isinstance(results, list):
            raise TMDBError("Invalid response format from TMDB")

        items: list[CatalogItem] = []
        for raw in results:
            if not isinstance(raw, dict):
                continue
            media_type = kind or raw.get("media_type")
            if media_type not in {"movie", "tv"}:
                continue
            try:
                items.append(CatalogItem.from_tmdb(raw, kind=media_type))
            except (ValidationError, ValueError):
                logger.debug("Skipping malformed TMDB result %r", raw.get("id"))

        return TMDBPage(
            items=items,
            page=coerce_int(data.get("page"), default=1) or 1,
            total_pages=coerce_int(data.get("total_pages"), default=1) or 1,
            total_results=coerce_int(data.get("total_results"), default=len(items)) or 0,
        )
