"""Entry point for the CineScope FastAPI service."""

from __future__ import annotations

import json
import logging
import math
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, NoReturn

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .cache import ResponseCache
from .config import settings
from .models import (
    RECOMMENDATION_CATEGORIES,
    EnrichedItem,
    MediaKind,
    RecommendationRequest,
    WatchlistPayload,
)
from .rate_limit import SlidingWindowRateLimiter
from .services.catalog import MovieService
from .services.omdb import OMDbClient, OMDbError
from .services.recommender import RecommendationService
from .services.tmdb import TMDBClient, TMDBError
from .taste_profile import build_preferences
from .utils import coerce_int
from .watchlist import Watchlist

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

OMDB_WINDOW_SECONDS = 24 * 60 * 60

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()

    tmdb: TMDBClient | None = None
    if settings.tmdb_api_key:
        tmdb_http = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.tmdb_api_url),
                timeout=httpx.Timeout(15.0, connect=5.0),
            )
        )
        tmdb = TMDBClient(
            settings,
            tmdb_http,
            SlidingWindowRateLimiter(
                settings.tmdb_rate_limit, settings.tmdb_rate_window_seconds
            ),
        )
    else:
        logger.warning("TMDB_API_KEY is not set; catalog endpoints are disabled")

    omdb: OMDbClient | None = None
    if settings.omdb_api_key:
        omdb_http = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.omdb_api_url),
                timeout=httpx.Timeout(10.0, connect=5.0),
            )
        )
        omdb = OMDbClient(
            settings,
            omdb_http,
            SlidingWindowRateLimiter(settings.omdb_daily_limit, OMDB_WINDOW_SECONDS),
        )
    else:
        logger.info("OMDB_API_KEY is not set; serving primary-only ratings")

    cache = ResponseCache(settings.default_cache_seconds)
    movie_service = MovieService(tmdb, omdb, cache, settings)
    fastapi_app.state.movie_service = movie_service
    fastapi_app.state.recommendation_service = RecommendationService(
        movie_service, settings
    )
    await movie_service.start()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await movie_service.stop()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Movie and TV discovery with multi-source ratings and recommendations",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_movie_service(app: FastAPI) -> MovieService:
    service = getattr(app.state, "movie_service", None)
    if not isinstance(service, MovieService):
        raise RuntimeError("Movie service not initialised")
    return service


def get_recommendation_service(app: FastAPI) -> RecommendationService:
    service = getattr(app.state, "recommendation_service", None)
    if not isinstance(service, RecommendationService):
        raise RuntimeError("Recommendation service not initialised")
    return service


def raise_provider_error(exc: TMDBError | OMDbError, fallback: str) -> NoReturn:
    """Translate a provider failure into the matching HTTP error."""

    if exc.status_code == 401:
        raise HTTPException(
            status_code=401, detail="API key is not configured properly"
        ) from exc
    if exc.status_code == 404:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if exc.status_code == 400:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if exc.status_code is None and "Network error" in str(exc):
        raise HTTPException(
            status_code=503, detail="Network error. Please try again."
        ) from exc
    logger.warning("%s: %s", fallback, exc)
    raise HTTPException(status_code=502, detail=fallback) from exc


def _coerce_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in {"1", "true", "yes", "on"}
    return False


def _page(value: object, default: int = 1) -> int:
    page = coerce_int(value, default=default) or default
    return max(page, 1)


def _media_kind(value: str | None, *, allow_all: bool = False, default: str = "movie") -> str:
    kind = (value or default).strip().lower()
    allowed = {"movie", "tv", "all"} if allow_all else {"movie", "tv"}
    if kind not in allowed:
        raise HTTPException(status_code=400, detail=f"Invalid type: {value}")
    return kind


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_watchlist_ids(raw: str | None) -> list[int]:
    """Accept ``[1,2,3]`` JSON or a ``1,2,3`` comma list."""

    if not raw:
        return []
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        decoded = raw.split(",")
    if not isinstance(decoded, list):
        decoded = [decoded]
    ids: list[int] = []
    for entry in decoded:
        value = coerce_int(str(entry).strip())
        if value is not None:
            ids.append(value)
    return ids


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")
    return payload


def _dump_items(service: MovieService, items: list[EnrichedItem]) -> list[dict[str, Any]]:
    return [service.dump(item) for item in items]


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/search")
    async def search(request: Request) -> dict[str, Any]:
        params = request.query_params
        query = (params.get("q") or "").strip()
        if not query:
            raise HTTPException(status_code=400, detail="Search query is required")
        kind = _media_kind(params.get("type"), allow_all=True, default="all")
        page = _page(params.get("page"))
        service = get_movie_service(fastapi_app)
        try:
            result = await service.search(
                query,
                page,
                kind,  # type: ignore[arg-type]
                enhanced=_coerce_bool(params.get("enhanced")),
            )
        except TMDBError as exc:
            raise_provider_error(exc, "Search failed. Please try again.")
        return {
            "results": _dump_items(service, result.items),
            "page": result.page,
            "total_pages": result.total_pages,
            "total_results": result.total_results,
        }

    @fastapi_app.get("/api/trending")
    async def trending(request: Request) -> dict[str, Any]:
        params = request.query_params
        media_type = _media_kind(params.get("media_type"), allow_all=True)
        time_window = (params.get("time_window") or "day").lower()
        if time_window not in {"day", "week"}:
            raise HTTPException(status_code=400, detail=f"Invalid time_window: {time_window}")
        service = get_movie_service(fastapi_app)
        try:
            items = await service.trending(
                media_type,  # type: ignore[arg-type]
                time_window,  # type: ignore[arg-type]
                enhanced=_coerce_bool(params.get("enhanced")),
            )
        except TMDBError as exc:
            raise_provider_error(exc, "Failed to load trending content. Please try again.")
        return {
            "results": _dump_items(service, items),
            "media_type": media_type,
            "time_window": time_window,
        }

    @fastapi_app.get("/api/discover")
    async def discover(request: Request) -> dict[str, Any]:
        params = request.query_params
        kind: MediaKind = _media_kind(params.get("type"))  # type: ignore[assignment]
        service = get_movie_service(fastapi_app)
        try:
            result = await service.discover(
                kind,
                genre_id=params.get("genre_id") or None,
                page=_page(params.get("page")),
                sort_by=params.get("sort_by") or "popularity.desc",
                year=coerce_int(params.get("year")),
                vote_average_gte=_optional_float(params.get("vote_average_gte")),
                vote_average_lte=_optional_float(params.get("vote_average_lte")),
                runtime_gte=coerce_int(params.get("with_runtime_gte")),
                runtime_lte=coerce_int(params.get("with_runtime_lte")),
            )
        except TMDBError as exc:
            raise_provider_error(exc, "Failed to discover content. Please try again.")
        return {
            "results": _dump_items(service, result.items),
            "page": result.page,
            "total_pages": result.total_pages,
            "total_results": result.total_results,
            "type": kind,
        }

    @fastapi_app.get("/api/genres")
    async def genres(request: Request) -> dict[str, Any]:
        kind: MediaKind = _media_kind(request.query_params.get("type"))  # type: ignore[assignment]
        service = get_movie_service(fastapi_app)
        return {"genres": await service.genres(kind), "type": kind}

    async def _details(kind: MediaKind, item_id: str, request: Request) -> dict[str, Any]:
        tmdb_id = coerce_int(item_id)
        if tmdb_id is None or tmdb_id <= 0:
            raise HTTPException(status_code=400, detail=f"Invalid {kind} id: {item_id}")
        enhanced = request.query_params.get("enhanced")
        service = get_movie_service(fastapi_app)
        try:
            item = await service.details(
                kind, tmdb_id, enhanced=True if enhanced is None else _coerce_bool(enhanced)
            )
        except TMDBError as exc:
            raise_provider_error(exc, f"Failed to load {kind} details. Please try again.")
        return service.dump(item)

    @fastapi_app.get("/api/movie/{item_id}")
    async def movie_details(item_id: str, request: Request) -> dict[str, Any]:
        return await _details("movie", item_id, request)

    @fastapi_app.get("/api/tv/{item_id}")
    async def tv_details(item_id: str, request: Request) -> dict[str, Any]:
        return await _details("tv", item_id, request)

    @fastapi_app.get("/api/similar")
    async def similar(request: Request) -> dict[str, Any]:
        params = request.query_params
        movie_id = coerce_int(params.get("movie_id"))
        if movie_id is None:
            raise HTTPException(status_code=400, detail="Movie ID is required")
        limit = _page(params.get("limit"), default=20)
        enhanced = _coerce_bool(params.get("enhanced"))
        service = get_movie_service(fastapi_app)
        try:
            items = await service.similar("movie", movie_id, limit=limit, enhanced=enhanced)
            related = await service.related("movie", movie_id)
        except TMDBError as exc:
            raise_provider_error(exc, "Failed to fetch similar movies. Please try again.")

        original: dict[str, Any] | None = None
        try:
            original = service.dump(
                await service.details("movie", movie_id, enhanced=enhanced)
            )
        except TMDBError as exc:
            logger.warning("Could not load original movie %s: %s", movie_id, exc)

        return {
            "original_movie": original,
            "similar": _dump_items(service, items),
            "recommendations": _dump_items(service, related),
            "enhanced": enhanced,
        }

    @fastapi_app.get("/api/recommendations")
    async def recommendations_by_ids(request: Request) -> dict[str, Any]:
        params = request.query_params
        category = params.get("category") or "all"
        if category != "all" and category not in RECOMMENDATION_CATEGORIES:
            raise HTTPException(status_code=400, detail=f"Unknown category: {category}")
        limit = min(_page(params.get("limit"), default=20), 100)
        page = _page(params.get("page"))
        recommender = get_recommendation_service(fastapi_app)
        try:
            saved = await recommender.resolve_watchlist(
                parse_watchlist_ids(params.get("watchlist_ids"))
            )
            return await recommender.recommend(saved, category, page, limit)
        except TMDBError as exc:
            raise_provider_error(
                exc, "Failed to generate recommendations. Please try again."
            )

    @fastapi_app.post("/api/recommendations")
    async def recommendations_for_watchlist(request: Request) -> dict[str, Any]:
        payload = await _json_body(request)
        try:
            body = RecommendationRequest.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

        watchlist = Watchlist.from_payload(body.watchlist)
        recommender = get_recommendation_service(fastapi_app)
        try:
            return await recommender.recommend(
                watchlist.items, body.category, body.page, body.limit
            )
        except TMDBError as exc:
            raise_provider_error(
                exc, "Failed to generate recommendations. Please try again."
            )

    @fastapi_app.post("/api/preferences")
    async def preferences(request: Request) -> dict[str, Any]:
        payload = await _json_body(request)
        try:
            body = WatchlistPayload.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

        watchlist = Watchlist.from_payload(body.watchlist)
        prefs = build_preferences(watchlist.items, tuning=settings.engine_tuning)
        return {
            "preferences": prefs.model_dump(mode="json") if prefs else None,
            "watchlist": watchlist.stats(),
        }

    @fastapi_app.get("/api/status")
    async def api_status() -> dict[str, Any]:
        return get_movie_service(fastapi_app).api_status()


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
