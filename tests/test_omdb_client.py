"""Tests for the OMDb ratings client."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from app.config import Settings
from app.rate_limit import SlidingWindowRateLimiter
from app.services.omdb import OMDbClient, OMDbError

HEAT = {
    "Title": "Heat",
    "Year": "1995",
    "imdbID": "tt0113277",
    "imdbRating": "8.3",
    "Metascore": "76",
    "Director": "Michael Mann",
    "Response": "True",
}


def build_client(
    handler: Callable[[httpx.Request], httpx.Response], budget: int = 10
) -> tuple[OMDbClient, httpx.AsyncClient, SlidingWindowRateLimiter]:
    settings = Settings(_env_file=None, OMDB_API_KEY="omdb-key")  # type: ignore[arg-type]
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url=str(settings.omdb_api_url)
    )
    limiter = SlidingWindowRateLimiter(budget, 86_400)
    return OMDbClient(settings, http_client, limiter), http_client, limiter


def respond(payload: dict[str, Any], status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return handler


@pytest.mark.anyio("asyncio")
async def test_get_by_title_maps_kind_and_year() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=HEAT)

    client, http_client, limiter = build_client(handler)
    async with http_client:
        record = await client.get_by_title(" Heat ", year=1995, kind="movie")
        await client.get_by_title("The Wire", kind="tv")

    assert record.imdb_id == "tt0113277"
    assert record.director == "Michael Mann"
    first, second = (request.url.params for request in captured)
    assert first["t"] == "Heat"
    assert first["y"] == "1995"
    assert first["type"] == "movie"
    assert first["apikey"] == "omdb-key"
    assert second["type"] == "series"
    assert "y" not in second
    assert limiter.remaining() == 8


@pytest.mark.anyio("asyncio")
async def test_blank_title_fails_without_spending_budget() -> None:
    client, http_client, limiter = build_client(respond(HEAT))
    async with http_client:
        with pytest.raises(OMDbError):
            await client.get_by_title("  ")
        with pytest.raises(OMDbError):
            await client.get_by_imdb_id("")

    assert limiter.remaining() == 10


@pytest.mark.anyio("asyncio")
async def test_false_response_is_an_error() -> None:
    client, http_client, _ = build_client(
        respond({"Response": "False", "Error": "Movie not found!"})
    )
    async with http_client:
        with pytest.raises(OMDbError, match="Movie not found!"):
            await client.get_by_title("Nope")


@pytest.mark.anyio("asyncio")
async def test_exhausted_budget_blocks_requests() -> None:
    client, http_client, _ = build_client(respond(HEAT), budget=1)
    async with http_client:
        await client.get_by_imdb_id("tt0113277")
        assert not client.can_make_request()
        assert client.remaining_requests() == 0
        with pytest.raises(OMDbError, match="rate limit exceeded"):
            await client.get_by_imdb_id("tt0113277")


@pytest.mark.anyio("asyncio")
async def test_http_and_network_failures() -> None:
    client, http_client, _ = build_client(respond({}, status=503))
    async with http_client:
        with pytest.raises(OMDbError) as excinfo:
            await client.get_by_title("Heat")
    assert excinfo.value.status_code == 503

    def failing(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    client, http_client, _ = build_client(failing)
    async with http_client:
        with pytest.raises(OMDbError, match="Network error"):
            await client.get_by_title("Heat")

