"""Client for OMDb, the secondary ratings provider."""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..models import MediaKind, SecondaryRecord
from ..rate_limit import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

OMDbType = Literal["movie", "series", "episode"]
PlotLength = Literal["short", "full"]

KIND_TO_OMDB_TYPE: dict[str, OMDbType] = {"movie": "movie", "tv": "series"}


class OMDbError(RuntimeError):
    """Raised when OMDb cannot satisfy a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OMDbClient:
    """Thin async wrapper around the OMDb API with a daily request budget."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        rate_limiter: SlidingWindowRateLimiter,
    ):
        if not settings.omdb_api_key:
            raise ValueError("OMDb API key is required when initialising OMDbClient")
        self._settings = settings
        self._client = http_client
        self._rate_limiter = rate_limiter

    async def get_by_title(
        self,
        title: str,
        *,
        year: int | None = None,
        kind: MediaKind | None = None,
        plot: PlotLength = "short",
    ) -> SecondaryRecord:
        normalized = (title or "").strip()
        if not normalized:
            raise OMDbError("Title cannot be empty")
        params: dict[str, Any] = {"t": normalized, "plot": plot}
        if year:
            params["y"] = year
        if kind:
            params["type"] = KIND_TO_OMDB_TYPE[kind]
        return self._parse_record(await self._request(params))

    async def get_by_imdb_id(
        self, imdb_id: str, *, plot: PlotLength = "short"
    ) -> SecondaryRecord:
        normalized = (imdb_id or "").strip()
        if not normalized:
            raise OMDbError("IMDb ID cannot be empty")
        return self._parse_record(await self._request({"i": normalized, "plot": plot}))

    def remaining_requests(self) -> int:
        return self._rate_limiter.remaining()

    def can_make_request(self) -> bool:
        return self._rate_limiter.can_acquire()

    async def _request(self, params: dict[str, Any]) -> dict[str, Any]:
        if not self._rate_limiter.try_acquire():
            raise OMDbError("OMDb API rate limit exceeded. Please try again later.")

        query = {"apikey": self._settings.omdb_api_key, **params}
        try:
            response = await self._client.get("/", params=query)
        except httpx.HTTPError as exc:
            raise OMDbError(f"Network error talking to OMDb: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "OMDb request failed (%s): %s", response.status_code, response.text
            )
            raise OMDbError(
                f"HTTP {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise OMDbError("Invalid response from OMDb") from exc
        if not isinstance(data, dict):
            raise OMDbError("Invalid response from OMDb")
        # OMDb reports lookup failures in the body with a 200 status.
        if data.get("Response") == "False":
            raise OMDbError(str(data.get("Error") or "OMDb API returned an error"))
        return data

    @staticmethod
    def _parse_record(data: dict[str, Any]) -> SecondaryRecord:
        try:
            return SecondaryRecord.model_validate(data)
        except ValidationError as exc:
            raise OMDbError("Invalid record returned by OMDb") from exc
