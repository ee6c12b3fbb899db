"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .tuning import DEFAULT_TUNING, EngineTuning


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="CineScope", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    omdb_api_key: str | None = Field(default=None, alias="OMDB_API_KEY")

    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_image_url: HttpUrl = Field(
        default="https://image.tmdb.org/t/p", alias="TMDB_IMAGE_URL"
    )
    omdb_api_url: HttpUrl = Field(
        default="https://www.omdbapi.com", alias="OMDB_API_URL"
    )

    # TMDB allows 40 requests per 10 seconds; keep a buffer.
    tmdb_rate_limit: int = Field(default=35, alias="TMDB_RATE_LIMIT", ge=1)
    tmdb_rate_window_seconds: float = Field(
        default=10.0, alias="TMDB_RATE_WINDOW", gt=0
    )
    # OMDb free tier allows 1000 requests per day.
    omdb_daily_limit: int = Field(default=950, alias="OMDB_DAILY_LIMIT", ge=0)

    default_cache_seconds: int = Field(default=300, alias="CACHE_TTL", ge=0)
    search_cache_seconds: int = Field(default=120, alias="SEARCH_CACHE_TTL", ge=0)
    details_cache_seconds: int = Field(default=900, alias="DETAILS_CACHE_TTL", ge=0)
    trending_cache_seconds: int = Field(
        default=1_800, alias="TRENDING_CACHE_TTL", ge=0
    )
    genre_cache_seconds: int = Field(default=86_400, alias="GENRE_CACHE_TTL", ge=0)
    cache_cleanup_seconds: int = Field(
        default=600, alias="CACHE_CLEANUP_INTERVAL", ge=1
    )

    enrichment_concurrency: int = Field(
        default=5, alias="ENRICHMENT_CONCURRENCY", ge=1, le=50
    )
    watchlist_fetch_limit: int = Field(
        default=50, alias="WATCHLIST_FETCH_LIMIT", ge=1, le=500
    )
    similar_seed_limit: int = Field(
        default=5, alias="SIMILAR_SEED_LIMIT", ge=0, le=50
    )

    recommendation_min_score: float = Field(
        default=DEFAULT_TUNING.min_score,
        alias="RECOMMENDATION_MIN_SCORE",
        ge=0.0,
        le=1.0,
    )
    popularity_normalizer: float = Field(
        default=DEFAULT_TUNING.popularity_normalizer,
        alias="POPULARITY_NORMALIZER",
        gt=0,
    )
    rating_band_offset: float = Field(
        default=DEFAULT_TUNING.rating_band_offset,
        alias="RATING_BAND_OFFSET",
        ge=0.0,
        le=10.0,
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_api_key", "omdb_api_key", mode="before")
    @classmethod
    def _strip_blank_keys(cls, value: object) -> object:
        """Treat blank API keys as missing."""

        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @property
    def engine_tuning(self) -> EngineTuning:
        """Return the scoring constants with any configured overrides applied."""

        return DEFAULT_TUNING.with_overrides(
            min_score=self.recommendation_min_score,
            popularity_normalizer=self.popularity_normalizer,
            rating_band_offset=self.rating_band_offset,
        )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
