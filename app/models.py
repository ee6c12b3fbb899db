"""Pydantic models describing catalog items, ratings and recommendations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Mapping

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .utils import (
    clean_text,
    coerce_float,
    coerce_int,
    parse_score,
    parse_year,
    split_names,
)

MediaKind = Literal["movie", "tv"]
DataSource = Literal["primary-only", "primary+secondary"]
ReasonKind = Literal["genre", "rating", "actor", "director", "similar", "trending", "year"]
RecommendationCategory = Literal[
    "because_you_watched",
    "genre_match",
    "highly_rated",
    "trending",
    "similar_taste",
]

RECOMMENDATION_CATEGORIES: tuple[RecommendationCategory, ...] = (
    "because_you_watched",
    "genre_match",
    "highly_rated",
    "trending",
    "similar_taste",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogItem(BaseModel):
    """A title as returned by the primary catalog provider."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    kind: MediaKind = Field(
        validation_alias=AliasChoices("kind", "media_type", "mediaType"),
    )
    title: str = Field(default="", validation_alias=AliasChoices("title", "name"))
    overview: str = ""
    poster_path: str | None = None
    backdrop_path: str | None = None
    release_date: str = Field(
        default="",
        validation_alias=AliasChoices("release_date", "first_air_date", "releaseDate"),
    )
    vote_average: float = 0.0
    vote_count: int = 0
    genre_ids: list[int] = Field(default_factory=list)
    popularity: float = 0.0
    original_language: str | None = None
    imdb_id: str | None = None

    @field_validator("title", "overview", "release_date", mode="before")
    @classmethod
    def _blank_text(cls, value: object) -> str:
        return clean_text(value) or ""

    @field_validator("vote_average", "popularity", mode="before")
    @classmethod
    def _neutral_number(cls, value: object) -> float:
        return max(coerce_float(value), 0.0)

    @field_validator("vote_count", mode="before")
    @classmethod
    def _neutral_count(cls, value: object) -> int:
        return max(coerce_int(value, default=0) or 0, 0)

    @field_validator("genre_ids", mode="before")
    @classmethod
    def _unique_genres(cls, value: object) -> list[int]:
        """Accept ids or ``{"id": ...}`` objects, dropping junk and duplicates."""

        if not isinstance(value, (list, tuple, set)):
            return []
        seen: list[int] = []
        for entry in value:
            raw = entry.get("id") if isinstance(entry, Mapping) else entry
            if isinstance(raw, bool):
                continue
            genre_id = coerce_int(raw)
            if genre_id is not None and genre_id not in seen:
                seen.append(genre_id)
        return seen

    @field_validator("poster_path", "backdrop_path", "imdb_id", "original_language", mode="before")
    @classmethod
    def _clean_optional_text(cls, value: object) -> str | None:
        return clean_text(value)

    @classmethod
    def from_tmdb(
        cls, payload: Mapping[str, Any], *, kind: MediaKind | None = None
    ) -> "CatalogItem":
        """Validate a raw TMDB record, tagging it with its media kind."""

        data = dict(payload)
        resolved_kind = kind or data.get("media_type")
        if resolved_kind not in {"movie", "tv"}:
            raise ValueError(f"Unsupported TMDB media type: {resolved_kind!r}")
        data["kind"] = resolved_kind
        data.pop("media_type", None)
        if "genre_ids" not in data and isinstance(data.get("genres"), list):
            data["genre_ids"] = data["genres"]
        return cls.model_validate(data)

    @property
    def key(self) -> tuple[int, str]:
        """Identity of the title across providers and the watchlist."""

        return (self.id, self.kind)

    @property
    def release_year(self) -> int | None:
        return parse_year(self.release_date)


class NormalizedRating(BaseModel):
    """A provider rating expressed as ``score`` out of ``out_of``."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0)
    out_of: Literal[10, 100] = 10
    votes: int | str | None = None

    @property
    def scaled(self) -> float:
        """Return the score on a 0-10 scale."""

        return self.score * 10.0 / self.out_of


class ProviderRatings(BaseModel):
    """Per-provider rating snapshot; a missing entry means "no data"."""

    model_config = ConfigDict(frozen=True)

    primary: NormalizedRating | None = None
    secondary_critic: NormalizedRating | None = None
    aggregator_critics: NormalizedRating | None = None
    aggregator_metascore: NormalizedRating | None = None

    def present(self) -> dict[str, NormalizedRating]:
        """Return the sub-ratings that carry data, keyed by provider slot."""

        slots = ("primary", "secondary_critic", "aggregator_critics", "aggregator_metascore")
        return {
            slot: rating
            for slot in slots
            if (rating := getattr(self, slot)) is not None
        }

    def is_empty(self) -> bool:
        return not self.present()


class SecondaryRating(BaseModel):
    """One entry of OMDb's ``Ratings`` array."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source: str = Field(alias="Source")
    value: str = Field(alias="Value")


class SecondaryRecord(BaseModel):
    """OMDb title record validated at the ingestion boundary.

    OMDb reports every missing value as the string ``"N/A"``; those become
    ``None`` here so nothing downstream has to know about the sentinel.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str | None = Field(default=None, alias="Title")
    year: str | None = Field(default=None, alias="Year")
    imdb_id: str | None = Field(default=None, alias="imdbID")
    imdb_rating: str | None = Field(default=None, alias="imdbRating")
    imdb_votes: str | None = Field(default=None, alias="imdbVotes")
    metascore: str | None = Field(default=None, alias="Metascore")
    ratings: list[SecondaryRating] = Field(default_factory=list, alias="Ratings")
    director: str | None = Field(default=None, alias="Director")
    actors: str | None = Field(default=None, alias="Actors")
    runtime: str | None = Field(default=None, alias="Runtime")
    awards: str | None = Field(default=None, alias="Awards")
    box_office: str | None = Field(default=None, alias="BoxOffice")
    plot: str | None = Field(default=None, alias="Plot")
    language: str | None = Field(default=None, alias="Language")
    type: str | None = Field(default=None, alias="Type")

    @field_validator(
        "title",
        "year",
        "imdb_id",
        "imdb_rating",
        "imdb_votes",
        "metascore",
        "director",
        "actors",
        "runtime",
        "awards",
        "box_office",
        "plot",
        "language",
        "type",
        mode="before",
    )
    @classmethod
    def _drop_sentinels(cls, value: object) -> str | None:
        return clean_text(value)

    @field_validator("ratings", mode="before")
    @classmethod
    def _usable_ratings(cls, value: object) -> list[object]:
        if not isinstance(value, list):
            return []
        return [
            entry
            for entry in value
            if isinstance(entry, Mapping)
            and isinstance(entry.get("Source"), str)
            and isinstance(entry.get("Value"), str)
        ]

    def rating_value(self, source: str) -> str | None:
        """Return the raw value reported for a ``Ratings`` source."""

        for rating in self.ratings:
            if rating.source == source:
                return clean_text(rating.value)
        return None


class EnrichedItem(CatalogItem):
    """A catalog item merged with multi-provider ratings and credits."""

    ratings: ProviderRatings | None = None
    aggregated_score: float = Field(default=0.0, ge=0, le=10)
    combined_rating: float | None = None
    data_source: DataSource = "primary-only"

    director: str | None = None
    actors: list[str] = Field(default_factory=list)
    runtime: str | None = None
    awards: str | None = None
    box_office: str | None = None
    plot: str | None = None
    languages: list[str] = Field(default_factory=list)

    @field_validator("ratings", mode="before")
    @classmethod
    def _usable_provider_ratings(cls, value: object) -> object:
        if value is None or isinstance(value, ProviderRatings):
            return value
        if not isinstance(value, Mapping):
            return None
        try:
            return ProviderRatings.model_validate(value)
        except ValidationError:
            return None

    @field_validator("aggregated_score", mode="before")
    @classmethod
    def _scaled_score(cls, value: object) -> float:
        score = parse_score(value)
        if score is None or score > 10:
            return 0.0
        return score

    @field_validator("combined_rating", mode="before")
    @classmethod
    def _optional_score(cls, value: object) -> float | None:
        score = parse_score(value)
        if score is None or score > 10:
            return None
        return score

    @field_validator("data_source", mode="before")
    @classmethod
    def _known_source(cls, value: object) -> object:
        if value in ("primary-only", "primary+secondary"):
            return value
        return "primary-only"

    @field_validator("runtime", "awards", "box_office", "plot", mode="before")
    @classmethod
    def _clean_extras(cls, value: object) -> str | None:
        return clean_text(value)

    @field_validator("actors", "languages", mode="before")
    @classmethod
    def _split_credits(cls, value: object) -> list[str]:
        return split_names(value)

    @field_validator("director", mode="before")
    @classmethod
    def _clean_director(cls, value: object) -> str | None:
        return clean_text(value)

    @property
    def effective_rating(self) -> float:
        """Aggregated score when one exists, otherwise the catalog rating."""

        if self.aggregated_score > 0:
            return self.aggregated_score
        return self.vote_average


class SavedItem(EnrichedItem):
    """A watchlist entry held by the client."""

    added_at: datetime = Field(default_factory=_utcnow)
    watched: bool = False
    watched_at: datetime | None = None


class GenreAffinity(BaseModel):
    genre_id: int
    name: str
    weight: float = Field(ge=0)


class RatingRange(BaseModel):
    min: float
    max: float


class YearRange(BaseModel):
    min: int
    max: int


class UserPreferences(BaseModel):
    """Taste summary derived from the saved-items list."""

    favorite_genres: list[GenreAffinity] = Field(default_factory=list)
    preferred_rating_range: RatingRange
    preferred_year_range: YearRange
    average_rating: float
    total_watched: int
    preferred_languages: list[str] = Field(default_factory=list)
    actor_preferences: list[str] = Field(default_factory=list)
    director_preferences: list[str] = Field(default_factory=list)

    def genre_weight(self, genre_id: int) -> float:
        for affinity in self.favorite_genres:
            if affinity.genre_id == genre_id:
                return affinity.weight
        return 0.0


class RecommendationReason(BaseModel):
    kind: ReasonKind
    human_text: str
    confidence: float = Field(ge=0, le=1)


class Recommendation(BaseModel):
    """A scored, explained and categorised candidate."""

    item: EnrichedItem
    score: float = Field(ge=0, le=1)
    reasons: list[RecommendationReason] = Field(default_factory=list)
    category: RecommendationCategory
    based_on: EnrichedItem | None = None


class RecommendationPage(BaseModel):
    items: list[Recommendation] = Field(default_factory=list)
    page: int
    limit: int
    total: int
    total_pages: int


class WatchlistPayload(BaseModel):
    """Request body carrying the client-held saved-items list."""

    watchlist: list[Any] = Field(default_factory=list)

    @field_validator("watchlist", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return [] if value is None else value


class RecommendationRequest(WatchlistPayload):
    category: str = "all"
    limit: int = Field(default=20, ge=1, le=100)
    page: int = Field(default=1, ge=1)

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: object) -> object:
        return value or "all"

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        if value != "all" and value not in RECOMMENDATION_CATEGORIES:
            raise ValueError(f"Unknown recommendation category: {value}")
        return value
