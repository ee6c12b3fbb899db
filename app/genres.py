"""TMDB genre identifiers used to label taste profiles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


MediaKind = Literal["movie", "tv"]


@dataclass(frozen=True)
class GenreDefinition:
    """Describes a TMDB genre and the media kinds it applies to."""

    id: int
    name: str
    kinds: tuple[MediaKind, ...]


GENRES: tuple[GenreDefinition, ...] = (
    GenreDefinition(28, "Action", ("movie",)),
    GenreDefinition(12, "Adventure", ("movie",)),
    GenreDefinition(16, "Animation", ("movie", "tv")),
    GenreDefinition(35, "Comedy", ("movie", "tv")),
    GenreDefinition(80, "Crime", ("movie", "tv")),
    GenreDefinition(99, "Documentary", ("movie", "tv")),
    GenreDefinition(18, "Drama", ("movie", "tv")),
    GenreDefinition(10751, "Family", ("movie", "tv")),
    GenreDefinition(14, "Fantasy", ("movie",)),
    GenreDefinition(36, "History", ("movie",)),
    GenreDefinition(27, "Horror", ("movie",)),
    GenreDefinition(10402, "Music", ("movie",)),
    GenreDefinition(9648, "Mystery", ("movie", "tv")),
    GenreDefinition(10749, "Romance", ("movie",)),
    GenreDefinition(878, "Science Fiction", ("movie",)),
    GenreDefinition(10770, "TV Movie", ("movie",)),
    GenreDefinition(53, "Thriller", ("movie",)),
    GenreDefinition(10752, "War", ("movie",)),
    GenreDefinition(37, "Western", ("movie", "tv")),
    GenreDefinition(10759, "Action & Adventure", ("tv",)),
    GenreDefinition(10762, "Kids", ("tv",)),
    GenreDefinition(10763, "News", ("tv",)),
    GenreDefinition(10764, "Reality", ("tv",)),
    GenreDefinition(10765, "Sci-Fi & Fantasy", ("tv",)),
    GenreDefinition(10766, "Soap", ("tv",)),
    GenreDefinition(10767, "Talk", ("tv",)),
    GenreDefinition(10768, "War & Politics", ("tv",)),
)

GENRE_NAMES: dict[int, str] = {definition.id: definition.name for definition in GENRES}


def genre_name(genre_id: int) -> str:
    """Return the display name for a genre id, or ``"Unknown"``."""

    return GENRE_NAMES.get(genre_id, "Unknown")


def genres_for_kind(kind: MediaKind) -> list[dict[str, object]]:
    """Return the static genre list in TMDB's ``{"id", "name"}`` shape."""

    return [
        {"id": definition.id, "name": definition.name}
        for definition in GENRES
        if kind in definition.kinds
    ]
