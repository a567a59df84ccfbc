from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from moviemail.errors import MalformedRecord

IMDB_TITLE_URL = "https://www.imdb.com/title/{imdb_id}/"
TMDB_MOVIE_URL = "https://www.themoviedb.org/movie/{movie_id}"

# Academy definition of a short: 40 minutes or less including credits
DEFAULT_SHORT_RUNTIME_MINUTES = 40

# Working titles TMDB lists before a movie is announced; a bare "Project" or
# "Project <number>" only, since real titles such as "Project X" exist
DEFAULT_PLACEHOLDER_PATTERNS: tuple[str, ...] = (
    r"\buntitled\b",
    r"^(tba|tbd|tbc)$",
    r"^\s*project(\s+\d+)?\s*$",
    r"\bworking title\b",
)

# Canceled movies will never be released, so they are never announced
_UNRELEASED_STATUSES = frozenset({"rumored", "planned", "canceled"})


class Director(BaseModel):
    """A director to watch, as configured by the user."""

    id: str
    name: str

    model_config = {"frozen": True, "str_strip_whitespace": True}


class Classification(str, Enum):
    FEATURE = "feature"
    SHORT = "short"
    PLACEHOLDER = "placeholder"
    UNKNOWN = "unknown"


class RawMovie(BaseModel):
    """Movie as listed in a director's filmography, before any filtering."""

    id: int
    title: str = ""
    release_date: date | None = None
    imdb_id: str | None = None
    classification: Classification = Classification.UNKNOWN
    runtime: int | None = None
    overview: str | None = None
    poster_path: str | None = None

    model_config = {"frozen": True, "extra": "ignore"}

    @classmethod
    def from_tmdb(
        cls,
        payload: Mapping[str, Any],
        *,
        short_runtime_minutes: int = DEFAULT_SHORT_RUNTIME_MINUTES,
    ) -> RawMovie:
        """Build a record from a TMDB credit payload, optionally merged with movie details.

        Only a missing or non-numeric id is fatal; every other defect degrades to an
        empty field so the quality filters can reject the movie.
        """
        raw_id = payload.get("id")
        try:
            movie_id = int(raw_id) if raw_id is not None else None
        except (TypeError, ValueError):
            movie_id = None
        if movie_id is None:
            raise MalformedRecord(f"catalog record without a movie id: {payload.get('title')!r}")

        runtime = _parse_runtime(payload.get("runtime"))
        return cls(
            id=movie_id,
            title=str(payload.get("title") or "").strip(),
            release_date=_parse_date(payload.get("release_date")),
            imdb_id=(str(payload.get("imdb_id") or "").strip() or None),
            classification=_classify(payload.get("status"), runtime, short_runtime_minutes),
            runtime=runtime,
            overview=payload.get("overview") or None,
            poster_path=payload.get("poster_path") or None,
        )

    @property
    def has_imdb_id(self) -> bool:
        return bool(self.imdb_id and self.imdb_id.strip())

    def completeness(self, is_placeholder_title: bool) -> tuple[int, ...]:
        """Rank used to pick the best record among duplicates; higher is better."""
        return (
            int(self.has_imdb_id),
            int(bool(self.title) and not is_placeholder_title),
            int(self.release_date is not None),
            int(self.runtime is not None),
            int(self.classification is not Classification.UNKNOWN),
        )


class NotifiableMovie(BaseModel):
    """Movie that passed every filter and will be announced."""

    id: int
    title: str
    imdb_id: str
    release_date: date | None = None
    directors: list[str] = Field(default_factory=list)
    runtime: int | None = None
    overview: str | None = None
    poster_path: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_raw(cls, movie: RawMovie, directors: Iterable[str]) -> NotifiableMovie:
        return cls(
            id=movie.id,
            title=movie.title,
            imdb_id=(movie.imdb_id or "").strip(),
            release_date=movie.release_date,
            directors=list(directors),
            runtime=movie.runtime,
            overview=movie.overview,
            poster_path=movie.poster_path,
        )

    @property
    def year(self) -> int | None:
        return self.release_date.year if self.release_date else None

    @property
    def imdb_url(self) -> str:
        return IMDB_TITLE_URL.format(imdb_id=self.imdb_id)

    @property
    def tmdb_url(self) -> str:
        return TMDB_MOVIE_URL.format(movie_id=self.id)


class ArchiveRecord(BaseModel):
    """Set of TMDB movie ids that have already been announced."""

    ids: frozenset[int] = Field(default_factory=frozenset)

    model_config = {"frozen": True}

    def __contains__(self, movie_id: object) -> bool:
        return movie_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)

    def merge(self, ids: Iterable[int]) -> ArchiveRecord:
        """Return a new record holding the union of both id sets."""
        incoming = frozenset(ids)
        if incoming <= self.ids:
            return self
        return ArchiveRecord(ids=self.ids | incoming)


class FetchResult(BaseModel):
    """Outcome of fetching one director's filmography."""

    director: Director
    movies: list[RawMovie] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RejectionReason(str, Enum):
    ALREADY_NOTIFIED = "already_notified"
    MISSING_IMDB_ID = "missing_imdb_id"
    PLACEHOLDER_TITLE = "placeholder_title"
    SHORT_FILM = "short_film"
    MISSING_RELEASE_DATE = "missing_release_date"


class Rejection(BaseModel):
    movie: RawMovie
    reasons: list[RejectionReason]


class PipelineResult(BaseModel):
    """Movies to announce plus the archive to persist once they are announced."""

    notifications: list[NotifiableMovie] = Field(default_factory=list)
    archive: ArchiveRecord = Field(default_factory=ArchiveRecord)
    rejections: list[Rejection] = Field(default_factory=list)

    def rejected_for(self, reason: RejectionReason) -> list[RawMovie]:
        return [rejection.movie for rejection in self.rejections if reason in rejection.reasons]


class RunSummary(BaseModel):
    """Outcome of a complete run."""

    dry_run: bool = False
    movies: list[NotifiableMovie] = Field(default_factory=list)
    notified: list[str] = Field(default_factory=list)
    failed_directors: list[str] = Field(default_factory=list)
    rejected: int = 0
    delivered: bool = False
    archive_saved: bool = False
    archive_size: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def nothing_new(self) -> bool:
        return not self.notified


def _parse_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _parse_runtime(value: Any) -> int | None:
    try:
        runtime = int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
    # TMDB reports 0 when the runtime is unknown
    return runtime if runtime and runtime > 0 else None


def _classify(status: Any, runtime: int | None, short_runtime_minutes: int) -> Classification:
    if isinstance(status, str) and status.strip().lower() in _UNRELEASED_STATUSES:
        return Classification.PLACEHOLDER
    if runtime is None:
        return Classification.UNKNOWN
    if runtime <= short_runtime_minutes:
        return Classification.SHORT
    return Classification.FEATURE


__all__ = [
    "ArchiveRecord",
    "Classification",
    "DEFAULT_PLACEHOLDER_PATTERNS",
    "DEFAULT_SHORT_RUNTIME_MINUTES",
    "Director",
    "FetchResult",
    "NotifiableMovie",
    "PipelineResult",
    "RawMovie",
    "Rejection",
    "RejectionReason",
    "RunSummary",
]
