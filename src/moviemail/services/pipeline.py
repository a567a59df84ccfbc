"""Dedup and filter pipeline that decides which movies are worth announcing."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from moviemail.models import (
    DEFAULT_PLACEHOLDER_PATTERNS,
    ArchiveRecord,
    Classification,
    Director,
    NotifiableMovie,
    PipelineResult,
    RawMovie,
    Rejection,
    RejectionReason,
)

logger = logging.getLogger(__name__)


class TitleRules:
    """Decides whether a catalog title is a placeholder for an unannounced movie.

    A title is a placeholder when it is blank, or when it matches a deny pattern
    and no allow pattern. Patterns are case-insensitive regular expressions.
    """

    def __init__(
        self,
        deny_patterns: Iterable[str] = DEFAULT_PLACEHOLDER_PATTERNS,
        allow_patterns: Iterable[str] = (),
    ) -> None:
        self._deny = [re.compile(pattern, re.IGNORECASE) for pattern in deny_patterns]
        self._allow = [re.compile(pattern, re.IGNORECASE) for pattern in allow_patterns]

    def is_placeholder(self, title: str | None) -> bool:
        text = (title or "").strip()
        if not text:
            return True
        if any(pattern.search(text) for pattern in self._allow):
            return False
        return any(pattern.search(text) for pattern in self._deny)


@dataclass(frozen=True)
class QualityRules:
    title_rules: TitleRules = field(default_factory=TitleRules)
    require_release_date: bool = False


@dataclass
class _Candidate:
    movie: RawMovie
    director_index: int
    directors: list[str]


class FilterPipeline:
    """Turns per-director filmographies into the movies to announce.

    The pipeline is pure: the input archive is never mutated and the returned
    archive is always a superset of it. Movies rejected by a quality rule are not
    archived, so they are evaluated again on the next run.
    """

    def __init__(self, rules: QualityRules | None = None) -> None:
        self._rules = rules or QualityRules()

    @property
    def rules(self) -> QualityRules:
        return self._rules

    def process(
        self,
        batches: Sequence[tuple[Director, Sequence[RawMovie]]],
        archive: ArchiveRecord,
    ) -> PipelineResult:
        candidates = self._dedupe(batches)

        accepted: list[_Candidate] = []
        rejections: list[Rejection] = []
        for candidate in candidates:
            if candidate.movie.id in archive:
                rejections.append(
                    Rejection(movie=candidate.movie, reasons=[RejectionReason.ALREADY_NOTIFIED])
                )
                continue

            reasons = self._quality_failures(candidate.movie)
            if reasons:
                logger.info(
                    "[PIPELINE] Skipping %s (%s): %s",
                    candidate.movie.title or "<no title>",
                    candidate.movie.id,
                    ", ".join(reason.value for reason in reasons),
                )
                rejections.append(Rejection(movie=candidate.movie, reasons=reasons))
                continue

            accepted.append(candidate)

        accepted.sort(key=_sort_key)
        notifications = [
            NotifiableMovie.from_raw(candidate.movie, candidate.directors) for candidate in accepted
        ]
        updated = archive.merge(movie.id for movie in notifications)

        logger.info(
            "[PIPELINE] %d unique movies, %d to notify, %d rejected",
            len(candidates),
            len(notifications),
            len(rejections),
        )
        return PipelineResult(notifications=notifications, archive=updated, rejections=rejections)

    def _dedupe(
        self, batches: Sequence[tuple[Director, Sequence[RawMovie]]]
    ) -> list[_Candidate]:
        by_id: dict[int, _Candidate] = {}
        for index, (director, movies) in enumerate(batches):
            for movie in movies:
                existing = by_id.get(movie.id)
                if existing is None:
                    by_id[movie.id] = _Candidate(movie=movie, director_index=index, directors=[director.name])
                    continue

                if director.name not in existing.directors:
                    existing.directors.append(director.name)
                # Ties keep the first occurrence
                if self._completeness(movie) > self._completeness(existing.movie):
                    existing.movie = movie
        return list(by_id.values())

    def _completeness(self, movie: RawMovie) -> tuple[int, ...]:
        return movie.completeness(self._rules.title_rules.is_placeholder(movie.title))

    def _quality_failures(self, movie: RawMovie) -> list[RejectionReason]:
        reasons: list[RejectionReason] = []
        if not movie.has_imdb_id:
            reasons.append(RejectionReason.MISSING_IMDB_ID)
        if (
            movie.classification is Classification.PLACEHOLDER
            or self._rules.title_rules.is_placeholder(movie.title)
        ):
            reasons.append(RejectionReason.PLACEHOLDER_TITLE)
        if movie.classification is Classification.SHORT:
            reasons.append(RejectionReason.SHORT_FILM)
        if self._rules.require_release_date and movie.release_date is None:
            reasons.append(RejectionReason.MISSING_RELEASE_DATE)
        return reasons


def _sort_key(candidate: _Candidate) -> tuple[int, int, date, str, int]:
    movie = candidate.movie
    # Unknown release dates sort after every known one
    return (
        candidate.director_index,
        0 if movie.release_date is not None else 1,
        movie.release_date or date.max,
        movie.title.casefold(),
        movie.id,
    )


__all__ = ["DEFAULT_PLACEHOLDER_PATTERNS", "FilterPipeline", "QualityRules", "TitleRules"]
