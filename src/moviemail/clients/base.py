from __future__ import annotations

from collections.abc import Sequence, Set
from typing import Protocol

from moviemail.models import Director, FetchResult, RawMovie


class CatalogSource(Protocol):
    """Protocol for catalogs that list the movies made by a director."""

    async def fetch_filmography(
        self, director: Director, *, skip_details: Set[int] = frozenset()
    ) -> list[RawMovie]:
        """Return the director's movies or raise ``SourceUnavailable``."""

    async def fetch_all(
        self, directors: Sequence[Director], *, skip_details: Set[int] = frozenset()
    ) -> list[FetchResult]:
        """Return one result per director, in order, capturing failures instead of raising."""


__all__ = ["CatalogSource"]
