from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence, Set
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from moviemail import __version__
from moviemail.errors import DirectorNotFound, MalformedRecord, SourceUnavailable
from moviemail.models import DEFAULT_SHORT_RUNTIME_MINUTES, Director, FetchResult, RawMovie

logger = logging.getLogger(__name__)

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 20.0
DEFAULT_LANGUAGE = "en-US"
DIRECTOR_JOB = "Director"
USER_AGENT = f"moviemail/{__version__}"


class TmdbClient:
    """Asynchronous TMDB client that lists the movies a person has directed."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = TMDB_API_BASE_URL,
        language: str = DEFAULT_LANGUAGE,
        timeout: float = DEFAULT_TIMEOUT,
        short_runtime_minutes: int = DEFAULT_SHORT_RUNTIME_MINUTES,
        max_attempts: int = 3,
        retry_wait: float = 0.5,
        max_concurrency: int = 8,
    ) -> None:
        self._api_key = api_key
        self._language = language
        self._short_runtime_minutes = short_runtime_minutes
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_filmography(
        self,
        director: Director,
        *,
        skip_details: Set[int] = frozenset(),
    ) -> list[RawMovie]:
        """Return every movie credited to ``director`` as director.

        Movie details (imdb id, runtime, status) are looked up for each credit not in
        ``skip_details``; callers pass the archived ids there since those movies are
        discarded anyway.
        """
        try:
            credits = await self._get_json(f"/person/{director.id}/movie_credits")
        except SourceUnavailable as exc:
            if exc.status_code == 404:
                raise DirectorNotFound(
                    f"TMDB has no person {director.id} ({director.name})", status_code=404
                ) from exc
            raise

        crew = credits.get("crew") if isinstance(credits, Mapping) else None
        directing = [
            credit
            for credit in (crew or [])
            if isinstance(credit, Mapping) and credit.get("job") == DIRECTOR_JOB
        ]

        payloads = await asyncio.gather(
            *(self._with_details(credit, skip_details) for credit in directing)
        )

        movies: list[RawMovie] = []
        for payload in payloads:
            try:
                movies.append(
                    RawMovie.from_tmdb(payload, short_runtime_minutes=self._short_runtime_minutes)
                )
            except MalformedRecord as exc:
                logger.warning("[FETCH] %s: dropping record: %s", director.name, exc)
        logger.info("[FETCH] %s: %d directing credits", director.name, len(movies))
        return movies

    async def fetch_all(
        self,
        directors: Sequence[Director],
        *,
        skip_details: Set[int] = frozenset(),
    ) -> list[FetchResult]:
        """Fetch every director concurrently; results keep the order of ``directors``."""
        return list(
            await asyncio.gather(
                *(self._fetch_result(director, skip_details) for director in directors)
            )
        )

    async def get_movie(self, movie_id: int) -> dict[str, Any]:
        return await self._get_json(f"/movie/{movie_id}")

    async def _fetch_result(self, director: Director, skip_details: Set[int]) -> FetchResult:
        try:
            movies = await self.fetch_filmography(director, skip_details=skip_details)
        except SourceUnavailable as exc:
            logger.warning("[FETCH] %s: %s", director.name, exc)
            return FetchResult(director=director, error=str(exc))
        return FetchResult(director=director, movies=movies)

    async def _with_details(
        self, credit: Mapping[str, Any], skip_details: Set[int]
    ) -> Mapping[str, Any]:
        movie_id = credit.get("id")
        if movie_id is None or movie_id in skip_details:
            return credit
        try:
            details = await self.get_movie(movie_id)
        except SourceUnavailable as exc:
            # The bare credit has no imdb id, so the movie is retried next run
            logger.warning("[FETCH] Details for movie %s unavailable: %s", movie_id, exc)
            return credit
        return {**credit, **details}

    async def _get_json(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        query = {"api_key": self._api_key, "language": self._language, **(params or {})}
        try:
            async with self._semaphore:
                async for attempt in self._retry_policy():
                    with attempt:
                        response = await self._client.get(path, params=query)
                        response.raise_for_status()
                        return response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise SourceUnavailable(
                f"TMDB request {path} failed with HTTP {status}", status_code=status
            ) from exc
        except httpx.TransportError as exc:
            raise SourceUnavailable(f"TMDB request {path} failed: {exc}") from exc
        except ValueError as exc:  # response was not JSON
            raise SourceUnavailable(f"TMDB request {path} returned invalid JSON") from exc
        raise SourceUnavailable(f"TMDB request {path} failed after retries")

    def _retry_policy(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._retry_wait, max=6),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

    async def __aenter__(self) -> TmdbClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.close()


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


__all__ = ["TMDB_API_BASE_URL", "TmdbClient"]
