"""Tests for the TMDB catalog client."""

import httpx
import pytest
import respx

from moviemail.clients.tmdb import TmdbClient
from moviemail.errors import DirectorNotFound, SourceUnavailable
from moviemail.models import Classification, Director
from tests.fixtures.tmdb_responses import (
    DUNE_PART_TWO_DETAILS,
    INVALID_API_KEY_RESPONSE,
    NEXT_FLOOR_DETAILS,
    NOLAN_CREDITS_RESPONSE,
    OPPENHEIMER_DETAILS,
    PERSON_NOT_FOUND_RESPONSE,
    UNTITLED_DETAILS,
    VILLENEUVE_CREDITS_RESPONSE,
)

BASE_URL = "https://api.themoviedb.org/3"
VILLENEUVE = Director(id="137427", name="Denis Villeneuve")
NOLAN = Director(id="525", name="Christopher Nolan")


@pytest.fixture
def client():
    """Create a TmdbClient that does not wait between retries."""
    return TmdbClient(api_key="test-api-key", retry_wait=0)


def _mock_villeneuve() -> None:
    respx.get(f"{BASE_URL}/person/137427/movie_credits").mock(
        return_value=httpx.Response(200, json=VILLENEUVE_CREDITS_RESPONSE)
    )
    respx.get(f"{BASE_URL}/movie/693134").mock(
        return_value=httpx.Response(200, json=DUNE_PART_TWO_DETAILS)
    )
    respx.get(f"{BASE_URL}/movie/1170608").mock(
        return_value=httpx.Response(200, json=UNTITLED_DETAILS)
    )
    respx.get(f"{BASE_URL}/movie/60000").mock(
        return_value=httpx.Response(200, json=NEXT_FLOOR_DETAILS)
    )


class TestTmdbClient:
    """Test cases for TmdbClient."""

    @pytest.mark.asyncio
    async def test_client_initialization(self):
        """Test client is configured with headers and timeout."""
        client = TmdbClient(api_key="key", base_url="https://tmdb.example/3/", timeout=5.0)

        assert str(client._client.base_url).rstrip("/") == "https://tmdb.example/3"
        assert client._client.headers["User-Agent"].startswith("moviemail/")
        assert client._client.headers["Accept"] == "application/json"
        assert client._client.timeout.read == 5.0

        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_filmography_keeps_directing_credits(self, client):
        """Only crew credits with job Director are returned, without duplicate jobs."""
        _mock_villeneuve()

        movies = await client.fetch_filmography(VILLENEUVE)

        assert [movie.id for movie in movies] == [693134, 1170608, 60000]
        assert all(movie.id != 9999 for movie in movies)

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_filmography_merges_details(self, client):
        """Movie details supply the imdb id, runtime and classification."""
        _mock_villeneuve()

        movies = {movie.id: movie for movie in await client.fetch_filmography(VILLENEUVE)}

        dune = movies[693134]
        assert dune.imdb_id == "tt15239678"
        assert dune.runtime == 167
        assert dune.classification is Classification.FEATURE
        assert dune.overview == "Follow the mythic journey of Paul Atreides."

        untitled = movies[1170608]
        assert untitled.imdb_id is None
        assert untitled.release_date is None
        assert untitled.classification is Classification.PLACEHOLDER

        assert movies[60000].classification is Classification.SHORT

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_filmography_sends_api_key_and_language(self, client):
        """Requests carry the api_key and language query parameters."""
        route = respx.get(f"{BASE_URL}/person/525/movie_credits").mock(
            return_value=httpx.Response(200, json={"crew": []})
        )

        assert await client.fetch_filmography(NOLAN) == []

        request = route.calls[0].request
        assert request.url.params["api_key"] == "test-api-key"
        assert request.url.params["language"] == "en-US"

    @pytest.mark.asyncio
    async def test_skip_details_avoids_detail_requests(self, client):
        """Movies listed in skip_details are returned without a details lookup."""
        with respx.mock(assert_all_called=False) as router:
            router.get(f"{BASE_URL}/person/525/movie_credits").mock(
                return_value=httpx.Response(200, json=NOLAN_CREDITS_RESPONSE)
            )
            details = router.get(f"{BASE_URL}/movie/872585").mock(
                return_value=httpx.Response(200, json=OPPENHEIMER_DETAILS)
            )

            movies = await client.fetch_filmography(NOLAN, skip_details={872585})

        assert [movie.id for movie in movies] == [872585]
        assert movies[0].imdb_id is None
        assert details.call_count == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_failed_details_degrade_to_bare_credit(self, client):
        """A details failure keeps the movie but without an imdb id."""
        respx.get(f"{BASE_URL}/person/525/movie_credits").mock(
            return_value=httpx.Response(200, json=NOLAN_CREDITS_RESPONSE)
        )
        respx.get(f"{BASE_URL}/movie/872585").mock(return_value=httpx.Response(404, json={}))

        movies = await client.fetch_filmography(NOLAN)

        assert len(movies) == 1
        assert movies[0].title == "Oppenheimer"
        assert movies[0].imdb_id is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_unknown_person_raises_director_not_found(self, client):
        respx.get(f"{BASE_URL}/person/137427/movie_credits").mock(
            return_value=httpx.Response(404, json=PERSON_NOT_FOUND_RESPONSE)
        )

        with pytest.raises(DirectorNotFound):
            await client.fetch_filmography(VILLENEUVE)

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_api_key_raises_source_unavailable(self, client):
        route = respx.get(f"{BASE_URL}/person/137427/movie_credits").mock(
            return_value=httpx.Response(401, json=INVALID_API_KEY_RESPONSE)
        )

        with pytest.raises(SourceUnavailable) as exc_info:
            await client.fetch_filmography(VILLENEUVE)

        assert exc_info.value.status_code == 401
        assert not isinstance(exc_info.value, DirectorNotFound)
        # Client errors are not retried
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_errors_are_retried(self, client):
        """5xx responses are retried before succeeding."""
        route = respx.get(f"{BASE_URL}/person/525/movie_credits").mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json={"crew": []}),
            ]
        )

        assert await client.fetch_filmography(NOLAN) == []
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_exhausted_raise_source_unavailable(self, client):
        route = respx.get(f"{BASE_URL}/person/525/movie_credits").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(SourceUnavailable):
            await client.fetch_filmography(NOLAN)

        assert route.call_count == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_all_keeps_order_and_captures_failures(self, client):
        """fetch_all returns one tagged result per director, in configured order."""
        respx.get(f"{BASE_URL}/person/137427/movie_credits").mock(
            return_value=httpx.Response(404, json=PERSON_NOT_FOUND_RESPONSE)
        )
        respx.get(f"{BASE_URL}/person/525/movie_credits").mock(
            return_value=httpx.Response(200, json=NOLAN_CREDITS_RESPONSE)
        )
        respx.get(f"{BASE_URL}/movie/872585").mock(
            return_value=httpx.Response(200, json=OPPENHEIMER_DETAILS)
        )

        results = await client.fetch_all([VILLENEUVE, NOLAN])

        assert [result.director for result in results] == [VILLENEUVE, NOLAN]
        assert results[0].ok is False
        assert "137427" in results[0].error
        assert results[1].ok is True
        assert results[1].movies[0].imdb_id == "tt15398776"

    @pytest.mark.asyncio
    @respx.mock
    async def test_async_context_manager_closes_http_client(self):
        respx.get(f"{BASE_URL}/person/525/movie_credits").mock(
            return_value=httpx.Response(200, json={"crew": []})
        )

        async with TmdbClient("key", retry_wait=0) as client:
            assert await client.fetch_filmography(NOLAN) == []

        assert client._client.is_closed
