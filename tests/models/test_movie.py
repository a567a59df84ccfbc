"""Tests for the movie data model."""

from datetime import date

import pytest

from moviemail.errors import MalformedRecord
from moviemail.models import ArchiveRecord, Classification, NotifiableMovie, RawMovie


class TestRawMovieFromTmdb:
    def test_parses_credit_payload(self):
        movie = RawMovie.from_tmdb(
            {
                "id": 693134,
                "title": " Dune: Part Two ",
                "release_date": "2024-02-27",
                "imdb_id": "tt15239678",
                "runtime": 167,
                "status": "Released",
                "overview": "Paul unites with the Fremen.",
                "job": "Director",
            }
        )

        assert movie.id == 693134
        assert movie.title == "Dune: Part Two"
        assert movie.release_date == date(2024, 2, 27)
        assert movie.imdb_id == "tt15239678"
        assert movie.classification is Classification.FEATURE
        assert movie.overview == "Paul unites with the Fremen."

    def test_missing_id_is_malformed(self):
        with pytest.raises(MalformedRecord):
            RawMovie.from_tmdb({"title": "No Id"})

    def test_non_numeric_id_is_malformed(self):
        with pytest.raises(MalformedRecord):
            RawMovie.from_tmdb({"id": "abc", "title": "Bad Id"})

    @pytest.mark.parametrize("value", ["", None, "not-a-date", "2024-13-40"])
    def test_bad_release_dates_become_none(self, value):
        assert RawMovie.from_tmdb({"id": 1, "release_date": value}).release_date is None

    def test_missing_fields_degrade_to_empty(self):
        movie = RawMovie.from_tmdb({"id": "7"})

        assert movie.id == 7
        assert movie.title == ""
        assert movie.imdb_id is None
        assert movie.runtime is None
        assert movie.classification is Classification.UNKNOWN

    def test_blank_imdb_id_becomes_none(self):
        assert RawMovie.from_tmdb({"id": 1, "imdb_id": "  "}).imdb_id is None

    @pytest.mark.parametrize(
        ("runtime", "status", "expected"),
        [
            (12, "Released", Classification.SHORT),
            (40, "Released", Classification.SHORT),
            (41, "Released", Classification.FEATURE),
            (0, "Released", Classification.UNKNOWN),
            (None, None, Classification.UNKNOWN),
            (120, "Planned", Classification.PLACEHOLDER),
            (None, "Rumored", Classification.PLACEHOLDER),
            (120, "Canceled", Classification.PLACEHOLDER),
        ],
    )
    def test_classification(self, runtime, status, expected):
        movie = RawMovie.from_tmdb({"id": 1, "runtime": runtime, "status": status})
        assert movie.classification is expected

    def test_short_runtime_threshold_is_configurable(self):
        movie = RawMovie.from_tmdb({"id": 1, "runtime": 50}, short_runtime_minutes=60)
        assert movie.classification is Classification.SHORT

    def test_completeness_ranks_imdb_id_first(self):
        with_imdb = RawMovie(id=1, title="Untitled", imdb_id="tt1")
        titled = RawMovie(id=1, title="Real Title", release_date=date(2024, 1, 1), runtime=100)

        assert with_imdb.completeness(True) > titled.completeness(False)


class TestNotifiableMovie:
    def test_links_and_year(self):
        movie = NotifiableMovie(
            id=872585,
            title="Oppenheimer",
            imdb_id="tt15398776",
            release_date=date(2023, 7, 19),
            directors=["Christopher Nolan"],
        )

        assert movie.year == 2023
        assert movie.imdb_url == "https://www.imdb.com/title/tt15398776/"
        assert movie.tmdb_url == "https://www.themoviedb.org/movie/872585"

    def test_year_unknown(self):
        assert NotifiableMovie(id=1, title="T", imdb_id="tt1").year is None


class TestArchiveRecord:
    def test_membership_and_length(self):
        record = ArchiveRecord(ids=[1, 2, 2, 3])

        assert len(record) == 3
        assert 2 in record
        assert 4 not in record

    def test_merge_returns_union_without_mutating(self):
        record = ArchiveRecord(ids={1, 2})

        merged = record.merge([2, 3])

        assert merged.ids == frozenset({1, 2, 3})
        assert record.ids == frozenset({1, 2})

    def test_merge_of_known_ids_returns_same_record(self):
        record = ArchiveRecord(ids={1, 2})
        assert record.merge([1]) is record
