"""Tests for the catalog facade and the Calibre source."""
import logging

import pytest

from ereader.catalog.errors import SourceUnavailable
from ereader.catalog.filters import FilterCriteria
from ereader.catalog.schemas import Book
from ereader.catalog.source import CalibreSource
from ereader.catalog.store import Catalog, compute_statistics, query_books, sort_books


class FailingSource:
    def fetch_rows(self):
        raise SourceUnavailable("disk on fire")


class StaticSource:
    def __init__(self, rows):
        self.rows = rows

    def fetch_rows(self):
        return list(self.rows)


def test_query_filters_then_searches(dune_rows):
    """Filter by author keeps both books, search narrows further."""
    assert [b.id for b in query_books(dune_rows, FilterCriteria(author="herbert"))] == [2, 1]
    assert [b.id for b in query_books(dune_rows, search_query="dune")] == [1, 2]
    assert [b.id for b in query_books(dune_rows, search_query="messiah")] == [2]
    assert query_books(dune_rows, FilterCriteria(format="epub"), search_query="messiah") == []


def test_blank_query_means_no_search(dune_rows):
    assert [b.id for b in query_books(dune_rows, search_query="  ", sort="title")] == [1, 2]


def test_sort_orders():
    books = [
        Book(id=1, title="beta", authors=["Zed"]),
        Book(id=2, title="Alpha", authors=[]),
        Book(id=3, title="gamma", authors=["adams"]),
    ]
    assert [b.id for b in sort_books(books, "title")] == [2, 1, 3]
    assert [b.id for b in sort_books(books, "author")] == [2, 3, 1]


def test_recent_sort_puts_missing_timestamps_last(dune_rows):
    rows = dune_rows + [{"id": 9, "title": "Undated"}]
    assert [b.id for b in query_books(rows)] == [2, 1, 9]
    assert [b.id for b in query_books(rows, sort="bogus")] == [2, 1, 9]


def test_statistics():
    books = [
        Book(id=1, title="Dune", authors=["Frank Herbert"], series="Dune", formats={"epub": "a.epub"}),
        Book(id=2, title="Dune Messiah", authors=["Frank Herbert"], series="Dune",
             formats={"pdf": "b.pdf", "mobi": "b.mobi"}),
        Book(id=3, title="Emma", authors=["Jane Austen"], formats={"epub": "c.epub"}),
    ]

    stats = compute_statistics(books)

    assert stats.total_books == 3
    assert stats.authors == 2
    assert stats.series == 1
    assert stats.formats == {"pdf": 1, "epub": 2, "mobi": 1}
    assert stats.model_dump(by_alias=True)["totalBooks"] == 3


def test_statistics_of_empty_catalog():
    stats = compute_statistics([])
    assert stats.total_books == 0
    assert stats.formats == {"pdf": 0, "epub": 0}


def test_calibre_source_reads_readable_books(library):
    rows = CalibreSource(library / "metadata.db").fetch_rows()
    assert sorted(r["id"] for r in rows) == [1, 2, 3]


def test_catalog_against_calibre_db(library):
    catalog = Catalog(CalibreSource(library / "metadata.db"))

    books = catalog.books()

    assert [b.id for b in books] == [2, 1, 3]
    dune = catalog.get_book(1)
    assert dune.authors == ["Frank Herbert"]
    assert sorted(dune.tags) == ["Classic", "Science Fiction"]
    assert dune.series == "Dune Chronicles"
    assert dune.formats == {"epub": "Frank Herbert/Dune (1)/Dune - Frank Herbert.epub"}
    assert catalog.get_book(4) is None
    assert catalog.status() == (True, 3)

    stats = catalog.statistics()
    assert stats.total_books == 3
    assert stats.formats == {"pdf": 2, "epub": 2}


def test_missing_database_is_reported_not_raised(tmp_path, caplog):
    catalog = Catalog(CalibreSource(tmp_path / "nope" / "metadata.db"))

    with caplog.at_level(logging.ERROR):
        assert catalog.query(search_query="dune") == []
        result = catalog.read()

    assert result.rows == []
    assert not result.available
    assert isinstance(result.error, SourceUnavailable)
    assert isinstance(catalog.last_error, SourceUnavailable)
    assert "unavailable" in caplog.text


def test_empty_catalog_is_not_an_error(caplog):
    catalog = Catalog(StaticSource([]))
    with caplog.at_level(logging.INFO):
        assert catalog.books() == []
    assert catalog.status() == (True, 0)
    assert "no books" in caplog.text


def test_recovers_after_source_comes_back(dune_rows):
    catalog = Catalog(FailingSource())
    assert catalog.status() == (False, 0)

    catalog.source = StaticSource(dune_rows)
    assert catalog.status() == (True, 2)
    assert catalog.statistics().total_books == 2


def test_source_raises_on_broken_database(tmp_path):
    db = tmp_path / "metadata.db"
    db.write_text("this is not sqlite")
    with pytest.raises(SourceUnavailable):
        CalibreSource(db).fetch_rows()


class FlakySource:
    """Succeeds and fails on alternate reads."""

    def __init__(self, rows):
        self.rows = rows
        self.calls = 0

    def fetch_rows(self):
        self.calls += 1
        if self.calls % 2 == 0:
            raise SourceUnavailable("flaky")
        return list(self.rows)


def test_status_comes_from_a_single_read(dune_rows):
    """Availability and book count always describe the same read."""
    catalog = Catalog(FlakySource(dune_rows))
    assert catalog.status() == (True, 2)
    assert catalog.status() == (False, 0)
    assert catalog.status() == (True, 2)
