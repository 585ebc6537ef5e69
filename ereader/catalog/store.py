"""
Catalog facade: assemble, filter, then search or sort.

``query_books()`` and ``compute_statistics()`` are pure functions over
the rows and books they receive. ``Catalog`` binds them to a row source
and is what the HTTP layer talks to. Nothing is cached between calls;
every request reflects the catalog file as it was when it was read.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional

from typing_extensions import Literal

from .assembler import assemble_books
from .errors import SourceUnavailable
from .filters import FilterCriteria, filter_books
from .schemas import Book, CatalogStats
from .search import SearchOptions, search_books
from .source import CatalogSource


logger = logging.getLogger(__name__)

SortField = Literal["recent", "title", "author"]
DEFAULT_SORT: SortField = "recent"

# Always reported by the statistics endpoint, even when zero.
REPORTED_FORMATS = ("pdf", "epub")


def _norm(s: Optional[str]) -> str:
    return (s or "").strip().lower()


def sort_books(books: List[Book], sort: Optional[str] = None) -> List[Book]:
    """Return ``books`` in a deterministic order.

    Parameters
    ----------
    books : List[Book]
        Books to order. The input list is not modified.
    sort : Optional[str]
        ``'title'`` (case-insensitive title), ``'author'`` (first author,
        empty when there is none) or ``'recent'``. ``None`` and unknown
        values fall back to ``'recent'``: most recently modified first,
        books without a timestamp last.

    Returns
    -------
    List[Book]
        A new sorted list.
    """
    if sort == "title":
        return sorted(books, key=lambda b: _norm(b.title))
    if sort == "author":
        return sorted(books, key=lambda b: _norm(b.primary_author))
    if sort not in (None, "recent"):
        logger.debug("Unknown sort %r, using %r", sort, DEFAULT_SORT)
    return sorted(
        books,
        key=lambda b: (b.last_modified is not None, b.last_modified),
        reverse=True,
    )


def query_books(
    rows: Iterable[Mapping[str, Any]],
    criteria: Optional[FilterCriteria] = None,
    search_query: Optional[str] = None,
    sort: Optional[str] = None,
    options: Optional[SearchOptions] = None,
) -> List[Book]:
    """Assemble ``rows`` and narrow them down for one request.

    A non-empty ``search_query`` ranks the filtered books by relevance
    and ``sort`` is ignored; otherwise the filtered books are ordered by
    ``sort``.
    """
    books = assemble_books(rows)
    books = filter_books(books, criteria)
    q = (search_query or "").strip()
    if q:
        return search_books(books, q, options)
    return sort_books(books, sort)


def compute_statistics(books: Iterable[Book]) -> CatalogStats:
    books = list(books)
    authors = {a for b in books for a in b.authors}
    series = {b.series for b in books if b.series}
    formats: Dict[str, int] = {fmt: 0 for fmt in REPORTED_FORMATS}
    formats.update(Counter(fmt for b in books for fmt in b.formats))
    return CatalogStats(
        total_books=len(books),
        authors=len(authors),
        series=len(series),
        formats=formats,
    )


class CatalogRead(NamedTuple):
    """Rows from one read of the source, with that read's outcome."""

    rows: List[Dict[str, Any]]
    error: Optional[SourceUnavailable] = None

    @property
    def available(self) -> bool:
        return self.error is None


class CatalogStatus(NamedTuple):
    available: bool
    books: int


class Catalog:
    """Entry point used by the routes.

    A ``SourceUnavailable`` from the row source never reaches callers:
    it is logged at error level and the call behaves as if the catalog
    were empty. ``read()`` and ``status()`` report availability for the
    same read that produced the rows. ``last_error`` only mirrors the
    latest failure for inspection and is not used for decisions.
    """

    def __init__(self, source: CatalogSource, options: Optional[SearchOptions] = None) -> None:
        self.source = source
        self.options = options or SearchOptions()
        self.last_error: Optional[SourceUnavailable] = None

    def read(self) -> CatalogRead:
        try:
            rows = self.source.fetch_rows()
        except SourceUnavailable as exc:
            self.last_error = exc
            logger.error("Catalog source unavailable, returning no books: %s", exc)
            return CatalogRead([], exc)
        self.last_error = None
        if not rows:
            logger.info("Catalog is readable but contains no books")
        return CatalogRead(rows)

    def status(self) -> CatalogStatus:
        result = self.read()
        return CatalogStatus(result.available, len(assemble_books(result.rows)))

    def books(self, sort: Optional[str] = None) -> List[Book]:
        return sort_books(assemble_books(self.read().rows), sort)

    def query(
        self,
        criteria: Optional[FilterCriteria] = None,
        search_query: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> List[Book]:
        return query_books(self.read().rows, criteria, search_query, sort, self.options)

    def get_book(self, book_id: int) -> Optional[Book]:
        return next((b for b in assemble_books(self.read().rows) if b.id == book_id), None)

    def statistics(self) -> CatalogStats:
        return compute_statistics(assemble_books(self.read().rows))
