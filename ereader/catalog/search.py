"""
Typo-tolerant ranking of books against a free-text query.

Every configured field is compared on its own, and multi-valued fields
entry by entry, so a query for one author is not diluted by the
co-authors. A field matches when the normalized Levenshtein distance
between the query and either the whole field or the best-aligned window
of it is within ``SearchOptions.threshold``. A book ranks by its best
field; ties keep input order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Sequence

from rapidfuzz import fuzz
from rapidfuzz.distance import Levenshtein

from .schemas import Book


logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.3
SEARCH_KEYS = ("title", "authors", "tags", "series")


@dataclass(frozen=True)
class SearchOptions:
    threshold: float = DEFAULT_THRESHOLD
    keys: Sequence[str] = SEARCH_KEYS


class SearchHit(NamedTuple):
    book: Book
    distance: float


def _norm(s: Optional[str]) -> str:
    return (s or "").strip().lower()


def match_distance(query: str, target: str) -> float:
    """Normalized edit distance of ``query`` against ``target``.

    Returns 0.0 for an exact (or exact substring) match and values up to
    1.0 as the strings diverge. Both strings are lower-cased first.
    """
    query = _norm(query)
    target = _norm(target)
    if not query or not target:
        return 1.0

    best = Levenshtein.normalized_distance(query, target)
    if best and len(query) < len(target):
        alignment = fuzz.partial_ratio_alignment(query, target)
        if alignment is not None:
            window = target[alignment.dest_start:alignment.dest_end]
            if window:
                best = min(best, Levenshtein.normalized_distance(query, window))
    return best


def _field_values(book: Book, key: str) -> Iterable[str]:
    value = getattr(book, key, None)
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return value


def score_book(book: Book, query: str, options: Optional[SearchOptions] = None) -> Optional[float]:
    """Best distance across the searchable fields, or None if no field matches."""
    options = options or SearchOptions()
    best: Optional[float] = None
    for key in options.keys:
        for value in _field_values(book, key):
            distance = match_distance(query, value)
            if distance <= options.threshold and (best is None or distance < best):
                best = distance
                if best == 0.0:
                    return best
    return best


def search_hits(
    books: Iterable[Book], query: str, options: Optional[SearchOptions] = None
) -> List[SearchHit]:
    """Matching books paired with their distance, closest first.

    Raises
    ------
    ValueError
        If ``query`` is empty; callers skip the search in that case.
    """
    if not _norm(query):
        raise ValueError("Search query must not be empty")
    options = options or SearchOptions()

    hits = []
    for book in books:
        distance = score_book(book, query, options)
        if distance is not None:
            hits.append(SearchHit(book, distance))
    # list.sort is stable, so equal distances keep catalog order.
    hits.sort(key=lambda hit: hit.distance)
    logger.debug("Query %r matched %d books", query, len(hits))
    return hits


def search_books(
    books: Iterable[Book], query: str, options: Optional[SearchOptions] = None
) -> List[Book]:
    return [hit.book for hit in search_hits(books, query, options)]
