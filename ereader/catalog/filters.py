"""
Exact and substring filters applied before search or sorting.

Filters arrive from query parameters, so ``FilterCriteria.from_mapping``
is permissive by default: unknown option names are ignored and blank
values count as "not set".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Iterable, List, Mapping, Optional

from .errors import InvalidCriteria
from .schemas import Book


logger = logging.getLogger(__name__)


def _normalize(s: Optional[str]) -> str:
    return (s or "").strip().lower()


@dataclass(frozen=True)
class FilterCriteria:
    author: Optional[str] = None
    tag: Optional[str] = None
    series: Optional[str] = None
    format: Optional[str] = None

    @classmethod
    def option_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any], strict: bool = False) -> "FilterCriteria":
        """Build criteria from a loosely typed mapping.

        Parameters
        ----------
        options : Mapping[str, Any]
            Option names to values, typically request query parameters.
            ``None`` and blank values are treated as absent.
        strict : bool
            When True an unrecognised option name raises
            ``InvalidCriteria``; otherwise it is logged and ignored.
        """
        known = set(cls.option_names())
        values = {}
        for name, value in (options or {}).items():
            if name not in known:
                if strict:
                    raise InvalidCriteria(name)
                logger.debug("Ignoring unknown filter option %r", name)
                continue
            if value is None:
                continue
            text = str(value).strip()
            if text:
                values[name] = text
        return cls(**values)

    def is_empty(self) -> bool:
        return not any(_normalize(getattr(self, name)) for name in self.option_names())


def _any_contains(values: Iterable[str], needle: str) -> bool:
    return any(needle in _normalize(v) for v in values)


def filter_books(books: List[Book], criteria: Optional[FilterCriteria]) -> List[Book]:
    """Keep the books matching every set criterion.

    ``author`` and ``tag`` are case-insensitive substring matches against
    any single entry, ``series`` is a substring match against the series
    name and ``format`` must be one of the book's format keys. With no
    criteria set the input list itself is returned.
    """
    if criteria is None or criteria.is_empty():
        return books

    author = _normalize(criteria.author)
    tag = _normalize(criteria.tag)
    series = _normalize(criteria.series)
    fmt = _normalize(criteria.format)

    items = books
    if author:
        items = [b for b in items if _any_contains(b.authors, author)]
    if tag:
        items = [b for b in items if _any_contains(b.tags, tag)]
    if series:
        items = [b for b in items if b.series and series in _normalize(b.series)]
    if fmt:
        items = [b for b in items if fmt in b.formats]
    return items
