"""
Turn joined catalog rows into ``Book`` entities.

The catalog query collapses the one-to-many relationships (authors,
tags, data files) with ``GROUP_CONCAT`` so each row carries them as
comma-joined strings. Those strings can repeat values when several join
paths lead to the same author or tag, and the same book id may appear on
more than one row, so assembly accumulates per id and deduplicates on
the way in.
"""

from __future__ import annotations

import logging
import posixpath
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import MalformedRow
from .schemas import Book


logger = logging.getLogger(__name__)

COVER_FILENAME = "cover.jpg"

_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")

# Fields taken from a single row when several rows share an id.
_SCALAR_FIELDS = set(Book.model_fields) - {"authors", "tags", "formats"}


def split_concat(value: Optional[str], delimiter: str = ",") -> List[str]:
    """Split a concatenated column into unique, trimmed, non-empty values.

    Parameters
    ----------
    value : Optional[str]
        The raw ``GROUP_CONCAT`` output. ``None`` yields an empty list.
    delimiter : str
        Separator used by the concatenation.

    Returns
    -------
    List[str]
        Values in first-seen order with duplicates removed.
    """
    if not value:
        return []
    seen = set()
    result: List[str] = []
    for part in str(value).split(delimiter):
        item = part.strip()
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def parse_formats(value: Optional[str], path: str = "") -> Dict[str, str]:
    """Parse ``FORMAT:filename`` pairs into a format → relative path map.

    ``"EPUB:Dune - Frank Herbert,PDF:Dune - Frank Herbert"`` with path
    ``"Frank Herbert/Dune (1)"`` becomes
    ``{"epub": "Frank Herbert/Dune (1)/Dune - Frank Herbert.epub", "pdf": ...}``.
    Entries lacking a format or a filename are dropped.
    """
    formats: Dict[str, str] = {}
    for entry in split_concat(value):
        fmt, sep, filename = entry.partition(":")
        fmt = fmt.strip().lower()
        filename = filename.strip()
        if not sep or not fmt or not filename:
            logger.debug("Ignoring unparseable format entry %r", entry)
            continue
        formats.setdefault(fmt, posixpath.join(path, f"{filename}.{fmt}"))
    return formats


def _normalize_iso(text: str) -> str:
    # fromisoformat before 3.11 wants 3 or 6 fraction digits and no "Z".
    text = _FRACTION.sub(lambda m: m.group(1) + "." + (m.group(2) + "000000")[:6], text)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return text


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(_normalize_iso(str(value).strip()))
        except ValueError:
            logger.debug("Unparseable timestamp %r", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_id(row: Mapping[str, Any]) -> int:
    raw = row.get("id")
    if raw is None or isinstance(raw, bool):
        raise MalformedRow("Catalog row has no id")
    if isinstance(raw, float) and not raw.is_integer():
        raise MalformedRow(f"Catalog row has a non-integer id: {raw!r}")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise MalformedRow(f"Catalog row has a non-integer id: {raw!r}") from None


def assemble_book(row: Mapping[str, Any]) -> Book:
    """Build a single ``Book`` from one catalog row.

    Raises
    ------
    MalformedRow
        When ``id`` or ``title`` is missing or blank, or ``id`` is not
        an integer.
    """
    book_id = _require_id(row)
    title = _optional_str(row.get("title"))
    if title is None:
        raise MalformedRow(f"Catalog row {book_id} has no title", row_id=book_id)

    path = _optional_str(row.get("path")) or ""
    return Book(
        id=book_id,
        title=title,
        authors=split_concat(row.get("authors")),
        tags=split_concat(row.get("tags")),
        series=_optional_str(row.get("series")),
        series_index=_parse_float(row.get("series_index")),
        formats=parse_formats(row.get("formats"), path),
        path=path,
        comments=row.get("comments"),
        pubdate=_optional_str(row.get("pubdate")),
        title_sort=_optional_str(row.get("title_sort")),
        author_sort=_optional_str(row.get("author_sort")),
        last_modified=_parse_timestamp(row.get("last_modified")),
        cover=posixpath.join(path, COVER_FILENAME),
    )


def _merge_books(candidates: List[Book]) -> Book:
    """Collapse several books with the same id into one.

    Authors, tags and formats are unioned and emitted sorted. Scalars come
    from the candidate whose scalar fields serialize lowest, so the result
    does not depend on the order the rows arrived in.
    """
    if len(candidates) == 1:
        return candidates[0]

    scalars = {c.model_dump_json(include=_SCALAR_FIELDS) for c in candidates}
    base = min(candidates, key=lambda c: c.model_dump_json(include=_SCALAR_FIELDS))
    if len(scalars) > 1:
        logger.warning(
            "Rows for book %s disagree on scalar fields, using %r", base.id, base.title
        )

    formats: Dict[str, str] = {}
    for c in candidates:
        for fmt, file_path in c.formats.items():
            formats[fmt] = min(formats.get(fmt, file_path), file_path)

    return base.model_copy(
        update={
            "authors": sorted({a for c in candidates for a in c.authors}),
            "tags": sorted({t for c in candidates for t in c.tags}),
            "formats": dict(sorted(formats.items())),
        }
    )


def assemble_books(rows: Iterable[Mapping[str, Any]]) -> List[Book]:
    """Assemble every row into books, one per distinct id.

    Rows sharing an id are merged by ``_merge_books``. Malformed rows are
    logged and skipped; they never abort the batch. Books come out in the
    order their id first appeared.
    """
    by_id: Dict[int, List[Book]] = {}
    skipped = 0
    for row in rows:
        try:
            book = assemble_book(row)
        except MalformedRow as exc:
            skipped += 1
            logger.warning("Skipping malformed catalog row: %s", exc)
            continue
        by_id.setdefault(book.id, []).append(book)

    if skipped:
        logger.info("Assembled %d books, skipped %d malformed rows", len(by_id), skipped)
    return [_merge_books(candidates) for candidates in by_id.values()]
