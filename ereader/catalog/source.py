"""
Read-only access to a Calibre ``metadata.db``.

The database belongs to Calibre; this module only ever opens it with
``mode=ro`` and never caches what it reads. Each call to
``CalibreSource.fetch_rows()`` reflects the file as it is at that moment.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Protocol

from .errors import SourceUnavailable


logger = logging.getLogger(__name__)

READABLE_FORMATS = ("PDF", "EPUB")

BOOKS_QUERY = """
    SELECT
        b.id,
        b.title,
        b.sort AS title_sort,
        b.author_sort,
        b.pubdate,
        b.series_index,
        b.path,
        GROUP_CONCAT(DISTINCT a.name) AS authors,
        GROUP_CONCAT(DISTINCT t.name) AS tags,
        s.name AS series,
        GROUP_CONCAT(DISTINCT d.format || ':' || d.name) AS formats,
        c.text AS comments,
        b.last_modified
    FROM books b
    LEFT JOIN books_authors_link bal ON b.id = bal.book
    LEFT JOIN authors a ON bal.author = a.id
    LEFT JOIN books_tags_link btl ON b.id = btl.book
    LEFT JOIN tags t ON btl.tag = t.id
    LEFT JOIN books_series_link bsl ON b.id = bsl.book
    LEFT JOIN series s ON bsl.series = s.id
    LEFT JOIN data d ON b.id = d.book
    LEFT JOIN comments c ON b.id = c.book
    WHERE d.format IN ({placeholders})
    GROUP BY b.id
    ORDER BY b.last_modified DESC
"""


class CatalogSource(Protocol):
    def fetch_rows(self) -> List[Dict[str, Any]]:
        ...


class CalibreSource:
    """Fetches joined book rows from a Calibre library database."""

    def __init__(self, db_path: Path, formats=READABLE_FORMATS) -> None:
        self.db_path = Path(db_path)
        self.formats = tuple(f.upper() for f in formats)

    def _connect(self) -> sqlite3.Connection:
        if not self.db_path.is_file():
            raise SourceUnavailable(f"Calibre database not found: {self.db_path}")
        uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
        try:
            connection = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as e:
            raise SourceUnavailable(f"Failed to open Calibre database: {e}") from e
        connection.row_factory = sqlite3.Row
        return connection

    def fetch_rows(self) -> List[Dict[str, Any]]:
        """Run the catalog query and return one dict per book.

        Raises
        ------
        SourceUnavailable
            If the database file is missing or the query fails.
        """
        connection = self._connect()
        try:
            sql = BOOKS_QUERY.format(placeholders=", ".join("?" for _ in self.formats))
            cur = connection.execute(sql, self.formats)
            rows = [dict(row) for row in cur.fetchall()]
        except sqlite3.Error as e:
            raise SourceUnavailable(f"Catalog query failed: {e}") from e
        finally:
            connection.close()
        logger.debug("Fetched %d rows from %s", len(rows), self.db_path)
        return rows
