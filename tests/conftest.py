"""Shared fixtures: a small Calibre-shaped library on disk."""
import sqlite3

import pytest


SCHEMA = """
CREATE TABLE books (
    id INTEGER PRIMARY KEY,
    title TEXT NOT NULL DEFAULT 'Unknown',
    sort TEXT,
    author_sort TEXT,
    pubdate TIMESTAMP,
    series_index REAL NOT NULL DEFAULT 1.0,
    path TEXT NOT NULL DEFAULT '',
    last_modified TIMESTAMP
);
CREATE TABLE authors (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
CREATE TABLE books_authors_link (id INTEGER PRIMARY KEY, book INTEGER, author INTEGER);
CREATE TABLE tags (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
CREATE TABLE books_tags_link (id INTEGER PRIMARY KEY, book INTEGER, tag INTEGER);
CREATE TABLE series (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
CREATE TABLE books_series_link (id INTEGER PRIMARY KEY, book INTEGER, series INTEGER);
CREATE TABLE data (id INTEGER PRIMARY KEY, book INTEGER, format TEXT, name TEXT);
CREATE TABLE comments (id INTEGER PRIMARY KEY, book INTEGER, text TEXT);
"""


def _populate(conn):
    conn.executemany(
        "INSERT INTO books (id, title, sort, author_sort, pubdate, series_index, path, last_modified)"
        " VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        [
            (1, "Dune", "Dune", "Herbert, Frank", "1965-08-01", 1.0,
             "Frank Herbert/Dune (1)", "2024-01-01 10:00:00+00:00"),
            (2, "Dune Messiah", "Dune Messiah", "Herbert, Frank", "1969-10-15", 2.0,
             "Frank Herbert/Dune Messiah (2)", "2024-03-01 10:00:00+00:00"),
            (3, "The Same Title", "Same Title, The", "Doe, Jane", None, 1.0,
             "Jane Doe/The Same Title (3)", "2023-06-01 10:00:00+00:00"),
            (4, "Mobi Only", "Mobi Only", "Nobody", None, 1.0,
             "Nobody/Mobi Only (4)", "2024-05-01 10:00:00+00:00"),
        ],
    )
    conn.executemany(
        "INSERT INTO authors (id, name) VALUES (?, ?)",
        [(1, "Frank Herbert"), (2, "Jane Doe"), (3, "Nobody")],
    )
    conn.executemany(
        "INSERT INTO books_authors_link (book, author) VALUES (?, ?)",
        [(1, 1), (2, 1), (3, 2), (4, 3)],
    )
    conn.executemany(
        "INSERT INTO tags (id, name) VALUES (?, ?)",
        [(1, "Science Fiction"), (2, "Classic"), (3, "Fantasy")],
    )
    conn.executemany(
        "INSERT INTO books_tags_link (book, tag) VALUES (?, ?)",
        [(1, 1), (1, 2), (2, 1), (3, 3)],
    )
    conn.execute("INSERT INTO series (id, name) VALUES (1, 'Dune Chronicles')")
    conn.executemany(
        "INSERT INTO books_series_link (book, series) VALUES (?, ?)",
        [(1, 1), (2, 1)],
    )
    conn.executemany(
        "INSERT INTO data (book, format, name) VALUES (?, ?, ?)",
        [
            (1, "EPUB", "Dune - Frank Herbert"),
            (2, "PDF", "Dune Messiah - Frank Herbert"),
            (3, "EPUB", "The Same Title - Jane Doe"),
            (3, "PDF", "The Same Title - Jane Doe"),
            (4, "MOBI", "Mobi Only - Nobody"),
        ],
    )
    conn.execute("INSERT INTO comments (book, text) VALUES (1, '<p>Spice.</p>')")


@pytest.fixture
def library(tmp_path):
    """A library folder with ``metadata.db`` and the EPUB of book 1 on disk."""
    root = tmp_path / "calibre-library"
    root.mkdir()
    conn = sqlite3.connect(root / "metadata.db")
    try:
        conn.executescript(SCHEMA)
        _populate(conn)
        conn.commit()
    finally:
        conn.close()

    epub_dir = root / "Frank Herbert" / "Dune (1)"
    epub_dir.mkdir(parents=True)
    (epub_dir / "Dune - Frank Herbert.epub").write_bytes(b"PK\x03\x04 fake epub")
    return root


@pytest.fixture
def dune_rows():
    """The two-book scenario, as the catalog query would return it."""
    return [
        {
            "id": 1,
            "title": "Dune",
            "path": "Frank Herbert/Dune (1)",
            "authors": "Frank Herbert,Frank Herbert",
            "formats": "EPUB:dune",
            "last_modified": "2024-01-01 10:00:00+00:00",
        },
        {
            "id": 2,
            "title": "Dune Messiah",
            "path": "Frank Herbert/Dune Messiah (2)",
            "authors": "Frank Herbert",
            "formats": "PDF:dune2",
            "last_modified": "2024-03-01 10:00:00+00:00",
        },
    ]
