"""
Pydantic schema definitions for the catalog module.

The ``Book`` model is the view object rebuilt from the Calibre catalog
on every request. It is never written back anywhere; once a response
has been serialized the instances are discarded. ``CatalogStats`` is the
payload of the statistics endpoint and keeps the camelCase keys the
front-end already reads (``totalBooks``). ``ReaderContext`` and
``EpubCheck`` are the payloads of the reader and diagnostic routes.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Book(BaseModel):
    """A single book assembled from the catalog.

    ``authors`` and ``tags`` never contain duplicates or empty strings.
    ``formats`` maps a lower-cased format tag (``pdf``, ``epub``) to the
    file path relative to the library root, e.g.
    ``Frank Herbert/Dune (1)/Dune - Frank Herbert.epub``. ``cover`` is
    derived from the storage directory and may not exist on disk.
    """

    id: int
    title: str
    authors: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    series: Optional[str] = None
    # Position inside ``series``; meaningless when ``series`` is None.
    series_index: Optional[float] = None
    formats: Dict[str, str] = Field(default_factory=dict)
    path: str = ""
    comments: Optional[str] = None
    pubdate: Optional[str] = None
    title_sort: Optional[str] = None
    author_sort: Optional[str] = None
    last_modified: Optional[datetime] = None
    cover: str = ""

    @property
    def is_readable(self) -> bool:
        """True when the book has at least one format the reader can open."""
        return bool(self.formats)

    @property
    def primary_author(self) -> str:
        return self.authors[0] if self.authors else ""


class CatalogStats(BaseModel):
    """Aggregate counts over the current book set."""

    model_config = ConfigDict(populate_by_name=True)

    total_books: int = Field(alias="totalBooks")
    authors: int
    series: int
    formats: Dict[str, int] = Field(default_factory=dict)


class ReaderContext(BaseModel):
    """Everything the reader page needs to open one format of a book."""

    book: Book
    format: str
    # URL under the static library mount, e.g. ``/calibre-library/<path>``.
    book_path: str
    position: float = 0.0


class EpubCheck(BaseModel):
    book_id: int
    title: str
    has_epub: bool
    epub_path: Optional[str] = None
    full_path: Optional[str] = None
    file_exists: bool = False
    file_size: int = 0
    error: Optional[str] = None
