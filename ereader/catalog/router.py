"""
Route definitions for the catalog and reader API.

Endpoints:
- GET  /api/books                  : every readable book, sorted
- GET  /api/books/{book_id}        : one book
- GET  /api/search                 : filters + fuzzy search
- GET  /api/stats                  : catalog statistics
- POST /api/save-position          : store reading progress in the session
- GET  /api/position/{book_id}     : read reading progress from the session
- GET  /api/positions              : all reading progress in the session
- GET  /reader/{book_id}/{format}  : reader context for one format
- GET  /epub/{book_id}             : stream the EPUB file
- GET  /api/check-epub/{book_id}   : EPUB diagnostics
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import FileResponse

from ..config import Settings
from ..models import PositionAck, ReadingPosition, SavePositionRequest
from ..storage import InvalidPosition, ReadingPositionStore
from .filters import FilterCriteria
from .schemas import Book, CatalogStats, EpubCheck, ReaderContext
from .store import DEFAULT_SORT, Catalog, SortField


logger = logging.getLogger(__name__)

LIBRARY_URL_PREFIX = "/calibre-library"
EPUB_MEDIA_TYPE = "application/epub+zip"

# Query parameters of /api/search that are not filter options.
_SEARCH_PARAMS = {"q", "sort"}

router = APIRouter(tags=["catalog"])


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def get_position_store(request: Request) -> ReadingPositionStore:
    return request.app.state.positions


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _require_book(catalog: Catalog, book_id: int) -> Book:
    book = catalog.get_book(book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.get("/api/books", response_model=List[Book])
def list_books(
    sort: SortField = Query(default=DEFAULT_SORT, description="Sort order"),
    catalog: Catalog = Depends(get_catalog),
) -> List[Book]:
    return catalog.books(sort=sort)


@router.get("/api/books/{book_id}", response_model=Book)
def get_book(book_id: int, catalog: Catalog = Depends(get_catalog)) -> Book:
    return _require_book(catalog, book_id)


@router.get("/api/search", response_model=List[Book])
def search(
    request: Request,
    q: Optional[str] = Query(default=None, description="Free-text fuzzy search"),
    sort: SortField = Query(default=DEFAULT_SORT, description="Order when q is empty"),
    catalog: Catalog = Depends(get_catalog),
) -> List[Book]:
    """
    Filters (``author``, ``tag``, ``series``, ``format``) come straight
    from the query string; unknown parameters are ignored. When ``q`` is
    set the results are ranked by relevance and ``sort`` is ignored.
    """
    options = {k: v for k, v in request.query_params.items() if k not in _SEARCH_PARAMS}
    criteria = FilterCriteria.from_mapping(options)
    return catalog.query(criteria, search_query=q, sort=sort)


@router.get("/api/stats", response_model=CatalogStats)
def stats(catalog: Catalog = Depends(get_catalog)) -> CatalogStats:
    return catalog.statistics()


# ---------------------------------------------------------------------------
# Reading positions
#
# Positions live in the signed cookie session (``request.session``), so
# each browser only ever sees its own. They are lost when the session
# cookie expires.

@router.post("/api/save-position", response_model=PositionAck)
def save_position(
    req: SavePositionRequest,
    request: Request,
    positions: ReadingPositionStore = Depends(get_position_store),
) -> PositionAck:
    try:
        positions.save(request.session, req.book_id, req.position)
    except InvalidPosition as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PositionAck()


@router.get("/api/position/{book_id}", response_model=ReadingPosition)
def get_position(
    book_id: int,
    request: Request,
    positions: ReadingPositionStore = Depends(get_position_store),
) -> ReadingPosition:
    return ReadingPosition(book_id=book_id, position=positions.load(request.session, book_id))


@router.get("/api/positions", response_model=Dict[str, float])
def list_positions(
    request: Request,
    positions: ReadingPositionStore = Depends(get_position_store),
) -> Dict[str, float]:
    """Every saved position in this session, keyed by book id."""
    return positions.positions(request.session)


# ---------------------------------------------------------------------------
# Reader and files

@router.get("/reader/{book_id}/{book_format}", response_model=ReaderContext)
def reader(
    book_id: int,
    book_format: str,
    request: Request,
    catalog: Catalog = Depends(get_catalog),
    positions: ReadingPositionStore = Depends(get_position_store),
) -> ReaderContext:
    book = _require_book(catalog, book_id)
    if not book.is_readable:
        raise HTTPException(status_code=404, detail="Book has no readable format")
    fmt = book_format.lower()
    if fmt not in book.formats:
        raise HTTPException(status_code=404, detail="Format not available for this book")
    return ReaderContext(
        book=book,
        format=fmt,
        book_path=f"{LIBRARY_URL_PREFIX}/{book.formats[fmt]}",
        position=positions.load(request.session, book_id),
    )


@router.get("/epub/{book_id}")
def serve_epub(
    book_id: int,
    catalog: Catalog = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
) -> FileResponse:
    book = catalog.get_book(book_id)
    if book is None or "epub" not in book.formats:
        raise HTTPException(status_code=404, detail="EPUB not found")

    epub_path = settings.LIBRARY_PATH / book.formats["epub"]
    if not epub_path.is_file():
        logger.warning("EPUB for book %s missing on disk: %s", book_id, epub_path)
        raise HTTPException(status_code=404, detail="EPUB file missing on disk")

    return FileResponse(
        epub_path,
        media_type=EPUB_MEDIA_TYPE,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Cache-Control": "public, max-age=3600",
        },
    )


@router.get("/api/check-epub/{book_id}", response_model=EpubCheck)
def check_epub(
    book_id: int,
    catalog: Catalog = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
) -> EpubCheck:
    book = _require_book(catalog, book_id)
    result = EpubCheck(
        book_id=book.id,
        title=book.title,
        has_epub="epub" in book.formats,
        epub_path=book.formats.get("epub"),
    )
    if result.epub_path:
        full_path = Path(settings.LIBRARY_PATH) / result.epub_path
        result.full_path = str(full_path)
        try:
            result.file_size = full_path.stat().st_size
            result.file_exists = True
        except OSError as e:
            result.error = str(e)
    return result
