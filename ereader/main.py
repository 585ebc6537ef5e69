# ereader/main.py
import logging
import mimetypes
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from .catalog import catalog_router
from .catalog.search import SearchOptions
from .catalog.source import CalibreSource
from .catalog.store import Catalog
from .config import Settings, get_settings
from .storage import ReadingPositionStore


mimetypes.add_type("application/epub+zip", ".epub")
mimetypes.add_type("application/pdf", ".pdf")

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title="E-Reader",
        description=(
            "Search, filter and read the books of a Calibre library. "
            "The Calibre database is opened read-only."
        ),
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.catalog = Catalog(
        CalibreSource(settings.CATALOG_DB),
        SearchOptions(threshold=settings.SEARCH_THRESHOLD),
    )
    app.state.positions = ReadingPositionStore()

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        session_cookie=settings.SESSION_COOKIE,
    )
    # Book files and covers, served as-is from the library folder.
    app.mount(
        "/calibre-library",
        StaticFiles(directory=str(settings.LIBRARY_PATH), check_dir=False),
        name="calibre-library",
    )
    app.include_router(catalog_router)

    @app.get("/")
    def health_check():
        status = app.state.catalog.status()
        return {
            "status": "ok" if status.available else "degraded",
            "books": status.books,
        }

    logger.info("Serving Calibre library from %s", settings.LIBRARY_PATH)
    return app


app = create_app()
