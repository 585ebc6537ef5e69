"""
Catalog package for the e-reader service.

The catalog is a read-only view over a Calibre library. Rows are read
from ``metadata.db`` on every request (``source``), assembled into
``Book`` models (``assembler``), narrowed by exact and substring
filters (``filters``) and ranked by a typo-tolerant search
(``search``). ``store.Catalog`` ties these together for the routes
defined in ``router``.
"""

from .router import router as catalog_router  # noqa: F401
