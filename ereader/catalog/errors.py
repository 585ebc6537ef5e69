"""
Exceptions raised by the catalog package.

None of these are fatal to the service. ``MalformedRow`` is raised per
source row and swallowed (with a log line) by the assembler,
``SourceUnavailable`` is turned into an empty result by the catalog
facade, and ``InvalidCriteria`` is only raised when a caller asks for
strict filter parsing.
"""


class CatalogError(Exception):
    """Base class for catalog errors."""


class MalformedRow(CatalogError):
    """A catalog row is missing a required field (``id`` or ``title``)."""

    def __init__(self, message: str, row_id=None):
        super().__init__(message)
        self.row_id = row_id


class SourceUnavailable(CatalogError):
    """The external catalog database could not be read at all."""


class InvalidCriteria(CatalogError):
    """A filter option name is not recognised."""

    def __init__(self, option: str):
        super().__init__(f"Unknown filter option: {option!r}")
        self.option = option
