# ereader/storage.py
import logging
import math
from numbers import Real
from typing import Dict, MutableMapping, Any


logger = logging.getLogger(__name__)

POSITIONS_KEY = "reading_positions"
MIN_POSITION = 0.0
MAX_POSITION = 100.0


class InvalidPosition(ValueError):
    """A reading position outside ``[0, 100]`` or not a number."""


class ReadingPositionStore:
    """Reading progress per book, kept inside a session scope.

    The scope is any mutable mapping owned by someone else: the
    ``request.session`` dict of the cookie session middleware in the
    app, a plain dict in tests. Positions live under ``key`` as
    ``{str(book_id): percent}`` so the scope stays JSON-serializable.
    Writes overwrite; there is no history.
    """

    def __init__(self, key: str = POSITIONS_KEY) -> None:
        self.key = key

    def _positions(self, scope: MutableMapping[str, Any]) -> Dict[str, float]:
        positions = scope.get(self.key)
        if not isinstance(positions, dict):
            positions = {}
        return positions

    def save(self, scope: MutableMapping[str, Any], book_id: int, percent: float) -> float:
        if isinstance(percent, bool) or not isinstance(percent, Real):
            raise InvalidPosition(f"Position must be a number, got {percent!r}")
        value = float(percent)
        if math.isnan(value) or not MIN_POSITION <= value <= MAX_POSITION:
            raise InvalidPosition(f"Position must be between 0 and 100, got {percent!r}")

        positions = dict(self._positions(scope))
        positions[str(book_id)] = value
        # Reassign so session backends notice the change.
        scope[self.key] = positions
        logger.debug("Saved position %.2f for book %s", value, book_id)
        return value

    def load(self, scope: MutableMapping[str, Any], book_id: int) -> float:
        return float(self._positions(scope).get(str(book_id), MIN_POSITION))

    def positions(self, scope: MutableMapping[str, Any]) -> Dict[str, float]:
        return dict(self._positions(scope))
