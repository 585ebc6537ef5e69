"""Configuration management."""
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings:
    """Application configuration, read from the environment on creation."""

    def __init__(self, environ: Optional[dict] = None):
        env = os.environ if environ is None else environ

        # Calibre library
        self.LIBRARY_PATH = Path(env.get("LIBRARY_PATH", "calibre-library"))
        self.CATALOG_DB = Path(env.get("CATALOG_DB") or self.LIBRARY_PATH / "metadata.db")

        # Sessions
        self.SESSION_SECRET = env.get("SESSION_SECRET", "change-me")
        self.SESSION_COOKIE = env.get("SESSION_COOKIE", "ereader_session")

        # Search
        self.SEARCH_THRESHOLD = float(env.get("SEARCH_THRESHOLD", "0.3"))

        # Logging
        self.LOG_LEVEL = env.get("LOG_LEVEL", "INFO").upper()


@lru_cache()
def get_settings() -> Settings:
    return Settings()
