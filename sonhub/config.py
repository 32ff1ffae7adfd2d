"""
Configuration Module

Loads runtime settings from the environment (and a local .env file) and sets up
logging for the scripts that use the library.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

DEFAULT_CACHE_PATH = "data/cache/sonhub_cache.db"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    """Runtime settings for the cache, Bible and feed services."""

    cache_path: str = DEFAULT_CACHE_PATH
    bible_api_base: str = "https://bible-api.com"
    bible_default_version: str = "kjv"
    bible_api_timeout: int = 15
    feed_collection: str = "communityPosts"
    bookmarks_collection: str = "bookmarks"
    feed_page_size: int = 10
    media_cache_capacity: int = 50
    firebase_credentials: Optional[str] = None
    firebase_project_id: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            dotenv_path: Optional explicit .env file; the default search is used otherwise

        Returns:
            Settings instance

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        load_dotenv(dotenv_path)

        return cls(
            cache_path=os.getenv("SONHUB_CACHE_PATH", DEFAULT_CACHE_PATH),
            bible_api_base=os.getenv("BIBLE_API_BASE", "https://bible-api.com").rstrip("/"),
            bible_default_version=os.getenv("BIBLE_DEFAULT_VERSION", "kjv"),
            bible_api_timeout=_env_int("BIBLE_API_TIMEOUT", 15),
            feed_collection=os.getenv("FEED_COLLECTION", "communityPosts"),
            bookmarks_collection=os.getenv("BOOKMARKS_COLLECTION", "bookmarks"),
            feed_page_size=_env_int("FEED_PAGE_SIZE", 10),
            media_cache_capacity=_env_int("MEDIA_CACHE_CAPACITY", 50),
            firebase_credentials=os.getenv("FIREBASE_CREDENTIALS") or os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID"),
            log_level=os.getenv("SONHUB_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure root logging for scripts.

    Args:
        level: Log level name
        log_file: Optional file to append log records to
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode='a'))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )
