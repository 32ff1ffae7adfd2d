"""
Service Wiring

Builds the cache, Bible and feed services from Settings. This is the one place
where concrete dependencies are constructed; everything else receives them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sonhub.bible.client import BibleApiClient
from sonhub.caching.bible_cache import BibleChapterCache
from sonhub.caching.cache_store import PersistentCacheStore
from sonhub.caching.content_cache import ContentCache
from sonhub.caching.media_manager import BoundedMediaCache
from sonhub.config import Settings
from sonhub.feed.loader import FeedLoader

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: PersistentCacheStore
    bible_client: BibleApiClient
    bible: BibleChapterCache
    content: ContentCache
    media: BoundedMediaCache
    feed: Optional[FeedLoader] = None

    async def close(self) -> None:
        """Release the HTTP session and the database connection."""
        await self.bible_client.close()
        await self.store.close()


def build_services(settings: Optional[Settings] = None,
                   document_store: Any = None,
                   clock: Optional[Callable[[], float]] = None,
                   with_feed: bool = True) -> Services:
    """
    Construct every service from settings.

    Args:
        settings: Runtime settings; read from the environment when None
        document_store: Feed document store; a FirebaseClient is created when None
        clock: Millisecond clock shared by the cache store and the feed loader
        with_feed: Set False to skip the feed loader (and the Firestore connection)

    Returns:
        Services bundle
    """
    settings = settings or Settings.from_env()

    store = PersistentCacheStore(settings.cache_path, clock=clock)
    bible_client = BibleApiClient(settings.bible_api_base, timeout_seconds=settings.bible_api_timeout)
    bible = BibleChapterCache(store, bible_client, default_version=settings.bible_default_version)
    content = ContentCache(store)
    media = BoundedMediaCache(settings.media_cache_capacity)

    feed = None
    if with_feed:
        if document_store is None:
            from sonhub.database.firebase_client import FirebaseClient
            document_store = FirebaseClient(
                credentials_path=settings.firebase_credentials,
                project_id=settings.firebase_project_id,
            )
        feed = FeedLoader(
            document_store,
            collection=settings.feed_collection,
            page_size=settings.feed_page_size,
            bookmarks_collection=settings.bookmarks_collection,
            clock=clock,
        )

    logger.info(f"Services built (cache at {settings.cache_path}, feed={'on' if feed else 'off'})")
    return Services(store=store, bible_client=bible_client, bible=bible,
                    content=content, media=media, feed=feed)
