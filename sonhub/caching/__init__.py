"""
Cache Management System

Persistent TTL cache with Bible chapter and content facades, plus the
session-only media cache.
"""

# Import public API components for easier access
from sonhub.caching.cache_store import (
    PersistentCacheStore,
    CacheEntry,
    DEFAULT_PARTITIONS,
    BIBLE_CHAPTERS,
    POSTS,
    MEDIA,
    USER_DATA,
)
from sonhub.caching.bible_cache import BibleChapterCache, CHAPTER_TTL_MS, OFFLINE_CHAPTER_TTL_MS
from sonhub.caching.content_cache import ContentCache, POST_TTL_MS, MEDIA_TTL_MS
from sonhub.caching.media_manager import BoundedMediaCache, MediaEntry
