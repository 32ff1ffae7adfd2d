"""
Content Cache Module

Key derivation and fixed TTLs for caching community posts and downloaded media
in the persistent store.
"""

import logging
from typing import Any, Dict, Optional, Union

from sonhub.caching.cache_store import PersistentCacheStore, POSTS, MEDIA
from sonhub.models.post import CommunityPost

# Configure logging
logger = logging.getLogger(__name__)

POST_TTL_MS = 30 * 60 * 1000  # 30 minutes
MEDIA_TTL_MS = 60 * 60 * 1000  # 1 hour


class ContentCache:
    """Post and media caching on top of the persistent store. Storage errors propagate."""

    def __init__(self, store: PersistentCacheStore):
        self.store = store

    async def cache_post(self, post: Union[CommunityPost, Dict[str, Any]]) -> None:
        if not isinstance(post, CommunityPost):
            post = CommunityPost.model_validate(post)
        await self.store.set(POSTS, post.id, post.to_dict(), POST_TTL_MS)

    async def get_cached_post(self, post_id: str) -> Optional[CommunityPost]:
        cached = await self.store.get(POSTS, post_id)
        if cached is None:
            return None
        return CommunityPost.model_validate(cached)

    async def cache_media(self, url: str, blob: bytes) -> None:
        if not url:
            raise ValueError("Media URL is required for cache key generation")
        await self.store.set(MEDIA, url, bytes(blob), MEDIA_TTL_MS)
        logger.debug(f"Cached {len(blob)} bytes of media for {url}")

    async def get_cached_media(self, url: str) -> Optional[bytes]:
        return await self.store.get(MEDIA, url)
