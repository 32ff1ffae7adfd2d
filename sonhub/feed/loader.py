"""
Paginated Feed Loader

Pulls approved community posts from the remote document store one page at a
time, newest first, and keeps the growing collection annotated with scores so
the scoring pipeline can order it without recomputation.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Set, Union

from pydantic import ValidationError

from sonhub.caching.cache_store import now_millis
from sonhub.errors import FetchPageError
from sonhub.feed.scoring import FeedStrategy, count_unread, score_post, select_view
from sonhub.models.post import CommunityPost, PostStatus

# Configure logging
logger = logging.getLogger(__name__)

POSTS_PER_PAGE = 10


class LoaderState(str, Enum):
    IDLE = "idle"
    LOADING_INITIAL = "loading_initial"
    READY = "ready"
    LOADING_NEXT = "loading_next"
    FAILED = "failed"


class FeedLoader:
    """
    Cursor-paginated feed over a document store.

    The store must provide query_page(collection, filters=, order_by=,
    direction=, limit=, start_after=) returning snapshots with .id and
    .to_dict(); FirebaseClient does. The call is blocking and runs in a worker
    thread.

    At most one load_next() runs at a time: the in-flight flag is set before
    the first await, and a call made while a page is outstanding is dropped.
    load_initial() starts a new generation; results of requests from an older
    generation are discarded when they arrive.
    """

    def __init__(self, document_store: Any,
                 collection: str = "communityPosts",
                 page_size: int = POSTS_PER_PAGE,
                 bookmarks_collection: str = "bookmarks",
                 clock: Optional[Callable[[], float]] = None):
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")

        self.document_store = document_store
        self.collection = collection
        self.page_size = page_size
        self.bookmarks_collection = bookmarks_collection
        self._clock = clock or now_millis

        self._posts: List[CommunityPost] = []
        self._cursor: Any = None
        self._has_next_page = True
        self._state = LoaderState.IDLE
        self._generation = 0
        self._next_in_flight = False

    @property
    def posts(self) -> List[CommunityPost]:
        return self._posts

    @property
    def cursor(self) -> Any:
        return self._cursor

    @property
    def has_next_page(self) -> bool:
        return self._has_next_page

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def is_next_page_loading(self) -> bool:
        return self._next_in_flight

    async def _fetch_page(self, start_after: Any) -> List[Any]:
        return await asyncio.to_thread(
            self.document_store.query_page,
            self.collection,
            filters=[{"field": "status", "op": "==", "value": PostStatus.APPROVED.value}],
            order_by="timestamp",
            direction="DESCENDING",
            limit=self.page_size,
            start_after=start_after,
        )

    def _ingest(self, snapshots: List[Any]) -> List[CommunityPost]:
        """Validate raw documents and annotate them with scores; malformed ones are skipped."""
        now_ms = self._clock()
        posts = []
        for snapshot in snapshots:
            try:
                post = CommunityPost.from_document(snapshot.id, snapshot.to_dict() or {})
            except ValidationError as e:
                logger.warning(f"Skipping malformed post {snapshot.id}: {e.error_count()} validation errors")
                continue
            posts.append(score_post(post, now_ms))
        return posts

    async def load_initial(self) -> List[CommunityPost]:
        """
        Load the first page, replacing the current collection.

        Returns:
            The new collection

        Raises:
            FetchPageError: If the page cannot be fetched; state other than the
                loader status is left unchanged
        """
        self._generation += 1
        generation = self._generation
        self._next_in_flight = False
        self._state = LoaderState.LOADING_INITIAL

        try:
            snapshots = await self._fetch_page(None)
        except Exception as e:
            if generation != self._generation:
                logger.info(f"Ignoring failure of superseded initial load: {e}")
                return self._posts
            self._state = LoaderState.FAILED
            logger.error(f"Error loading first feed page from {self.collection}: {e}")
            raise FetchPageError(f"Failed to load the first page of {self.collection}") from e

        if generation != self._generation:
            logger.info("Discarding superseded initial feed page")
            return self._posts

        self._posts = self._ingest(snapshots)
        self._cursor = snapshots[-1] if snapshots else None
        self._has_next_page = len(snapshots) >= self.page_size
        self._state = LoaderState.READY

        logger.info(f"Loaded first feed page: {len(self._posts)} posts, has_next_page={self._has_next_page}")
        return self._posts

    async def load_next(self) -> int:
        """
        Load the page after the cursor and append it.

        Does nothing when there is no next page, no cursor, an initial load is
        running, or another page load is in flight.

        Returns:
            Number of posts appended (0 for a no-op)

        Raises:
            FetchPageError: If the page cannot be fetched; the collection, cursor
                and has_next_page are left unchanged so the call can be retried
        """
        if (not self._has_next_page or self._next_in_flight or self._cursor is None
                or self._state == LoaderState.LOADING_INITIAL):
            return 0

        self._next_in_flight = True
        generation = self._generation
        self._state = LoaderState.LOADING_NEXT

        try:
            snapshots = await self._fetch_page(self._cursor)
        except Exception as e:
            if generation != self._generation:
                logger.info(f"Ignoring failure of superseded page load: {e}")
                return 0
            self._next_in_flight = False
            self._state = LoaderState.FAILED
            logger.error(f"Error loading more posts from {self.collection}: {e}")
            raise FetchPageError(f"Failed to load the next page of {self.collection}") from e

        if generation != self._generation:
            logger.info("Discarding page loaded for a superseded feed")
            return 0

        new_posts = self._ingest(snapshots)
        self._posts = self._posts + new_posts
        if snapshots:
            self._cursor = snapshots[-1]
        self._has_next_page = len(snapshots) >= self.page_size
        self._next_in_flight = False
        self._state = LoaderState.READY

        logger.info(f"Appended {len(new_posts)} posts, has_next_page={self._has_next_page}")
        return len(new_posts)

    def view(self, strategy: Union[FeedStrategy, str] = FeedStrategy.RECENT,
             hashtag: Optional[str] = None) -> List[CommunityPost]:
        """The loaded collection filtered and ordered by a strategy."""
        return select_view(self._posts, strategy, hashtag, now_ms=self._clock())

    def unread_count(self, user_id: str) -> int:
        return count_unread(self._posts, user_id, self._clock())

    async def load_bookmarks(self, user_id: str) -> Set[str]:
        """
        IDs of the posts bookmarked by a user.

        Raises:
            FetchPageError: If the bookmarks query fails
        """
        try:
            documents = await asyncio.to_thread(
                self.document_store.get_documents,
                self.bookmarks_collection,
                filters=[{"field": "userId", "op": "==", "value": user_id}],
            )
        except Exception as e:
            logger.error(f"Error loading bookmarks for {user_id}: {e}")
            raise FetchPageError(f"Failed to load bookmarks for {user_id}") from e

        return {doc["postId"] for doc in documents if doc.get("postId")}
