"""
Bible Chapter Cache Module

Read-through cache for Bible chapters. A lookup consults the persistent store
first and falls back to the remote API; successful downloads are written back.
Also provides bulk download of whole books (or the whole Bible) for offline use.
"""

import asyncio
import logging
from typing import Dict, Any, Optional, Callable, List, Tuple

from sonhub.bible.books import BibleBook, all_books, validate_reference
from sonhub.bible.client import BibleApiClient
from sonhub.caching.cache_store import PersistentCacheStore, BIBLE_CHAPTERS, USER_DATA
from sonhub.errors import (
    BibleApiError,
    ChapterUnavailable,
    ReadError,
    StorageUnavailable,
    WriteError,
)
from sonhub.models.bible import BibleChapter, BibleVerse, chapter_cache_key

# Configure logging
logger = logging.getLogger(__name__)

CHAPTER_TTL_MS = 24 * 60 * 60 * 1000  # 24 hours
OFFLINE_CHAPTER_TTL_MS = 30 * CHAPTER_TTL_MS  # explicit offline downloads
ESTIMATED_CHAPTER_BYTES = 2000

STATUS_KEY_PREFIX = "bible_cache_status"

ProgressCallback = Callable[[int], None]


def _status_key(version: str) -> str:
    return f"{STATUS_KEY_PREFIX}-{version}"


class BibleChapterCache:
    """
    Chapter lookups backed by the persistent cache and the Bible API.

    If the durable store cannot be opened, the cache degrades to always-miss:
    every lookup goes to the API and nothing is written back.
    """

    def __init__(self, store: PersistentCacheStore, client: BibleApiClient, default_version: str = "kjv"):
        self.store = store
        self.client = client
        self.default_version = default_version

    async def get_cached_chapter(self, book: str, chapter: int, version: str) -> Optional[BibleChapter]:
        """
        Read a chapter straight from the cache, without any remote fallback.

        Raises:
            ReadError: If the cache read fails
            StorageUnavailable: If the durable store cannot be opened
        """
        cached = await self.store.get(BIBLE_CHAPTERS, chapter_cache_key(book, chapter, version))
        if cached is None:
            return None
        return BibleChapter.from_dict(cached)

    async def cache_chapter(self, chapter: BibleChapter, ttl_ms: int = CHAPTER_TTL_MS) -> None:
        await self.store.set(BIBLE_CHAPTERS, chapter.cache_key, chapter.to_dict(), ttl_ms)

    async def get_chapter(self, book: str, chapter: int, version: Optional[str] = None) -> BibleChapter:
        """
        Get a chapter, from cache when possible.

        Args:
            book: Book name, abbreviation or alias
            chapter: Chapter number
            version: Translation identifier; the default version when None

        Returns:
            BibleChapter with at least one verse

        Raises:
            BookNotFoundError: If the book is unknown
            ChapterOutOfRangeError: If the chapter does not exist in the book
            ChapterUnavailable: If the chapter is not cached and the download fails
            ReadError: If the cache lookup itself fails
        """
        version = version or self.default_version
        resolved = validate_reference(book, chapter)

        cached = await self._lookup(resolved.name, chapter, version)
        if cached is not None and cached.verses:
            logger.debug(f"Cache hit for {resolved.name} {chapter} ({version})")
            return cached

        logger.info(f"Chapter {resolved.name} {chapter} ({version}) not cached, downloading")
        downloaded = await self._download(resolved.name, chapter, version)
        await self._write_back(downloaded, CHAPTER_TTL_MS)
        return downloaded

    async def get_verse(self, book: str, chapter: int, verse: int,
                        version: Optional[str] = None) -> Optional[BibleVerse]:
        """Get a single verse through get_chapter(); None if the chapter has no such verse."""
        chapter_data = await self.get_chapter(book, chapter, version)
        return chapter_data.get_verse(verse)

    async def _lookup(self, book: str, chapter: int, version: str) -> Optional[BibleChapter]:
        try:
            return await self.get_cached_chapter(book, chapter, version)
        except StorageUnavailable as e:
            logger.warning(f"Chapter cache unavailable, fetching {book} {chapter} remotely: {e}")
            return None

    async def _download(self, book: str, chapter: int, version: str) -> BibleChapter:
        try:
            payload = await self.client.fetch_chapter(book, chapter, version)
            return BibleChapter.from_api_payload(book, chapter, version, payload)
        except (BibleApiError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error downloading {book} {chapter} ({version}): {e}")
            raise ChapterUnavailable(book, chapter, version) from e

    async def _write_back(self, chapter: BibleChapter, ttl_ms: int) -> bool:
        try:
            await self.cache_chapter(chapter, ttl_ms)
            return True
        except StorageUnavailable as e:
            logger.warning(f"Skipping cache write for {chapter.cache_key}: {e}")
        except WriteError as e:
            logger.error(f"Downloaded {chapter.cache_key} but could not cache it: {e}")
        return False

    async def download_book(self, book: str, version: Optional[str] = None,
                            progress_callback: Optional[ProgressCallback] = None,
                            delay_seconds: float = 0.0) -> Dict[str, Any]:
        """
        Download every chapter of one book for offline use.

        Args:
            book: Book name, abbreviation or alias
            version: Translation identifier
            progress_callback: Called with an integer percentage after each chapter
            delay_seconds: Pause before each remote request

        Returns:
            Dictionary with downloaded/skipped/failed counts
        """
        version = version or self.default_version
        resolved = validate_reference(book, 1)
        refs = [(resolved, number) for number in range(1, resolved.chapters + 1)]
        return await self._download_chapters(refs, version, progress_callback, delay_seconds)

    async def download_all(self, version: Optional[str] = None,
                           progress_callback: Optional[ProgressCallback] = None,
                           delay_seconds: float = 0.1,
                           books: Optional[List[BibleBook]] = None) -> Dict[str, Any]:
        """
        Download the whole Bible (or the given books) and record the offline status.

        Individual chapter failures are logged and counted; they do not abort the run.

        Returns:
            The status record written to the cache
        """
        version = version or self.default_version
        selected = books if books is not None else all_books()
        refs = [(book, number) for book in selected for number in range(1, book.chapters + 1)]

        logger.info(f"Starting offline download of {len(refs)} chapters ({version})")
        result = await self._download_chapters(refs, version, progress_callback, delay_seconds)

        status = {
            "version": version,
            "total_books": len(selected),
            "total_chapters": len(refs),
            "downloaded": result["downloaded"],
            "skipped": result["skipped"],
            "failed": result["failed"],
            "failed_chapters": result["failed_chapters"],
            "is_fully_cached": result["failed"] == 0,
            "download_progress": 100,
        }
        try:
            await self.store.set(USER_DATA, _status_key(version), status, OFFLINE_CHAPTER_TTL_MS)
        except (StorageUnavailable, WriteError) as e:
            logger.error(f"Could not record offline download status: {e}")

        logger.info(f"Offline download finished: {result['downloaded']} downloaded, "
                    f"{result['skipped']} already cached, {result['failed']} failed")
        return status

    async def _download_chapters(self, refs: List[Tuple[BibleBook, int]], version: str,
                                 progress_callback: Optional[ProgressCallback],
                                 delay_seconds: float) -> Dict[str, Any]:
        result = {"downloaded": 0, "skipped": 0, "failed": 0, "failed_chapters": []}
        total = len(refs)

        for processed, (book, number) in enumerate(refs, start=1):
            try:
                cached = await self._lookup(book.name, number, version)
            except ReadError as e:
                logger.warning(f"Could not check cache for {book.name} {number}: {e}")
                result["failed"] += 1
                result["failed_chapters"].append(f"{book.name} {number}")
            else:
                if cached is not None:
                    result["skipped"] += 1
                else:
                    if delay_seconds > 0:
                        await asyncio.sleep(delay_seconds)
                    try:
                        chapter = await self._download(book.name, number, version)
                        await self._write_back(chapter, OFFLINE_CHAPTER_TTL_MS)
                        result["downloaded"] += 1
                    except ChapterUnavailable as e:
                        logger.warning(f"Failed to cache {book.name} {number}: {e.__cause__}")
                        result["failed"] += 1
                        result["failed_chapters"].append(f"{book.name} {number}")

            if progress_callback:
                progress_callback(round(processed / total * 100))

        return result

    async def is_fully_cached(self, version: Optional[str] = None) -> bool:
        status = await self._read_status(version)
        return bool(status and status.get("is_fully_cached"))

    async def get_download_progress(self, version: Optional[str] = None) -> int:
        status = await self._read_status(version)
        return int(status.get("download_progress", 0)) if status else 0

    async def _read_status(self, version: Optional[str]) -> Optional[Dict[str, Any]]:
        try:
            return await self.store.get(USER_DATA, _status_key(version or self.default_version))
        except StorageUnavailable:
            return None

    async def clear_cache(self, version: Optional[str] = None) -> None:
        """Remove every cached chapter and the offline status record."""
        await self.store.clear(BIBLE_CHAPTERS)
        await self.store.delete(USER_DATA, _status_key(version or self.default_version))
        logger.info("Bible cache cleared")

    async def estimate_cache_size(self) -> int:
        """Rough size of the chapter cache in bytes."""
        return await self.store.count(BIBLE_CHAPTERS) * ESTIMATED_CHAPTER_BYTES
