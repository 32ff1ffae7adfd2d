"""
Error Taxonomy

Exceptions raised by the cache, Bible and feed layers. Storage faults are kept
distinct from a legitimate cache miss so callers can tell "not cached" apart
from "cache broken".
"""

from typing import Optional


class SonhubError(Exception):
    """Base class for all library errors."""


class CacheError(SonhubError):
    """Base class for durable cache failures."""

    def __init__(self, message: str, partition: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.partition = partition
        self.key = key


class StorageUnavailable(CacheError):
    """The durable store could not be opened. Not retryable within a session."""


class ReadError(CacheError):
    """A transient fault while reading an entry."""


class WriteError(CacheError):
    """A transient fault while writing or deleting an entry."""


class UnknownPartitionError(ValueError):
    """Raised when an operation names a partition that was never initialized."""


class BibleReferenceError(ValueError):
    """Base class for invalid book/chapter references."""


class BookNotFoundError(BibleReferenceError):
    """The book name does not match any known book, abbreviation or alias."""


class ChapterOutOfRangeError(BibleReferenceError):
    """The chapter number does not exist in the book."""


class BibleApiError(SonhubError):
    """Every endpoint of the Bible API failed for a chapter request."""


class ChapterUnavailable(SonhubError):
    """A chapter is neither cached nor retrievable from the remote API."""

    def __init__(self, book: str, chapter: int, version: str):
        super().__init__(
            f"{book} {chapter} ({version}) is not available offline and could not be downloaded"
        )
        self.book = book
        self.chapter = chapter
        self.version = version


class FetchPageError(SonhubError):
    """A remote feed page could not be fetched. Existing feed state is unchanged."""
