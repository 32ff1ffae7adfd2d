"""
Persistent Cache Store Module

Durable, partitioned key-value cache with per-entry expiry, backed by SQLite.
Entries expire lazily: a read that finds an expired entry deletes it and reports
a miss. There is no background sweep.
"""

import json
import math
import time
import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, Callable, Iterable, Tuple

from sonhub.config import DEFAULT_CACHE_PATH
from sonhub.errors import StorageUnavailable, ReadError, WriteError, UnknownPartitionError

# Configure logging
logger = logging.getLogger(__name__)

BIBLE_CHAPTERS = "bible-chapters"
POSTS = "posts"
MEDIA = "media"
USER_DATA = "user-data"

DEFAULT_PARTITIONS = (BIBLE_CHAPTERS, POSTS, MEDIA, USER_DATA)

DEFAULT_TTL_MS = 3_600_000

_ENCODING_JSON = "json"
_ENCODING_BYTES = "bytes"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS cache_partitions (
        name TEXT PRIMARY KEY
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cache_entries (
        partition TEXT NOT NULL REFERENCES cache_partitions(name),
        key TEXT NOT NULL,
        data BLOB NOT NULL,
        encoding TEXT NOT NULL,
        created_at INTEGER NOT NULL,
        expires_at INTEGER NOT NULL,
        PRIMARY KEY (partition, key)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_cache_entries_expires ON cache_entries(expires_at)",
)


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """A stored value with its creation and expiry timestamps (epoch milliseconds)."""

    data: Any
    created_at: int
    expires_at: int

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at


def _encode(value: Any) -> Tuple[Any, str]:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value), _ENCODING_BYTES
    return json.dumps(value, ensure_ascii=False), _ENCODING_JSON


def _decode(data: Any, encoding: str) -> Any:
    if encoding == _ENCODING_BYTES:
        return bytes(data)
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    return json.loads(data)


class PersistentCacheStore:
    """
    TTL-aware key-value store organized into fixed partitions.

    Every public operation is a coroutine. The blocking SQLite work runs in a
    worker thread and operations are serialized, so a single entry is never
    observed half-written. The store opens its database lazily on first use.

    Example:
        >>> store = PersistentCacheStore("data/cache/sonhub_cache.db")
        >>> await store.set("posts", "abc", {"id": "abc"}, ttl_ms=60_000)
        >>> await store.get("posts", "abc")
        {'id': 'abc'}
    """

    def __init__(self,
                 db_path: str = DEFAULT_CACHE_PATH,
                 partitions: Iterable[str] = DEFAULT_PARTITIONS,
                 clock: Optional[Callable[[], int]] = None):
        """
        Args:
            db_path: Path to the SQLite database file, or ":memory:"
            partitions: Partition names created on initialization
            clock: Callable returning the current time in epoch milliseconds
        """
        self.db_path = str(db_path)
        self.partitions = tuple(partitions)
        self._clock = clock or now_millis
        self._conn: Optional[sqlite3.Connection] = None
        self._initialized = False
        self._open_error: Optional[BaseException] = None
        self._init_lock = asyncio.Lock()
        self._lock = asyncio.Lock()
        self._stats = {"hits": 0, "misses": 0, "expired": 0, "writes": 0, "deletes": 0}

    @property
    def is_available(self) -> bool:
        return self._open_error is None

    async def initialize(self) -> None:
        """
        Open the database and create the partitions if they are absent.

        Safe to call any number of times; only the first successful call has an
        effect. A failed open is remembered and re-raised without retrying.

        Raises:
            StorageUnavailable: If the database cannot be opened
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return
            if self._open_error is not None:
                raise StorageUnavailable(
                    f"Cache database at {self.db_path} is unavailable: {self._open_error}"
                ) from self._open_error

            try:
                self._conn = await asyncio.to_thread(self._open_connection)
            except (sqlite3.Error, OSError) as e:
                self._open_error = e
                logger.error(f"Failed to open cache database at {self.db_path}: {e}")
                raise StorageUnavailable(f"Could not open cache database at {self.db_path}: {e}") from e

            self._initialized = True
            logger.info(f"Cache store initialized at {self.db_path} with partitions {list(self.partitions)}")

    def _open_connection(self) -> sqlite3.Connection:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            with conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
                conn.executemany(
                    "INSERT OR IGNORE INTO cache_partitions (name) VALUES (?)",
                    [(name,) for name in self.partitions]
                )
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    async def _run(self, func: Callable, *args) -> Any:
        await self.initialize()
        async with self._lock:
            return await asyncio.to_thread(func, *args)

    def _check_partition(self, partition: str) -> None:
        if partition not in self.partitions:
            raise UnknownPartitionError(
                f"Unknown cache partition '{partition}'; expected one of {list(self.partitions)}"
            )

    async def set(self, partition: str, key: str, value: Any, ttl_ms: float = DEFAULT_TTL_MS) -> None:
        """
        Store a value, replacing any existing entry for the key.

        Args:
            partition: Partition name
            key: Entry key, unique within the partition
            value: JSON-serializable value or raw bytes
            ttl_ms: Time-to-live in milliseconds; fractions round up

        Raises:
            ValueError: If value is None or ttl_ms is not positive
            WriteError: If the underlying write fails (the prior entry is kept)
            StorageUnavailable: If the database cannot be opened
        """
        self._check_partition(partition)
        if value is None:
            raise ValueError("None cannot be cached; it is reserved for a cache miss")
        if ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be positive, got {ttl_ms}")

        payload, encoding = _encode(value)
        created_at = self._clock()
        expires_at = created_at + math.ceil(ttl_ms)

        try:
            await self._run(self._write_entry, partition, key, payload, encoding, created_at, expires_at)
        except sqlite3.Error as e:
            logger.error(f"Error writing cache entry {partition}/{key}: {e}")
            raise WriteError(f"Failed to write cache entry {partition}/{key}: {e}",
                             partition=partition, key=key) from e

    def _write_entry(self, partition: str, key: str, payload: Any, encoding: str,
                     created_at: int, expires_at: int) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO cache_entries "
                "(partition, key, data, encoding, created_at, expires_at) VALUES (?, ?, ?, ?, ?, ?)",
                (partition, key, payload, encoding, created_at, expires_at)
            )
        self._stats["writes"] += 1

    async def get(self, partition: str, key: str) -> Optional[Any]:
        """
        Retrieve a value if it is present and not expired.

        A read may mutate the store: an expired entry is deleted before None is
        returned.

        Args:
            partition: Partition name
            key: Entry key

        Returns:
            The stored value, or None when absent or expired

        Raises:
            ReadError: If the underlying read fails
            StorageUnavailable: If the database cannot be opened
        """
        entry = await self.get_entry(partition, key)
        return entry.data if entry else None

    async def get_entry(self, partition: str, key: str) -> Optional[CacheEntry]:
        """Like get(), but returns the full CacheEntry with its timestamps."""
        self._check_partition(partition)
        now = self._clock()

        try:
            return await self._run(self._read_entry, partition, key, now)
        except sqlite3.Error as e:
            logger.error(f"Error reading cache entry {partition}/{key}: {e}")
            raise ReadError(f"Failed to read cache entry {partition}/{key}: {e}",
                            partition=partition, key=key) from e
        except ValueError as e:
            # Undecodable payload (bad UTF-8 or JSON)
            logger.error(f"Corrupt cache entry {partition}/{key}: {e}")
            raise ReadError(f"Cache entry {partition}/{key} is corrupt: {e}",
                            partition=partition, key=key) from e

    def _read_entry(self, partition: str, key: str, now: int) -> Optional[CacheEntry]:
        row = self._conn.execute(
            "SELECT data, encoding, created_at, expires_at FROM cache_entries "
            "WHERE partition = ? AND key = ?",
            (partition, key)
        ).fetchone()

        if row is None:
            self._stats["misses"] += 1
            return None

        data, encoding, created_at, expires_at = row
        if now > expires_at:
            with self._conn:
                self._conn.execute(
                    "DELETE FROM cache_entries WHERE partition = ? AND key = ?",
                    (partition, key)
                )
            self._stats["expired"] += 1
            self._stats["misses"] += 1
            logger.debug(f"Cache entry {partition}/{key} expired at {expires_at}, deleted on read")
            return None

        self._stats["hits"] += 1
        return CacheEntry(data=_decode(data, encoding), created_at=created_at, expires_at=expires_at)

    async def delete(self, partition: str, key: str) -> None:
        """Remove an entry. Deleting a missing key is a no-op."""
        self._check_partition(partition)
        try:
            await self._run(self._delete_entry, partition, key)
        except sqlite3.Error as e:
            logger.error(f"Error deleting cache entry {partition}/{key}: {e}")
            raise WriteError(f"Failed to delete cache entry {partition}/{key}: {e}",
                             partition=partition, key=key) from e

    def _delete_entry(self, partition: str, key: str) -> None:
        with self._conn:
            cursor = self._conn.execute(
                "DELETE FROM cache_entries WHERE partition = ? AND key = ?",
                (partition, key)
            )
        if cursor.rowcount:
            self._stats["deletes"] += 1

    async def clear(self, partition: str) -> None:
        """Remove every entry in a partition."""
        self._check_partition(partition)
        try:
            removed = await self._run(self._clear_partition, partition)
        except sqlite3.Error as e:
            logger.error(f"Error clearing cache partition {partition}: {e}")
            raise WriteError(f"Failed to clear cache partition {partition}: {e}", partition=partition) from e
        logger.info(f"Cleared {removed} entries from cache partition '{partition}'")

    def _clear_partition(self, partition: str) -> int:
        with self._conn:
            cursor = self._conn.execute("DELETE FROM cache_entries WHERE partition = ?", (partition,))
        return cursor.rowcount

    async def purge_expired(self, partition: Optional[str] = None) -> int:
        """
        Delete every expired entry, optionally restricted to one partition.

        Returns:
            Number of entries removed
        """
        if partition is not None:
            self._check_partition(partition)
        now = self._clock()

        try:
            purged = await self._run(self._purge_expired, partition, now)
        except sqlite3.Error as e:
            logger.error(f"Error purging expired cache entries: {e}")
            raise WriteError(f"Failed to purge expired cache entries: {e}", partition=partition) from e

        if purged:
            logger.info(f"Purged {purged} expired cache entries")
        return purged

    def _purge_expired(self, partition: Optional[str], now: int) -> int:
        with self._conn:
            if partition is None:
                cursor = self._conn.execute("DELETE FROM cache_entries WHERE expires_at < ?", (now,))
            else:
                cursor = self._conn.execute(
                    "DELETE FROM cache_entries WHERE partition = ? AND expires_at < ?",
                    (partition, now)
                )
        self._stats["expired"] += cursor.rowcount
        return cursor.rowcount

    async def count(self, partition: str) -> int:
        """Number of stored entries in a partition, expired ones included."""
        self._check_partition(partition)
        try:
            return await self._run(self._count_entries, partition)
        except sqlite3.Error as e:
            raise ReadError(f"Failed to count cache partition {partition}: {e}", partition=partition) from e

    def _count_entries(self, partition: str) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM cache_entries WHERE partition = ?", (partition,)
        ).fetchone()
        return row[0]

    async def get_statistics(self) -> Dict[str, Any]:
        """
        Generate cache statistics and health metrics.

        Returns:
            Dictionary with hit/miss counters, hit rate and per-partition entry counts
        """
        partition_counts = {}
        for partition in self.partitions:
            partition_counts[partition] = await self.count(partition)

        lookups = self._stats["hits"] + self._stats["misses"]
        hit_rate = (self._stats["hits"] / lookups * 100) if lookups > 0 else 0

        return {
            **self._stats,
            "hit_rate": round(hit_rate, 2),
            "total_items": sum(partition_counts.values()),
            "partitions": partition_counts,
            "db_path": self.db_path,
        }

    async def close(self) -> None:
        """Close the database connection. The store reopens lazily if used again."""
        async with self._lock:
            if self._conn is not None:
                await asyncio.to_thread(self._conn.close)
                self._conn = None
            self._initialized = False
