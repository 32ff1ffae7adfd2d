"""
Unit tests for PersistentCacheStore.
Tests TTL expiry, partition isolation, error wrapping and statistics.
"""
import asyncio
import json
import os
import sqlite3
import tempfile
import unittest
from unittest.mock import patch

from sonhub.caching.cache_store import (
    PersistentCacheStore,
    BIBLE_CHAPTERS,
    POSTS,
    MEDIA,
    USER_DATA,
)
from sonhub.errors import ReadError, StorageUnavailable, UnknownPartitionError, WriteError

START_MS = 1_700_000_000_000


class TestPersistentCacheStore(unittest.IsolatedAsyncioTestCase):
    """Test cases for PersistentCacheStore."""

    async def asyncSetUp(self):
        """Set up a store on a temp database with a controllable clock."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "cache.db")
        self.now = START_MS
        self.store = PersistentCacheStore(self.db_path, clock=lambda: self.now)

    async def asyncTearDown(self):
        """Clean up test resources."""
        await self.store.close()
        self.temp_dir.cleanup()

    async def test_set_and_get(self):
        """Test a stored value is returned unchanged."""
        value = {"id": "p1", "tags": ["#faith"], "count": 3}
        await self.store.set(POSTS, "p1", value, ttl_ms=60_000)

        self.assertEqual(await self.store.get(POSTS, "p1"), value)
        self.assertIsNone(await self.store.get(POSTS, "missing"))

    async def test_entry_expires_after_ttl(self):
        """Test an entry is live through its expiry instant and gone after it."""
        await self.store.set(POSTS, "p1", {"id": "p1"}, ttl_ms=1000)

        self.now = START_MS + 1000
        self.assertEqual(await self.store.get(POSTS, "p1"), {"id": "p1"})

        self.now = START_MS + 1001
        self.assertIsNone(await self.store.get(POSTS, "p1"))

    async def test_expired_entry_deleted_on_read(self):
        """Test an expired read removes the entry, and a second read is a plain miss."""
        await self.store.set(POSTS, "p1", {"id": "p1"}, ttl_ms=1000)
        self.now = START_MS + 5000

        # Still stored until someone reads it
        self.assertEqual(await self.store.count(POSTS), 1)

        self.assertIsNone(await self.store.get(POSTS, "p1"))
        self.assertEqual(await self.store.count(POSTS), 0)

        self.assertIsNone(await self.store.get(POSTS, "p1"))
        stats = await self.store.get_statistics()
        self.assertEqual(stats["expired"], 1)
        self.assertEqual(stats["misses"], 2)

    async def test_get_entry_timestamps(self):
        """Test created_at and expires_at reflect the clock and ttl."""
        await self.store.set(BIBLE_CHAPTERS, "Genesis-1-kjv", {"book": "Genesis"}, ttl_ms=86_400_000)

        entry = await self.store.get_entry(BIBLE_CHAPTERS, "Genesis-1-kjv")
        self.assertEqual(entry.created_at, START_MS)
        self.assertEqual(entry.expires_at, START_MS + 86_400_000)
        self.assertFalse(entry.is_expired(START_MS + 86_400_000))
        self.assertTrue(entry.is_expired(START_MS + 86_400_001))

    async def test_overwrite_replaces_value_and_ttl(self):
        """Test a second set replaces both the value and the expiry."""
        await self.store.set(POSTS, "p1", {"v": 1}, ttl_ms=1000)
        self.now = START_MS + 500
        await self.store.set(POSTS, "p1", {"v": 2}, ttl_ms=10_000)

        self.now = START_MS + 2000
        self.assertEqual(await self.store.get(POSTS, "p1"), {"v": 2})
        self.assertEqual(await self.store.count(POSTS), 1)

    async def test_partitions_are_isolated(self):
        """Test the same key in two partitions holds two values."""
        await self.store.set(POSTS, "shared", {"kind": "post"})
        await self.store.set(USER_DATA, "shared", {"kind": "user"})

        self.assertEqual(await self.store.get(POSTS, "shared"), {"kind": "post"})
        self.assertEqual(await self.store.get(USER_DATA, "shared"), {"kind": "user"})

        await self.store.clear(POSTS)
        self.assertIsNone(await self.store.get(POSTS, "shared"))
        self.assertEqual(await self.store.get(USER_DATA, "shared"), {"kind": "user"})

    async def test_delete(self):
        """Test delete removes an entry and deleting a missing key is a no-op."""
        await self.store.set(POSTS, "p1", {"id": "p1"})
        await self.store.delete(POSTS, "p1")
        await self.store.delete(POSTS, "never-stored")

        self.assertIsNone(await self.store.get(POSTS, "p1"))
        stats = await self.store.get_statistics()
        self.assertEqual(stats["deletes"], 1)

    async def test_bytes_round_trip(self):
        """Test binary payloads are stored raw."""
        blob = bytes(range(256))
        await self.store.set(MEDIA, "https://cdn.example.com/a.jpg", blob)

        result = await self.store.get(MEDIA, "https://cdn.example.com/a.jpg")
        self.assertIsInstance(result, bytes)
        self.assertEqual(result, blob)

    async def test_invalid_arguments(self):
        """Test unknown partitions, None values and non-positive TTLs are rejected."""
        with self.assertRaises(UnknownPartitionError):
            await self.store.get("videos", "k")
        with self.assertRaises(ValueError):
            await self.store.set("videos", "k", {"a": 1})
        with self.assertRaises(ValueError):
            await self.store.set(POSTS, "k", None)
        with self.assertRaises(ValueError):
            await self.store.set(POSTS, "k", {"a": 1}, ttl_ms=0)
        with self.assertRaises(ValueError):
            await self.store.set(POSTS, "k", {"a": 1}, ttl_ms=-0.5)

    async def test_fractional_ttl_rounds_up(self):
        """Test sub-millisecond TTLs still expire after they were created."""
        await self.store.set(POSTS, "tiny", {"v": 1}, ttl_ms=0.5)
        await self.store.set(POSTS, "odd", {"v": 2}, ttl_ms=1500.2)

        tiny = await self.store.get_entry(POSTS, "tiny")
        self.assertGreater(tiny.expires_at, tiny.created_at)
        self.assertEqual(tiny.expires_at, START_MS + 1)

        odd = await self.store.get_entry(POSTS, "odd")
        self.assertEqual(odd.expires_at, START_MS + 1501)

    async def test_initialize_is_idempotent(self):
        """Test repeated initialization keeps existing data."""
        await self.store.initialize()
        await self.store.set(POSTS, "p1", {"id": "p1"})
        await self.store.initialize()

        self.assertTrue(self.store.is_available)
        self.assertEqual(await self.store.get(POSTS, "p1"), {"id": "p1"})

    async def test_data_survives_reopen(self):
        """Test entries persist across store instances."""
        await self.store.set(POSTS, "p1", {"id": "p1"}, ttl_ms=60_000)
        await self.store.close()

        reopened = PersistentCacheStore(self.db_path, clock=lambda: self.now)
        try:
            self.assertEqual(await reopened.get(POSTS, "p1"), {"id": "p1"})
        finally:
            await reopened.close()

    async def test_storage_unavailable_is_remembered(self):
        """Test a failed open raises StorageUnavailable and is not retried."""
        store = PersistentCacheStore(os.path.join(self.temp_dir.name, "broken.db"))

        with patch("sqlite3.connect", side_effect=sqlite3.OperationalError("unable to open database file")):
            with self.assertRaises(StorageUnavailable):
                await store.get(POSTS, "p1")

        # Connect would succeed now, but the failure sticks for the session
        with self.assertRaises(StorageUnavailable):
            await store.set(POSTS, "p1", {"id": "p1"})
        self.assertFalse(store.is_available)

    async def test_read_fault_raises_read_error(self):
        """Test a failed read is reported as ReadError, not as a miss."""
        await self.store.initialize()

        with patch.object(self.store, "_read_entry", side_effect=sqlite3.OperationalError("database is locked")):
            with self.assertRaises(ReadError) as ctx:
                await self.store.get(POSTS, "p1")

        self.assertIsInstance(ctx.exception.__cause__, sqlite3.OperationalError)
        self.assertEqual(ctx.exception.partition, POSTS)
        self.assertEqual(ctx.exception.key, "p1")

    async def test_corrupt_entry_raises_read_error(self):
        """Test an undecodable stored payload is reported as ReadError."""
        await self.store.initialize()
        with self.store._conn:
            self.store._conn.execute(
                "INSERT INTO cache_entries (partition, key, data, encoding, created_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (POSTS, "bad-utf8", b"\xff\xfe{not json", "json", START_MS, START_MS + 10_000)
            )
            self.store._conn.execute(
                "INSERT INTO cache_entries (partition, key, data, encoding, created_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (POSTS, "bad-json", "{not json", "json", START_MS, START_MS + 10_000)
            )

        with self.assertRaises(ReadError) as ctx:
            await self.store.get(POSTS, "bad-utf8")
        self.assertIsInstance(ctx.exception.__cause__, UnicodeDecodeError)

        with self.assertRaises(ReadError) as ctx:
            await self.store.get(POSTS, "bad-json")
        self.assertIsInstance(ctx.exception.__cause__, json.JSONDecodeError)

    async def test_write_fault_keeps_prior_entry(self):
        """Test a failed overwrite raises WriteError and leaves the old value."""
        await self.store.set(POSTS, "p1", {"v": 1})

        with self.store._conn:
            self.store._conn.execute(
                "CREATE TRIGGER reject_p1 BEFORE INSERT ON cache_entries "
                "WHEN NEW.key = 'p1' BEGIN SELECT RAISE(ABORT, 'rejected'); END"
            )

        with self.assertRaises(WriteError):
            await self.store.set(POSTS, "p1", {"v": 2})

        self.assertEqual(await self.store.get(POSTS, "p1"), {"v": 1})

    async def test_write_fault_raises_write_error(self):
        """Test a driver error during set is wrapped in WriteError."""
        await self.store.initialize()

        with patch.object(self.store, "_write_entry", side_effect=sqlite3.OperationalError("disk full")):
            with self.assertRaises(WriteError):
                await self.store.set(POSTS, "p1", {"id": "p1"})

    async def test_purge_expired(self):
        """Test purge removes only expired entries."""
        await self.store.set(POSTS, "short", {"v": 1}, ttl_ms=1000)
        await self.store.set(POSTS, "long", {"v": 2}, ttl_ms=100_000)
        await self.store.set(MEDIA, "short-media", b"x", ttl_ms=1000)

        self.now = START_MS + 5000
        self.assertEqual(await self.store.purge_expired(POSTS), 1)
        self.assertEqual(await self.store.count(POSTS), 1)
        self.assertEqual(await self.store.count(MEDIA), 1)

        self.assertEqual(await self.store.purge_expired(), 1)
        self.assertEqual(await self.store.count(MEDIA), 0)

    async def test_statistics(self):
        """Test hit rate and per-partition counts."""
        await self.store.set(POSTS, "p1", {"id": "p1"})
        await self.store.set(MEDIA, "m1", b"blob")

        await self.store.get(POSTS, "p1")
        await self.store.get(POSTS, "p1")
        await self.store.get(POSTS, "p2")
        await self.store.get(MEDIA, "m1")

        stats = await self.store.get_statistics()
        self.assertEqual(stats["hits"], 3)
        self.assertEqual(stats["misses"], 1)
        self.assertEqual(stats["writes"], 2)
        self.assertEqual(stats["hit_rate"], 75.0)
        self.assertEqual(stats["total_items"], 2)
        self.assertEqual(stats["partitions"][POSTS], 1)
        self.assertEqual(stats["partitions"][BIBLE_CHAPTERS], 0)


class TestStoreBuiltOutsideLoop(unittest.TestCase):
    """Test a store constructed before any event loop is running."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.store = PersistentCacheStore(os.path.join(self.temp_dir.name, "cache.db"),
                                          clock=lambda: START_MS)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_concurrent_use_in_later_loop(self):
        """Test contended operations work in a loop started after construction."""
        async def exercise():
            try:
                await asyncio.gather(*(
                    self.store.set(POSTS, f"p{i}", {"id": i}) for i in range(20)
                ))
                return await asyncio.gather(*(
                    self.store.get(POSTS, f"p{i}") for i in range(20)
                ))
            finally:
                await self.store.close()

        results = asyncio.run(exercise())

        self.assertEqual(results, [{"id": i} for i in range(20)])


if __name__ == '__main__':
    unittest.main()
