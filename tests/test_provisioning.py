"""
Tests for provisioning.

Covers:
- Idempotent creation of scopes, collections and indexes
- Waiting for collections and indexes the server creates asynchronously
- Timeouts
"""

import time
import unittest

from zotero_store import Library, LibraryState, ProvisioningTimeoutError, Store, StoreOptions
from zotero_store.driver import MemoryCluster, connect
from zotero_store.store import ensure_collection, ensure_primary_index, ensure_scope


class TestProvisioningHelpers(unittest.IsolatedAsyncioTestCase):
    """Test cases for the provisioning helpers."""

    async def asyncSetUp(self):
        MemoryCluster.reset()
        self.cluster = await connect("memory://helpers")
        self.state = self.cluster.state
        self.bucket = await self.cluster.bucket("zotero")

    async def test_ensure_scope_twice(self):
        """Test that creating an existing scope is not an error."""
        await ensure_scope(self.bucket, "u1")
        await ensure_scope(self.bucket, "u1")

        self.assertIn("u1", self.state.buckets["zotero"])

    async def test_ensure_collection_twice(self):
        """Test that creating an existing collection returns a usable handle."""
        first = await ensure_collection(self.bucket, "u1", "items", 500, 5)
        await first.upsert("A", {"key": "A"})

        second = await ensure_collection(self.bucket, "u1", "items", 500, 5)

        self.assertEqual(await second.get("A"), {"key": "A"})

    async def test_ensure_collection_waits(self):
        """Test waiting for a collection that becomes usable after a few probes."""
        self.state.collection_delay = 3

        collection = await ensure_collection(self.bucket, "u1", "items", 1000, 5)

        self.assertEqual(collection.name, "items")
        self.assertNotIn(("zotero", "u1", "items"), self.state.pending_collections)

    async def test_ensure_collection_timeout(self):
        """Test that a collection that never becomes usable times out."""
        self.state.collection_delay = 10 ** 6

        with self.assertRaises(ProvisioningTimeoutError) as cm:
            await ensure_collection(self.bucket, "u1", "items", 100, 10)

        self.assertEqual(cm.exception.target, "zotero.u1.items")
        self.assertIn("100 ms", cm.exception.message)

    async def test_ensure_primary_index_waits(self):
        """Test waiting for an index that is building."""
        self.state.index_delay = 4
        await ensure_collection(self.bucket, "u1", "items", 500, 5)

        await ensure_primary_index(self.cluster, "zotero", "u1", "items", 1000, 5)

        state = await self.cluster.primary_index_state("zotero", "u1", "items")
        self.assertEqual(state, "online")

    async def test_ensure_primary_index_twice(self):
        """Test that an existing index is accepted."""
        await ensure_collection(self.bucket, "u1", "items", 500, 5)

        await ensure_primary_index(self.cluster, "zotero", "u1", "items", 500, 5)
        await ensure_primary_index(self.cluster, "zotero", "u1", "items", 500, 5)


class TestLibraryProvisioning(unittest.IsolatedAsyncioTestCase):
    """Test cases for library initialization against a slow server."""

    async def asyncSetUp(self):
        MemoryCluster.reset()
        self.state = MemoryCluster.get_state("slow")

    async def test_slow_server(self):
        """Test that initialization waits for collections and indexes."""
        self.state.collection_delay = 2
        self.state.index_delay = 2
        store = Store("memory://slow", options=StoreOptions(timeout=2000, poll_interval=5))

        library = await store.get("groups/8")

        self.assertEqual(library.state, LibraryState.READY)
        self.assertEqual(
            sorted(self.state.buckets["zotero"]["g8"]),
            ["collections", "items", "meta"],
        )

    async def test_index_never_online(self):
        """Test that initialization fails after about the configured timeout."""
        self.state.index_never_online = True
        store = Store("memory://slow", options=StoreOptions(timeout=300, poll_interval=20))

        started = time.monotonic()
        with self.assertRaises(ProvisioningTimeoutError) as cm:
            await store.get("groups/8")
        elapsed = time.monotonic() - started

        self.assertGreaterEqual(elapsed, 0.29)
        self.assertLess(elapsed, 3)
        self.assertEqual(cm.exception.target, "zotero.g8.items")
        self.assertGreaterEqual(cm.exception.elapsed, 299)

    async def test_failed_library_state(self):
        """Test that a library whose provisioning timed out is marked failed."""
        self.state.index_never_online = True
        store = Store("memory://slow", options=StoreOptions(timeout=50, poll_interval=10))
        library = Library(store, "groups/8")

        with self.assertRaises(ProvisioningTimeoutError):
            await library.init()

        self.assertEqual(library.state, LibraryState.FAILED)


if __name__ == "__main__":
    unittest.main()
