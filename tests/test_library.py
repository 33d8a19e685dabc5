"""
Tests for the Library.

Covers:
- Metadata round trip through save and initialization
- Upsert and idempotent delete semantics
- The sync error policy on writes, deletes and metadata reads
- A first synchronization of a personal library
"""

import unittest
from unittest.mock import AsyncMock, patch

from zotero_store import (
    DriverError,
    Library,
    LibraryNotReadyError,
    LibraryState,
    Store,
    StoreOptions,
)
from zotero_store.driver import MemoryCluster
from zotero_store.driver.memory import MemoryCollection


def make_store(name: str, **options) -> Store:
    options.setdefault("timeout", 500)
    options.setdefault("poll_interval", 5)
    return Store(f"memory://{name}", options=StoreOptions(**options))


class TestLibraryMetadata(unittest.IsolatedAsyncioTestCase):
    """Test cases for library metadata."""

    async def asyncSetUp(self):
        MemoryCluster.reset()
        self.store = make_store("metadata")

    async def test_new_library_defaults(self):
        """Test that a never synchronized library has no name and version 0."""
        library = await self.store.get("groups/5")

        self.assertEqual(library.name, "")
        self.assertEqual(library.version, 0)
        self.assertEqual(library.state, LibraryState.READY)

    async def test_save_round_trip(self):
        """Test that saved metadata is loaded by a fresh library."""
        library = await self.store.get("groups/5")
        await library.save("Foo", 7)

        reloaded = await make_store("metadata").get("groups/5")

        self.assertEqual(reloaded.name, "Foo")
        self.assertEqual(reloaded.version, 7)

    async def test_save_uses_user_library_name(self):
        """Test that an empty name is replaced with the configured user library name."""
        store = make_store("metadata", user_library_name="My Library")
        library = await store.get("users/9")
        await library.save("", 2)

        self.assertEqual(library.name, "My Library")
        meta = MemoryCluster.get_state("metadata").buckets["zotero"]["u9"]["meta"]
        self.assertEqual(meta, {"version": 2, "name": "My Library"})

    async def test_metadata_read_error_raised(self):
        """Test that a failing metadata read fails initialization under the throw policy."""
        with patch.object(MemoryCollection, "get", AsyncMock(side_effect=DriverError("timeout"))):
            with self.assertRaises(DriverError):
                await self.store.get("groups/5")

    async def test_metadata_read_error_logged(self):
        """Test that a failing metadata read is logged under the log policy."""
        store = make_store("metadata", throw_sync_errors=False)

        with patch.object(MemoryCollection, "get", AsyncMock(side_effect=DriverError("timeout"))):
            with self.assertLogs("zotero_store.store.store", level="ERROR"):
                library = await store.get("groups/5")

        self.assertEqual(library.state, LibraryState.READY)
        self.assertEqual(library.version, 0)

    async def test_invalid_stored_version(self):
        """Test that a malformed stored version follows the error policy."""
        library = await self.store.get("groups/5")
        await library.save("Foo", 7)
        meta = MemoryCluster.get_state("metadata").buckets["zotero"]["g5"]["meta"]
        meta["version"] = "seven"

        with self.assertRaises(DriverError):
            await make_store("metadata").get("groups/5")

        with self.assertLogs("zotero_store.store.store", level="ERROR") as logs:
            reloaded = await make_store("metadata", throw_sync_errors=False).get("groups/5")

        self.assertEqual(reloaded.state, LibraryState.READY)
        self.assertEqual(reloaded.version, 0)
        self.assertIn("seven", logs.output[0])

    async def test_get_type(self):
        """Test deriving the library type from the prefix."""
        self.assertEqual(Library(self.store, "users/1").get_type(), "user")
        self.assertEqual(Library(self.store, "groups/1").get_type(), "group")


class TestLibraryObjects(unittest.IsolatedAsyncioTestCase):
    """Test cases for item and collection mutations."""

    async def asyncSetUp(self):
        MemoryCluster.reset()
        self.store = make_store("objects")
        self.library = await self.store.get("groups/3")

    async def test_add_is_upsert(self):
        """Test that adding an object twice keeps only the latest version."""
        await self.library.add({"key": "A", "version": 1, "data": {"title": "v1"}})
        await self.library.add({"key": "A", "version": 2, "data": {"title": "v2"}})

        self.assertEqual(await self.library.item_keys(), ["A"])
        item = await self.library.get("A")
        self.assertEqual(item["data"]["title"], "v2")

    async def test_add_collection(self):
        """Test that collections are stored apart from items."""
        await self.library.add_collection({"key": "C", "data": {"name": "Reading"}})

        self.assertEqual(await self.library.collection_keys(), ["C"])
        self.assertEqual(await self.library.item_keys(), [])
        collection = await self.library.get_collection("C")
        self.assertEqual(collection["data"]["name"], "Reading")

    async def test_remove(self):
        """Test removing items and collections by key."""
        await self.library.add({"key": "A"})
        await self.library.add({"key": "B"})
        await self.library.add_collection({"key": "C"})

        await self.library.remove(["A"])
        await self.library.remove_collections(["C"])

        self.assertEqual(await self.library.item_keys(), ["B"])
        self.assertEqual(await self.library.collection_keys(), [])
        self.assertIsNone(await self.library.get("A"))

    async def test_remove_missing_keys(self):
        """Test that removing unknown keys is not an error under either policy."""
        await self.library.remove(["missingKey"])
        await self.library.remove_collections(["missingKey"])

        store = make_store("objects", throw_sync_errors=False)
        library = await store.get("groups/3")
        await library.remove(["missingKey"])
        await library.remove_collections(["missingKey"])

    async def test_not_ready(self):
        """Test that an uninitialized library refuses mutations."""
        library = Library(self.store, "groups/3")

        with self.assertRaises(LibraryNotReadyError):
            await library.add({"key": "A"})
        with self.assertRaises(LibraryNotReadyError):
            await library.save("x", 1)


class TestLibraryErrorPolicy(unittest.IsolatedAsyncioTestCase):
    """Test cases for the sync error policy."""

    async def asyncSetUp(self):
        MemoryCluster.reset()

    async def test_write_error_raised(self):
        """Test that a failed write raises under the throw policy."""
        library = await make_store("policy").get("groups/1")

        with patch.object(MemoryCollection, "upsert", AsyncMock(side_effect=DriverError("disk full"))):
            with self.assertRaises(DriverError):
                await library.add({"key": "A"})

    async def test_write_error_logged(self):
        """Test that a failed write is logged and skipped under the log policy."""
        library = await make_store("policy", throw_sync_errors=False).get("groups/1")

        with patch.object(MemoryCollection, "upsert", AsyncMock(side_effect=DriverError("disk full"))):
            with self.assertLogs("zotero_store.store.store", level="ERROR") as logs:
                await library.add({"key": "A"})
                await library.add_collection({"key": "C"})

        self.assertEqual(len(logs.output), 2)
        self.assertEqual(await library.item_keys(), [])

    async def test_delete_error_does_not_abort_batch(self):
        """Test that one failed delete does not stop the remaining deletes."""
        library = await make_store("policy", throw_sync_errors=False).get("groups/1")
        await library.add({"key": "A"})
        await library.add({"key": "B"})

        remove = AsyncMock(side_effect=[DriverError("locked"), None])
        with patch.object(MemoryCollection, "remove", remove):
            with self.assertLogs("zotero_store.store.store", level="ERROR"):
                await library.remove(["A", "B"])

        self.assertEqual(remove.call_count, 2)

    async def test_delete_error_raised(self):
        """Test that a failed delete aborts the batch under the throw policy."""
        library = await make_store("policy").get("groups/1")

        remove = AsyncMock(side_effect=[DriverError("locked"), None])
        with patch.object(MemoryCollection, "remove", remove):
            with self.assertRaises(DriverError):
                await library.remove(["A", "B"])

        self.assertEqual(remove.call_count, 1)


class TestPersonalLibrarySync(unittest.IsolatedAsyncioTestCase):
    """Test case for a first synchronization of a personal library."""

    async def asyncSetUp(self):
        MemoryCluster.reset()

    async def test_first_sync(self):
        """Test the calls a sync engine makes on a new personal library."""
        store = make_store("personal")
        library = await store.get("users/1")
        self.assertEqual(library.name, "")
        self.assertEqual(library.version, 0)

        await library.add({"key": "ITEM1", "data": {"itemType": "book"}})
        await library.add({"key": "ITEM2", "data": {"itemType": "note"}})
        await library.save("", 3)

        library = await store.get("users/1")
        self.assertEqual(library.name, "User library")
        self.assertEqual(library.version, 3)
        self.assertEqual((await library.get("ITEM1"))["data"]["itemType"], "book")
        self.assertEqual((await library.get("ITEM2"))["data"]["itemType"], "note")
        self.assertEqual(store.libraries, ["users/1"])


if __name__ == "__main__":
    unittest.main()
