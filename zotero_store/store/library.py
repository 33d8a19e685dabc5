"""
Library module for the Zotero store.

A Library mirrors one remote Zotero library (a user library or a group
library) inside its own scope:
- "items": item objects keyed by item key
- "collections": collection objects keyed by collection key
- "meta": the documents "name" and "version"
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..driver import CollectionHandle
from ..errors import DocumentNotFoundError, DriverError, LibraryNotReadyError
from .contract import BaseLibrary
from .provisioning import ensure_collection, ensure_primary_index

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)


ITEMS = "items"
COLLECTIONS = "collections"
META = "meta"


class LibraryState(Enum):
    """Initialization state of a library."""
    UNINITIALIZED = "uninitialized"
    PROVISIONING = "provisioning"
    READY = "ready"
    FAILED = "failed"


class Library(BaseLibrary):
    """
    Implementation of a Zotero library object.

    Created by Store.get. ``init`` must complete before the library can be
    read or modified.
    """

    synchronized_object_types = [ITEMS, COLLECTIONS]

    def __init__(self, store: "Store", user_or_group_prefix: str):
        self.name: str = ""
        self.version: int = 0
        self.state = LibraryState.UNINITIALIZED
        self.store = store
        self.user_or_group_prefix = user_or_group_prefix
        self.scope_name = store.create_scope_name(user_or_group_prefix)
        self._collections: Dict[str, CollectionHandle] = {}

    def __repr__(self) -> str:
        return (
            f"Library(prefix={self.user_or_group_prefix!r}, scope={self.scope_name!r}, "
            f"state={self.state.value}, version={self.version})"
        )

    def get_type(self) -> str:
        """Return "user" or "group"."""
        return "user" if self.user_or_group_prefix.startswith("users/") else "group"

    async def init(self) -> "Library":
        """
        Provision the scope, collections and indexes, then load the metadata.

        Safe to run repeatedly and from several processes at once.

        Returns:
            The library itself

        Raises:
            ProvisioningTimeoutError: If the server does not materialize a
                collection or index within the store timeout
        """
        self.state = LibraryState.PROVISIONING
        options = self.store.options
        try:
            cluster = await self.store.get_cluster()
            bucket = await self.store.get_bucket()
            for collection_name in self.synchronized_object_types + [META]:
                collection = await ensure_collection(
                    bucket,
                    self.scope_name,
                    collection_name,
                    options.timeout,
                    options.poll_interval,
                )
                await ensure_primary_index(
                    cluster,
                    bucket.name,
                    self.scope_name,
                    collection_name,
                    options.timeout,
                    options.poll_interval,
                )
                self._collections[collection_name] = collection
            self.state = LibraryState.READY
            await self._load_metadata()
        except Exception:
            self.state = LibraryState.FAILED
            raise

        logger.info(f"Library {self.user_or_group_prefix} ready (version {self.version})")
        return self

    async def _load_metadata(self) -> None:
        meta = self._get_collection(META)
        try:
            self.name = await meta.get("name")
            version = await meta.get("version")
            try:
                self.version = int(version)
            except (TypeError, ValueError) as e:
                raise DriverError(
                    f"Invalid version {version!r} stored for {self.user_or_group_prefix}",
                    self.user_or_group_prefix,
                ) from e
        except DocumentNotFoundError:
            logger.debug(f"No metadata for {self.user_or_group_prefix}, library was never synchronized")
        except DriverError as e:
            self.store.handle_sync_error(e, f"loading metadata of {self.user_or_group_prefix}")

    def _get_collection(self, collection_name: str) -> CollectionHandle:
        if self.state is not LibraryState.READY:
            raise LibraryNotReadyError(
                f"Library {self.user_or_group_prefix} is {self.state.value}, not ready",
                self.user_or_group_prefix,
            )
        return self._collections[collection_name]

    async def _upsert(self, collection_name: str, obj: Dict[str, Any]) -> None:
        collection = self._get_collection(collection_name)
        try:
            await collection.upsert(obj["key"], obj)
        except DriverError as e:
            self.store.handle_sync_error(e, f"saving {collection_name} {obj['key']}")

    async def _remove(self, collection_name: str, keys: List[str]) -> None:
        collection = self._get_collection(collection_name)
        for key in keys:
            try:
                await collection.remove(key)
            except DocumentNotFoundError:
                pass
            except DriverError as e:
                self.store.handle_sync_error(e, f"removing {collection_name} {key}")

    async def _read(self, collection_name: str, key: str) -> Optional[Dict[str, Any]]:
        collection = self._get_collection(collection_name)
        try:
            return await collection.get(key)
        except DocumentNotFoundError:
            return None

    async def add_collection(self, collection: Dict[str, Any]) -> None:
        """
        Adds a Zotero collection object.

        Args:
            collection: Collection object with a "key" entry
        """
        await self._upsert(COLLECTIONS, collection)

    async def remove_collections(self, keys: List[str]) -> None:
        """
        Removes Zotero collection objects.

        Args:
            keys: Collection keys; unknown keys are ignored
        """
        await self._remove(COLLECTIONS, keys)

    async def add(self, item: Dict[str, Any]) -> None:
        """
        Adds a Zotero item object.

        Args:
            item: Item object with a "key" entry
        """
        await self._upsert(ITEMS, item)

    async def remove(self, keys: List[str]) -> None:
        """
        Removes Zotero item objects.

        Args:
            keys: Item keys; unknown keys are ignored
        """
        await self._remove(ITEMS, keys)

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored item with the given key, or None."""
        return await self._read(ITEMS, key)

    async def get_collection(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored collection with the given key, or None."""
        return await self._read(COLLECTIONS, key)

    async def item_keys(self) -> List[str]:
        return await self._get_collection(ITEMS).keys()

    async def collection_keys(self) -> List[str]:
        return await self._get_collection(COLLECTIONS).keys()

    async def save(self, name: str, version: int) -> None:
        """
        Saves the library metadata.

        "version" and "name" are two separate documents written one after the
        other; a failure between the two writes leaves them out of step until
        the next successful save.

        Args:
            name: Descriptive name of the library. Empty for the user library,
                in which case StoreOptions.user_library_name is stored.
            version: Library version the local data is synchronized to
        """
        if not name:
            name = self.store.options.user_library_name
        meta = self._get_collection(META)
        for key, value in (("version", version), ("name", name)):
            try:
                await meta.upsert(key, value)
            except DriverError as e:
                self.store.handle_sync_error(e, f"saving {key} of {self.user_or_group_prefix}")
        self.name = name
        self.version = version
        logger.info(f"Saved library {self.user_or_group_prefix}: {name!r} at version {version}")
