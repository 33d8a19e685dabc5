"""
In-memory driver for zotero_store.

Keeps buckets, scopes, collections and documents in process memory, shared by
every connection to the same ``memory://<name>`` URL. Used by the test suite
and for dry runs.

The cluster can simulate the asynchronous behaviour of a real server:
- ``collection_delay``: number of failed probes before a new collection is usable
- ``index_delay``: number of state queries before a new index reports "online"
- ``index_never_online``: indexes stay in the "deferred" state forever
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from ..errors import (
    AlreadyExistsError,
    DocumentNotFoundError,
    NotFoundError,
    NotReadyError,
)
from .base import (
    INDEX_ONLINE,
    BucketHandle,
    ClusterHandle,
    CollectionHandle,
    register_driver,
)

logger = logging.getLogger(__name__)


Keyspace = Tuple[str, str, str]


@dataclass
class MemoryState:
    """Shared state of one named in-memory cluster."""
    buckets: Dict[str, Dict[str, Dict[str, Dict[str, Any]]]] = field(default_factory=dict)
    pending_collections: Dict[Keyspace, int] = field(default_factory=dict)
    indexes: Dict[Keyspace, int] = field(default_factory=dict)
    collection_delay: int = 0
    index_delay: int = 0
    index_never_online: bool = False

    def scopes(self, bucket: str) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return self.buckets.setdefault(bucket, {})


class MemoryCollection(CollectionHandle):
    """Collection handle backed by a dict."""

    def __init__(self, name: str, documents: Dict[str, Any]):
        self.name = name
        self._documents = documents

    async def get(self, key: str) -> Any:
        if key not in self._documents:
            raise DocumentNotFoundError(f"document not found: {key}", key)
        return copy.deepcopy(self._documents[key])

    async def upsert(self, key: str, value: Any) -> None:
        self._documents[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        if key not in self._documents:
            raise DocumentNotFoundError(f"document not found: {key}", key)
        del self._documents[key]

    async def keys(self) -> List[str]:
        return sorted(self._documents)


class MemoryBucket(BucketHandle):
    """Bucket handle over a MemoryState."""

    def __init__(self, state: MemoryState, name: str):
        self._state = state
        self.name = name

    async def create_scope(self, scope: str) -> None:
        scopes = self._state.scopes(self.name)
        if scope in scopes:
            raise AlreadyExistsError(f"scope {self.name}.{scope} already exists", scope)
        scopes[scope] = {}

    async def create_collection(self, scope: str, collection: str) -> None:
        scopes = self._state.scopes(self.name)
        if scope not in scopes:
            raise NotFoundError(f"scope {self.name}.{scope} not found", scope)
        if collection in scopes[scope]:
            raise AlreadyExistsError(
                f"collection {self.name}.{scope}.{collection} already exists", collection
            )
        scopes[scope][collection] = {}
        if self._state.collection_delay:
            self._state.pending_collections[(self.name, scope, collection)] = self._state.collection_delay

    async def drop_scope(self, scope: str) -> None:
        scopes = self._state.scopes(self.name)
        if scope not in scopes:
            raise NotFoundError(f"scope {self.name}.{scope} not found", scope)
        del scopes[scope]
        for registry in (self._state.pending_collections, self._state.indexes):
            for keyspace in [k for k in registry if k[:2] == (self.name, scope)]:
                del registry[keyspace]

    async def collection(self, scope: str, collection: str) -> CollectionHandle:
        keyspace = (self.name, scope, collection)
        target = ".".join(keyspace)
        documents = self._state.scopes(self.name).get(scope, {}).get(collection)
        if documents is None:
            raise NotReadyError(f"collection {target} not found", target)
        remaining = self._state.pending_collections.pop(keyspace, 0)
        if remaining > 0:
            if remaining > 1:
                self._state.pending_collections[keyspace] = remaining - 1
            raise NotReadyError(f"collection {target} not yet available", target)
        return MemoryCollection(collection, documents)


class MemoryCluster(ClusterHandle):
    """Cluster handle over a named MemoryState."""

    _states: Dict[str, MemoryState] = {}

    def __init__(self, state: MemoryState):
        self.state = state
        self.closed = False

    @classmethod
    def get_state(cls, name: str) -> MemoryState:
        """Return the shared state of the named cluster, creating it if needed."""
        if name not in cls._states:
            cls._states[name] = MemoryState()
        return cls._states[name]

    @classmethod
    def reset(cls) -> None:
        """Forget all in-memory clusters."""
        cls._states.clear()

    async def bucket(self, name: str) -> BucketHandle:
        self.state.scopes(name)
        return MemoryBucket(self.state, name)

    async def create_bucket(self, name: str, ram_quota_mb: int = 200) -> None:
        if name in self.state.buckets:
            raise AlreadyExistsError(f"bucket {name} already exists", name)
        self.state.buckets[name] = {}

    async def create_primary_index(self, bucket: str, scope: str, collection: str) -> None:
        keyspace = (bucket, scope, collection)
        target = ".".join(keyspace)
        if collection not in self.state.scopes(bucket).get(scope, {}):
            raise NotFoundError(f"keyspace {target} not found", target)
        if keyspace in self.state.indexes:
            raise AlreadyExistsError(f"primary index on {target} already exists", target)
        self.state.indexes[keyspace] = self.state.index_delay

    async def primary_index_state(self, bucket: str, scope: str, collection: str) -> Optional[str]:
        keyspace = (bucket, scope, collection)
        if keyspace not in self.state.indexes:
            return None
        if self.state.index_never_online:
            return "deferred"
        remaining = self.state.indexes[keyspace]
        if remaining > 0:
            self.state.indexes[keyspace] = remaining - 1
            return "building"
        return INDEX_ONLINE

    async def close(self) -> None:
        self.closed = True


async def connect_memory(url: str, username: str = "", password: str = "") -> ClusterHandle:
    """Connect to the in-memory cluster named by ``memory://<name>``."""
    name = urlparse(url).netloc or "default"
    logger.debug(f"Connecting to in-memory cluster {name}")
    return MemoryCluster(MemoryCluster.get_state(name))


register_driver("memory", connect_memory)
