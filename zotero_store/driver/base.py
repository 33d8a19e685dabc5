"""
Driver interfaces for zotero_store.

A driver exposes the bucket / scope / collection / document model of the
backing database through three handle types:
- ClusterHandle: connection-level operations and query indexes
- BucketHandle: scope and collection management
- CollectionHandle: key/value document access

Drivers report failures with the tagged errors of zotero_store.errors so that
callers never inspect driver-specific messages.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlparse

from ..errors import ConfigurationError


INDEX_ONLINE = "online"


class CollectionHandle(ABC):
    """Key/value access to one collection."""

    name: str

    @abstractmethod
    async def get(self, key: str) -> Any:
        """
        Read a document.

        Raises:
            DocumentNotFoundError: If the key does not exist
        """

    @abstractmethod
    async def upsert(self, key: str, value: Any) -> None:
        """Insert the document, replacing any existing one under the same key."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """
        Delete a document.

        Raises:
            DocumentNotFoundError: If the key does not exist
        """

    @abstractmethod
    async def keys(self) -> List[str]:
        """List the keys stored in this collection, sorted."""


class BucketHandle(ABC):
    """Scope and collection management inside one bucket."""

    name: str

    @abstractmethod
    async def create_scope(self, scope: str) -> None:
        """
        Create a scope.

        Raises:
            AlreadyExistsError: If the scope exists
        """

    @abstractmethod
    async def create_collection(self, scope: str, collection: str) -> None:
        """
        Create a collection inside an existing scope.

        Raises:
            AlreadyExistsError: If the collection exists
        """

    @abstractmethod
    async def drop_scope(self, scope: str) -> None:
        """
        Drop a scope together with all of its collections.

        Raises:
            NotFoundError: If the scope does not exist
        """

    @abstractmethod
    async def collection(self, scope: str, collection: str) -> CollectionHandle:
        """
        Return a usable handle to a collection.

        Raises:
            NotReadyError: If the collection is not (yet) available
        """


class ClusterHandle(ABC):
    """An authenticated connection to a cluster."""

    @abstractmethod
    async def bucket(self, name: str) -> BucketHandle:
        """Open a bucket."""

    @abstractmethod
    async def create_bucket(self, name: str, ram_quota_mb: int = 200) -> None:
        """
        Create a bucket.

        Raises:
            AlreadyExistsError: If the bucket exists
        """

    @abstractmethod
    async def create_primary_index(self, bucket: str, scope: str, collection: str) -> None:
        """
        Create the primary index of a collection.

        Raises:
            AlreadyExistsError: If the index exists
        """

    @abstractmethod
    async def primary_index_state(self, bucket: str, scope: str, collection: str) -> Optional[str]:
        """Return the state of the primary index ("online" when usable), or None if unknown."""

    @abstractmethod
    async def close(self) -> None:
        """Release the connection."""


Connector = Callable[[str, str, str], Awaitable[ClusterHandle]]

_connectors: Dict[str, Connector] = {}


def register_driver(scheme: str, connector: Connector) -> None:
    """
    Register a connector for a URL scheme.

    Args:
        scheme: URL scheme, e.g. "couchbase"
        connector: Coroutine function taking (url, username, password)
    """
    _connectors[scheme] = connector


def get_connector(url: str) -> Connector:
    """Return the connector registered for the scheme of ``url``."""
    scheme = urlparse(url).scheme
    if scheme not in _connectors:
        raise ConfigurationError(
            f"No driver for URL scheme '{scheme}' (known: {', '.join(sorted(_connectors))})",
            url,
        )
    return _connectors[scheme]


async def connect(url: str, username: str = "", password: str = "") -> ClusterHandle:
    """
    Connect to a cluster, choosing the driver from the URL scheme.

    Args:
        url: Connection URL (couchbase://, couchbases://, memory://, file://)
        username: User name, ignored by the local drivers
        password: Password, ignored by the local drivers

    Returns:
        An authenticated cluster handle
    """
    connector = get_connector(url)
    return await connector(url, username, password)
