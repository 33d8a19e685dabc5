"""
Store module for the Zotero store.

Entry point for a synchronization engine:
- Registry of known libraries
- Translation of library prefixes into scope names
- get / remove of libraries
- The sync error policy (raise or log)
"""

import logging
import re
from typing import List, Optional

from ..config import ConnectionSettings, StoreOptions
from ..driver import BucketHandle, ClusterHandle
from ..errors import ConnectionFailedError, DriverError
from .connection import ConnectionManager
from .contract import BaseStore
from .library import Library

logger = logging.getLogger(__name__)


_PREFIX_PATTERN = re.compile(r"roups/|sers/")


def default_scope_name(user_or_group_prefix: str) -> str:
    """
    Shorten a prefix to a scope name: "users/12345" -> "u12345", "groups/12345" -> "g12345".

    Args:
        user_or_group_prefix: Zotero REST API prefix
    """
    return _PREFIX_PATTERN.sub("", user_or_group_prefix, count=1).replace("/", "")


class Store(BaseStore):
    """
    Zotero store backed by a document database.

    The connection is opened on first use and shared by every library
    obtained from this store.
    """

    def __init__(
        self,
        url: str,
        username: str = "",
        password: str = "",
        options: Optional[StoreOptions] = None,
    ):
        self.options = options or StoreOptions()
        self.libraries: List[str] = []
        self.connection = ConnectionManager(url, username, password, self.options.bucket_name)

    @classmethod
    def from_settings(cls, settings: ConnectionSettings) -> "Store":
        """Create a store from loaded connection settings."""
        return cls(settings.url, settings.username, settings.password, settings.options)

    @property
    def bucket_name(self) -> str:
        return self.options.bucket_name

    @property
    def timeout(self) -> float:
        return self.options.timeout

    async def get_cluster(self) -> ClusterHandle:
        """Returns the cluster handle."""
        return await self.connection.get_connection()

    async def get_bucket(self) -> BucketHandle:
        """Returns the bucket in which the Zotero data is stored."""
        return await self.connection.get_bucket()

    def create_scope_name(self, user_or_group_prefix: str) -> str:
        """
        Given a Zotero REST API prefix (e.g. users/12345 or groups/12345), return
        the scope name under which the library is stored.

        Uses StoreOptions.scope_name_func when set, default_scope_name otherwise.
        """
        impl = self.options.scope_name_func or default_scope_name
        return impl(user_or_group_prefix)

    def handle_sync_error(self, error: DriverError, action: str) -> None:
        """
        Apply the sync error policy to a failed operation.

        Connection failures are always raised. Other errors are raised when
        StoreOptions.throw_sync_errors is set and logged otherwise.
        """
        if isinstance(error, ConnectionFailedError) or self.options.throw_sync_errors:
            raise error
        logger.error(f"Error {action}: {error.message}")

    async def get(self, user_or_group_prefix: str) -> Library:
        """
        Gets a library, creating it if it doesn't exist.

        Args:
            user_or_group_prefix: e.g. "users/12345" or "groups/12345"

        Returns:
            The initialized library
        """
        if user_or_group_prefix not in self.libraries:
            self.libraries.append(user_or_group_prefix)
        library = Library(self, user_or_group_prefix)
        return await library.init()

    async def remove(self, user_or_group_prefix: str) -> None:
        """
        Removes a library and all of its data from the store.

        The prefix is removed from ``libraries`` whether or not the scope
        could be dropped.
        """
        scope_name = self.create_scope_name(user_or_group_prefix)
        try:
            bucket = await self.get_bucket()
            try:
                await bucket.drop_scope(scope_name)
                logger.info(f"Removed library {user_or_group_prefix} (scope {bucket.name}.{scope_name})")
            except DriverError as e:
                self.handle_sync_error(e, f"removing library {user_or_group_prefix}")
        finally:
            if user_or_group_prefix in self.libraries:
                self.libraries.remove(user_or_group_prefix)

    async def close(self) -> None:
        """Close the connection."""
        await self.connection.close()

    async def __aenter__(self) -> "Store":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Store(url={self.connection.url!r}, bucket={self.bucket_name!r}, libraries={len(self.libraries)})"
