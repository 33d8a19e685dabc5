"""
Connection management for the Zotero store.

Owns the cluster handle of one Store:
- Lazy connection on first use
- Cached cluster and bucket handles
- Explicit close
"""

import asyncio
import logging
from typing import Optional

from ..driver import BucketHandle, ClusterHandle, connect

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Lazily connects to the cluster and caches the handles.

    The manager is the only owner of the cluster handle; stores and libraries
    keep a reference to the manager and never reconnect themselves. Connection
    errors propagate to the caller and are not retried.
    """

    def __init__(self, url: str, username: str, password: str, bucket_name: str):
        self.url = url
        self.username = username
        self.password = password
        self.bucket_name = bucket_name
        self._cluster: Optional[ClusterHandle] = None
        self._bucket: Optional[BucketHandle] = None
        self._lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._cluster is not None

    async def get_connection(self) -> ClusterHandle:
        """Return the cluster handle, connecting on the first call."""
        async with self._lock:
            if self._cluster is None:
                logger.info(f"Opening connection: {self.url}")
                self._cluster = await connect(self.url, self.username, self.password)
        return self._cluster

    async def get_bucket(self) -> BucketHandle:
        """Return the handle of the configured bucket."""
        cluster = await self.get_connection()
        if self._bucket is None:
            self._bucket = await cluster.bucket(self.bucket_name)
        return self._bucket

    async def close(self) -> None:
        """Close the connection. The next call to get_connection reconnects."""
        if self._cluster is not None:
            await self._cluster.close()
            logger.info(f"Closed connection: {self.url}")
        self._cluster = None
        self._bucket = None
