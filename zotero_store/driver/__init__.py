"""
Driver module for zotero_store.

Provides the database drivers, selected by connection URL scheme:
- couchbase:// and couchbases:// (Couchbase Server via acouchbase)
- memory://<name> (process-local, for tests and dry runs)
- file:///<dir> (JSON files with file locking)
"""

from .base import (
    INDEX_ONLINE,
    BucketHandle,
    ClusterHandle,
    CollectionHandle,
    connect,
    get_connector,
    register_driver,
)
from .memory import MemoryCluster, MemoryState
from .file import FileCluster
from .couchbase import CouchbaseCluster

__all__ = [
    "INDEX_ONLINE",
    "BucketHandle",
    "ClusterHandle",
    "CollectionHandle",
    "connect",
    "get_connector",
    "register_driver",
    "MemoryCluster",
    "MemoryState",
    "FileCluster",
    "CouchbaseCluster",
]
