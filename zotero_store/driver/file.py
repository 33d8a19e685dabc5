"""
File driver for zotero_store.

Stores the bucket / scope / collection / document model as a directory tree
of JSON files under the path of a ``file:///<dir>`` URL:

    <dir>/<bucket>/<scope>/<collection>/<key>.json

Document access is guarded by one file lock per collection so that several
processes can share the same directory. Documents are written to a temporary
file and moved into place. Scopes, collections and indexes are created
synchronously, so every collection is usable and every index online as soon
as it exists.
"""

import json
import logging
import os
import shutil
from contextlib import asynccontextmanager
from typing import Any, List, Optional
from urllib.parse import quote, unquote, urlparse

from filelock import AsyncFileLock

from ..errors import (
    AlreadyExistsError,
    DocumentNotFoundError,
    DriverError,
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


INDEX_MARKER = ".primary_index"
LOCK_TIMEOUT = 30
TEMP_SUFFIX = ".tmp"


class CollectionLock:
    """
    File-based locking for document operations.

    Uses one exclusive lock file per collection, kept next to the collection
    directory rather than inside it.
    """

    @staticmethod
    @asynccontextmanager
    async def acquire(path: str):
        """Hold the lock of the collection at ``path`` for the duration of the block."""
        async with AsyncFileLock(path.rstrip(os.sep) + ".lock", timeout=LOCK_TIMEOUT):
            yield


class FileCollection(CollectionHandle):
    """Collection handle over one directory of JSON files."""

    def __init__(self, name: str, path: str):
        self.name = name
        self.path = path

    def _document_path(self, key: str) -> str:
        return os.path.join(self.path, quote(key, safe="") + ".json")

    async def get(self, key: str) -> Any:
        target = self._document_path(key)
        async with CollectionLock.acquire(self.path):
            if not os.path.exists(target):
                raise DocumentNotFoundError(f"document not found: {key}", key)
            try:
                with open(target, "r", encoding="utf-8") as f:
                    return json.load(f)
            except json.JSONDecodeError as e:
                logger.error(f"Failed to parse JSON from {target}: {e}")
                raise DriverError(f"Corrupt document {target}: {e}", key) from e

    async def upsert(self, key: str, value: Any) -> None:
        target = self._document_path(key)
        try:
            content = json.dumps(value, indent=2)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize {key}: {e}")
            raise DriverError(f"Cannot serialize {key}: {e}", key) from e

        # Replaced in one step, readers never see a partial document
        temp = target + TEMP_SUFFIX
        async with CollectionLock.acquire(self.path):
            try:
                with open(temp, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(temp, target)
            except OSError as e:
                logger.error(f"Failed to write to {target}: {e}")
                if os.path.exists(temp):
                    os.remove(temp)
                raise DriverError(f"Cannot write {target}: {e}", key) from e

    async def remove(self, key: str) -> None:
        target = self._document_path(key)
        async with CollectionLock.acquire(self.path):
            try:
                os.remove(target)
            except FileNotFoundError:
                raise DocumentNotFoundError(f"document not found: {key}", key)

    async def keys(self) -> List[str]:
        return sorted(
            unquote(entry[:-5])
            for entry in os.listdir(self.path)
            if entry.endswith(".json")
        )


class FileBucket(BucketHandle):
    """Bucket handle over one directory."""

    def __init__(self, path: str, name: str):
        self.path = path
        self.name = name

    async def create_scope(self, scope: str) -> None:
        try:
            os.mkdir(os.path.join(self.path, scope))
        except FileExistsError:
            raise AlreadyExistsError(f"scope {self.name}.{scope} already exists", scope)

    async def create_collection(self, scope: str, collection: str) -> None:
        scope_path = os.path.join(self.path, scope)
        if not os.path.isdir(scope_path):
            raise NotFoundError(f"scope {self.name}.{scope} not found", scope)
        try:
            os.mkdir(os.path.join(scope_path, collection))
        except FileExistsError:
            raise AlreadyExistsError(
                f"collection {self.name}.{scope}.{collection} already exists", collection
            )

    async def drop_scope(self, scope: str) -> None:
        scope_path = os.path.join(self.path, scope)
        if not os.path.isdir(scope_path):
            raise NotFoundError(f"scope {self.name}.{scope} not found", scope)
        shutil.rmtree(scope_path)

    async def collection(self, scope: str, collection: str) -> CollectionHandle:
        path = os.path.join(self.path, scope, collection)
        if not os.path.isdir(path):
            target = f"{self.name}.{scope}.{collection}"
            raise NotReadyError(f"collection {target} not found", target)
        return FileCollection(collection, path)


class FileCluster(ClusterHandle):
    """Cluster handle over a root directory."""

    def __init__(self, root: str):
        self.root = root

    async def bucket(self, name: str) -> BucketHandle:
        path = os.path.join(self.root, name)
        os.makedirs(path, exist_ok=True)
        return FileBucket(path, name)

    async def create_bucket(self, name: str, ram_quota_mb: int = 200) -> None:
        try:
            os.mkdir(os.path.join(self.root, name))
        except FileExistsError:
            raise AlreadyExistsError(f"bucket {name} already exists", name)

    async def create_primary_index(self, bucket: str, scope: str, collection: str) -> None:
        path = os.path.join(self.root, bucket, scope, collection)
        target = f"{bucket}.{scope}.{collection}"
        if not os.path.isdir(path):
            raise NotFoundError(f"keyspace {target} not found", target)
        try:
            with open(os.path.join(path, INDEX_MARKER), "x", encoding="utf-8") as f:
                f.write(INDEX_ONLINE)
        except FileExistsError:
            raise AlreadyExistsError(f"primary index on {target} already exists", target)

    async def primary_index_state(self, bucket: str, scope: str, collection: str) -> Optional[str]:
        marker = os.path.join(self.root, bucket, scope, collection, INDEX_MARKER)
        if not os.path.exists(marker):
            return None
        with open(marker, "r", encoding="utf-8") as f:
            return f.read().strip()

    async def close(self) -> None:
        pass


async def connect_file(url: str, username: str = "", password: str = "") -> ClusterHandle:
    """Open the directory named by ``file:///<dir>``, creating it if needed."""
    parsed = urlparse(url)
    root = os.path.abspath(parsed.netloc + parsed.path)
    logger.info(f"Using file storage: {root}")
    os.makedirs(root, exist_ok=True)
    return FileCluster(root)


register_driver("file", connect_file)
