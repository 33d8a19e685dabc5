"""
Couchbase driver for zotero_store.

Wraps the asyncio flavour of the Couchbase Python SDK (``acouchbase``) and
translates SDK exceptions into the tagged errors of zotero_store.errors.
"""

import logging
from contextlib import contextmanager
from typing import Any, List, Optional, Tuple, Type

from acouchbase.cluster import Cluster
from couchbase.auth import PasswordAuthenticator
from couchbase.exceptions import (
    AuthenticationException,
    BucketAlreadyExistsException,
    BucketNotFoundException,
    CollectionAlreadyExistsException,
    CollectionNotFoundException,
    CouchbaseException,
    DocumentNotFoundException,
    QueryIndexAlreadyExistsException,
    ScopeAlreadyExistsException,
    ScopeNotFoundException,
)
from couchbase.management.buckets import BucketType, CreateBucketSettings
from couchbase.management.collections import CollectionSpec
from couchbase.management.options import (
    CreatePrimaryQueryIndexOptions,
    GetAllQueryIndexOptions,
)
from couchbase.options import ClusterOptions

from ..errors import (
    AlreadyExistsError,
    ConnectionFailedError,
    DocumentNotFoundError,
    DriverError,
    NotFoundError,
    NotReadyError,
    StoreError,
)
from .base import BucketHandle, ClusterHandle, CollectionHandle, register_driver

logger = logging.getLogger(__name__)


# Checked in order, first match wins
ERROR_KINDS: List[Tuple[Type[Exception], Type[StoreError]]] = [
    (ScopeAlreadyExistsException, AlreadyExistsError),
    (CollectionAlreadyExistsException, AlreadyExistsError),
    (QueryIndexAlreadyExistsException, AlreadyExistsError),
    (BucketAlreadyExistsException, AlreadyExistsError),
    (DocumentNotFoundException, DocumentNotFoundError),
    (ScopeNotFoundException, NotFoundError),
    (CollectionNotFoundException, NotFoundError),
    (BucketNotFoundException, NotFoundError),
    (AuthenticationException, ConnectionFailedError),
]


def classify(error: Exception) -> Type[StoreError]:
    """Return the zotero_store error class for an SDK exception."""
    for sdk_class, store_class in ERROR_KINDS:
        if isinstance(error, sdk_class):
            return store_class
    return DriverError


@contextmanager
def translate_errors(target: str):
    """Re-raise SDK exceptions raised in the block as zotero_store errors."""
    try:
        yield
    except CouchbaseException as e:
        error_class = classify(e)
        raise error_class(f"{target}: {e}", target) from e


class CouchbaseCollection(CollectionHandle):
    """Collection handle over an acouchbase collection."""

    def __init__(self, scope: Any, name: str, bucket: str):
        self._scope = scope
        self._collection = scope.collection(name)
        self._keyspace = f"`{bucket}`.`{scope.name}`.`{name}`"
        self.name = name

    async def get(self, key: str) -> Any:
        with translate_errors(key):
            result = await self._collection.get(key)
        return result.value

    async def upsert(self, key: str, value: Any) -> None:
        with translate_errors(key):
            await self._collection.upsert(key, value)

    async def remove(self, key: str) -> None:
        with translate_errors(key):
            await self._collection.remove(key)

    async def keys(self) -> List[str]:
        statement = f"SELECT RAW META().id FROM {self._keyspace} ORDER BY META().id"
        with translate_errors(self._keyspace):
            result = self._scope.query(statement)
            return [row async for row in result]


class CouchbaseBucket(BucketHandle):
    """Bucket handle over an acouchbase bucket."""

    def __init__(self, bucket: Any):
        self._bucket = bucket
        self.name = bucket.name

    async def create_scope(self, scope: str) -> None:
        with translate_errors(f"{self.name}.{scope}"):
            await self._bucket.collections().create_scope(scope)

    async def create_collection(self, scope: str, collection: str) -> None:
        spec = CollectionSpec(collection, scope_name=scope)
        with translate_errors(f"{self.name}.{scope}.{collection}"):
            await self._bucket.collections().create_collection(spec)

    async def drop_scope(self, scope: str) -> None:
        with translate_errors(f"{self.name}.{scope}"):
            await self._bucket.collections().drop_scope(scope)

    async def collection(self, scope: str, collection: str) -> CollectionHandle:
        target = f"{self.name}.{scope}.{collection}"
        # Handles are built locally; existence is checked against the manifest
        with translate_errors(target):
            scopes = await self._bucket.collections().get_all_scopes()
        known = {
            coll.name
            for spec in scopes
            if spec.name == scope
            for coll in spec.collections
        }
        if collection not in known:
            raise NotReadyError(f"collection {target} not yet available", target)
        return CouchbaseCollection(self._bucket.scope(scope), collection, self.name)


class CouchbaseCluster(ClusterHandle):
    """Cluster handle over an acouchbase cluster."""

    def __init__(self, cluster: Any):
        self._cluster = cluster

    async def bucket(self, name: str) -> BucketHandle:
        with translate_errors(name):
            bucket = self._cluster.bucket(name)
            await bucket.on_connect()
        return CouchbaseBucket(bucket)

    async def create_bucket(self, name: str, ram_quota_mb: int = 200) -> None:
        settings = CreateBucketSettings(
            name=name,
            ram_quota_mb=ram_quota_mb,
            bucket_type=BucketType.COUCHBASE,
        )
        with translate_errors(name):
            await self._cluster.buckets().create_bucket(settings)

    async def create_primary_index(self, bucket: str, scope: str, collection: str) -> None:
        options = CreatePrimaryQueryIndexOptions(
            scope_name=scope,
            collection_name=collection,
            ignore_if_exists=False,
        )
        with translate_errors(f"{bucket}.{scope}.{collection}"):
            await self._cluster.query_indexes().create_primary_index(bucket, options)

    async def primary_index_state(self, bucket: str, scope: str, collection: str) -> Optional[str]:
        options = GetAllQueryIndexOptions(scope_name=scope, collection_name=collection)
        with translate_errors(f"{bucket}.{scope}.{collection}"):
            indexes = await self._cluster.query_indexes().get_all_indexes(bucket, options)
        for index in indexes:
            if index.is_primary:
                return index.state
        return None

    async def close(self) -> None:
        await self._cluster.close()


async def connect_couchbase(url: str, username: str = "", password: str = "") -> ClusterHandle:
    """Connect to a Couchbase cluster with password authentication."""
    logger.info(f"Connecting to Couchbase cluster {url}")
    options = ClusterOptions(PasswordAuthenticator(username, password))
    try:
        cluster = await Cluster.connect(url, options)
    except CouchbaseException as e:
        raise ConnectionFailedError(f"Cannot connect to {url}: {e}", url) from e
    return CouchbaseCluster(cluster)


register_driver("couchbase", connect_couchbase)
register_driver("couchbases", connect_couchbase)
