"""
Provisioning helpers for the Zotero store.

Creates the scope, collections and primary indexes of a library. Every step
is idempotent ("already exists" counts as success) and every asynchronous
side effect on the server is confirmed by polling:
- ensure_scope
- ensure_collection (waits until the collection is usable)
- ensure_primary_index (waits until the index is online)
"""

import logging
from typing import Optional

from ..driver import INDEX_ONLINE, BucketHandle, ClusterHandle, CollectionHandle
from ..errors import AlreadyExistsError, ConnectionFailedError, DriverError
from ..util import poll_until

logger = logging.getLogger(__name__)


async def ensure_scope(bucket: BucketHandle, scope: str) -> None:
    """Create a scope unless it already exists."""
    try:
        await bucket.create_scope(scope)
        logger.info(f"Created scope {bucket.name}.{scope}")
    except AlreadyExistsError:
        logger.debug(f"Scope {bucket.name}.{scope} already exists")


async def ensure_collection(
    bucket: BucketHandle,
    scope: str,
    collection: str,
    timeout: float,
    interval: float,
) -> CollectionHandle:
    """
    Create a collection (and its scope) unless it exists, then wait until it is usable.

    Args:
        bucket: Bucket handle
        scope: Scope name
        collection: Collection name
        timeout: Milliseconds to wait for the collection
        interval: Milliseconds between two probes

    Returns:
        A usable collection handle

    Raises:
        ProvisioningTimeoutError: If the collection is not usable in time
    """
    target = f"{bucket.name}.{scope}.{collection}"
    await ensure_scope(bucket, scope)
    try:
        await bucket.create_collection(scope, collection)
        logger.info(f"Created collection {target}")
    except AlreadyExistsError:
        logger.debug(f"Collection {target} already exists")

    async def probe() -> Optional[CollectionHandle]:
        try:
            return await bucket.collection(scope, collection)
        except ConnectionFailedError:
            raise
        except DriverError as e:
            logger.debug(f"Waiting for collection {target}: {e.message}")
            return None

    return await poll_until(probe, target, timeout, interval, what="creating collection")


async def ensure_primary_index(
    cluster: ClusterHandle,
    bucket_name: str,
    scope: str,
    collection: str,
    timeout: float,
    interval: float,
) -> None:
    """
    Create the primary index of a collection unless it exists, then wait until it is online.

    An index created by another process may still be building, so the state
    is polled in both cases.

    Raises:
        ProvisioningTimeoutError: If the index is not online in time
    """
    target = f"{bucket_name}.{scope}.{collection}"
    try:
        await cluster.create_primary_index(bucket_name, scope, collection)
        logger.info(f"Created primary index on {target}")
    except AlreadyExistsError:
        logger.debug(f"Primary index on {target} already exists")

    async def probe() -> Optional[bool]:
        state = await cluster.primary_index_state(bucket_name, scope, collection)
        if state == INDEX_ONLINE:
            return True
        logger.debug(f"Primary index on {target} is {state or 'unknown'}")
        return None

    await poll_until(probe, target, timeout, interval, what="creating primary index on")
