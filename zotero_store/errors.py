"""
Error types for zotero_store.

Errors are classified by type, not by message text:
- Idempotency-masked errors (AlreadyExistsError, DocumentNotFoundError)
- Provisioning timeouts (ProvisioningTimeoutError)
- Connection failures (ConnectionFailedError)
- Everything else raised by a driver (DriverError)
"""

from typing import Optional


class StoreError(Exception):
    """Base class for all store errors."""

    def __init__(self, message: str, target: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.target = target


class ConfigurationError(StoreError):
    """Raised when the store or a driver is misconfigured."""


class DriverError(StoreError):
    """Raised when the underlying database reports a failure."""


class AlreadyExistsError(DriverError):
    """Raised when creating a bucket, scope, collection or index that already exists."""


class NotFoundError(DriverError):
    """Raised when a bucket, scope or collection does not exist."""


class DocumentNotFoundError(NotFoundError):
    """Raised when a document key does not exist in a collection."""


class NotReadyError(DriverError):
    """Raised when a freshly created object is not yet usable."""


class ConnectionFailedError(DriverError):
    """Raised when the cluster cannot be reached or refuses the credentials."""


class ProvisioningTimeoutError(StoreError):
    """Raised when a collection or index does not become usable in time."""

    def __init__(self, message: str, target: str, timeout: float, elapsed: float):
        super().__init__(message, target)
        self.timeout = timeout
        self.elapsed = elapsed


class LibraryNotReadyError(StoreError):
    """Raised when a library is used before its initialization completed."""
