"""
zotero_store - Zotero library storage for document databases

Persists libraries, collections and items synchronized from the Zotero API
into Couchbase scopes and collections.
"""

__version__ = "0.1.0"

from .config import ConnectionSettings, StoreOptions, load_settings
from .errors import (
    AlreadyExistsError,
    ConfigurationError,
    ConnectionFailedError,
    DocumentNotFoundError,
    DriverError,
    LibraryNotReadyError,
    NotFoundError,
    NotReadyError,
    ProvisioningTimeoutError,
    StoreError,
)
from .store import BaseLibrary, BaseStore, Library, LibraryState, Store, default_scope_name

__all__ = [
    # Core
    "Store",
    "Library",
    "LibraryState",
    "BaseStore",
    "BaseLibrary",
    "default_scope_name",
    # Configuration
    "StoreOptions",
    "ConnectionSettings",
    "load_settings",
    # Errors
    "StoreError",
    "ConfigurationError",
    "DriverError",
    "AlreadyExistsError",
    "NotFoundError",
    "DocumentNotFoundError",
    "NotReadyError",
    "ConnectionFailedError",
    "ProvisioningTimeoutError",
    "LibraryNotReadyError",
]
