"""
Store module for zotero_store.

Provides the storage adapter consumed by a synchronization engine:
- Store: library registry and entry point
- Library: provisioning, metadata and item/collection mutations
- ConnectionManager: lazily created, cached cluster connection
- Provisioning helpers for scopes, collections and primary indexes
"""

from .connection import ConnectionManager
from .contract import BaseLibrary, BaseStore
from .library import COLLECTIONS, ITEMS, META, Library, LibraryState
from .provisioning import ensure_collection, ensure_primary_index, ensure_scope
from .store import Store, default_scope_name


__all__ = [
    # Store
    "Store",
    "default_scope_name",
    # Library
    "Library",
    "LibraryState",
    "ITEMS",
    "COLLECTIONS",
    "META",
    # Contract
    "BaseStore",
    "BaseLibrary",
    # Connection
    "ConnectionManager",
    # Provisioning
    "ensure_scope",
    "ensure_collection",
    "ensure_primary_index",
]
