"""Configuration module for zotero_store."""

from .config import (
    DEFAULT_BUCKET_NAME,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_LIBRARY_NAME,
    ConnectionSettings,
    StoreOptions,
    load_settings,
)

__all__ = [
    "DEFAULT_BUCKET_NAME",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_TIMEOUT",
    "DEFAULT_USER_LIBRARY_NAME",
    "ConnectionSettings",
    "StoreOptions",
    "load_settings",
]
