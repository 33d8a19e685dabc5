"""Utility module for zotero_store."""

from .util import (
    poll_until,
    format_duration,
)

__all__ = [
    "poll_until",
    "format_duration",
]
