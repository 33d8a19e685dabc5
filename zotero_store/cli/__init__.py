"""CLI module for zotero_store."""

from .main import apply_feed, main

__all__ = ["apply_feed", "main"]
