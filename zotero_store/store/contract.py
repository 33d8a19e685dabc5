"""
Plugin contract between a Zotero synchronization engine and its store.

The engine calls Store.get for each library it synchronizes, compares the
returned name and version with the remote library, applies the changes with
the Library mutation methods and finally calls Library.save. Libraries that
are no longer available remotely are discarded with Store.remove.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class BaseLibrary(ABC):
    """A local mirror of one remote library."""

    name: str
    version: int

    @abstractmethod
    async def add(self, item: Dict[str, Any]) -> None:
        """Store an item, replacing the stored item with the same key."""

    @abstractmethod
    async def remove(self, keys: List[str]) -> None:
        """Delete items by key. Missing keys are ignored."""

    @abstractmethod
    async def add_collection(self, collection: Dict[str, Any]) -> None:
        """Store a collection, replacing the stored collection with the same key."""

    @abstractmethod
    async def remove_collections(self, keys: List[str]) -> None:
        """Delete collections by key. Missing keys are ignored."""

    @abstractmethod
    async def save(self, name: str, version: int) -> None:
        """Record the name and synchronized version of the library."""


class BaseStore(ABC):
    """The set of libraries known to a store."""

    libraries: List[str]

    @abstractmethod
    async def get(self, user_or_group_prefix: str) -> BaseLibrary:
        """Return the library, creating it if it does not exist."""

    @abstractmethod
    async def remove(self, user_or_group_prefix: str) -> None:
        """Discard a library and everything stored in it."""
