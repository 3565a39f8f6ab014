"""
Abstract Storage Interface

The local store is a durable key-value store of JSON documents. The
core keeps exactly two documents in it, the ledger snapshot and the
mutation queue, each written whole and restorable independently.

Writes are synchronous and all-or-nothing: when save() returns the
document is durable, when it raises nothing was changed.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for durable document storage.

    Any storage implementation (JSON files, SQLite, browser storage
    bridge, etc.) must implement these methods.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """
        Load a document.

        Args:
            key: Document key

        Returns:
            The decoded JSON document, or None if the key was never written

        Raises:
            CorruptDocumentError: If the stored document cannot be decoded
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, key: str, document: Any) -> None:
        """
        Atomically replace a document.

        Args:
            key: Document key
            document: JSON-serializable document

        Raises:
            StorageError: If the write could not be made durable
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete a document.

        Returns:
            True if a document was deleted
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List the keys currently stored."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptDocumentError(StorageError):
    """A stored document exists but cannot be decoded."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(message)
