"""
Storage Services Package

Provides the abstract key-value interface and concrete implementations
for local durable state. JSON files are the default backend.
"""

from tripledger.services.storage.interface import (
    CorruptDocumentError,
    KeyValueStoreInterface,
    StorageError,
)
from tripledger.services.storage.json_file import JsonFileStore
from tripledger.services.storage.memory import InMemoryStore

__all__ = [
    # Interfaces
    "KeyValueStoreInterface",
    # Exceptions
    "CorruptDocumentError",
    "StorageError",
    # Implementations
    "InMemoryStore",
    "JsonFileStore",
]
