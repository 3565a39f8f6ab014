"""Services package."""

from tripledger.services.remote import (
    AppsScriptClient,
    RemoteAuthorityInterface,
    RemoteError,
    RemoteUnavailableError,
    SnapshotRejectedError,
)
from tripledger.services.storage import (
    CorruptDocumentError,
    InMemoryStore,
    JsonFileStore,
    KeyValueStoreInterface,
    StorageError,
)

__all__ = [
    # Remote authority
    "AppsScriptClient",
    "RemoteAuthorityInterface",
    "RemoteError",
    "RemoteUnavailableError",
    "SnapshotRejectedError",
    # Storage services
    "CorruptDocumentError",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStoreInterface",
    "StorageError",
]
