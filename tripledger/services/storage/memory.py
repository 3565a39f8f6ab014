"""
In-Memory Storage Implementation

Keeps documents as JSON strings so that whatever is saved has to
survive a serialize/deserialize cycle, the same as on disk. Used in
tests and for throwaway sessions.
"""

import json
from typing import Any, Optional

from tripledger.services.storage.interface import (
    CorruptDocumentError,
    KeyValueStoreInterface,
    StorageError,
)


class InMemoryStore(KeyValueStoreInterface):
    """Volatile key-value store."""

    def __init__(self, documents: Optional[dict[str, Any]] = None):
        self._documents: dict[str, str] = {}
        self.save_count = 0
        for key, document in (documents or {}).items():
            self.save(key, document)
        self.save_count = 0

    def load(self, key: str) -> Optional[Any]:
        raw = self._documents.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDocumentError(key, f"Document {key} is not valid JSON: {e}")

    def save(self, key: str, document: Any) -> None:
        try:
            self._documents[key] = json.dumps(document)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Document {key} is not JSON-serializable: {e}")
        self.save_count += 1

    def put_raw(self, key: str, raw: str) -> None:
        """Store raw text as-is (for simulating damaged documents)."""
        self._documents[key] = raw

    def delete(self, key: str) -> bool:
        return self._documents.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._documents)
