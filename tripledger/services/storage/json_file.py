"""
JSON File Storage Implementation

Each document is stored as <data_dir>/<key>.json. Writes go to a
temporary file in the same directory which is fsynced and then moved
over the old file with os.replace, so a crash mid-write leaves either
the previous document or the new one, never a torn file.

Transient OSErrors (e.g. a locked file on Windows, a briefly full disk)
are retried a few times before being surfaced as StorageError.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tripledger.config import get_settings
from tripledger.services.storage.interface import (
    CorruptDocumentError,
    KeyValueStoreInterface,
    StorageError,
)


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore(KeyValueStoreInterface):
    """Durable key-value store backed by one JSON file per key."""

    def __init__(self, data_dir: Optional[Path] = None):
        self._data_dir = Path(data_dir) if data_dir else get_settings().store.data_dir

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid document key: {key!r}")
        return self._data_dir / f"{key}.json"

    def load(self, key: str) -> Optional[Any]:
        path = self._path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDocumentError(key, f"Document {key} is not valid JSON: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_atomic(self, path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.stem}.",
            suffix=".tmp",
            dir=path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def save(self, key: str, document: Any) -> None:
        path = self._path_for(key)
        try:
            payload = json.dumps(document, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Document {key} is not JSON-serializable: {e}")

        try:
            self._write_atomic(path, payload)
        except OSError as e:
            raise StorageError(f"Failed to save {key}: {e}")

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}")

    def keys(self) -> list[str]:
        if not self._data_dir.is_dir():
            return []
        return sorted(p.stem for p in self._data_dir.glob("*.json"))
