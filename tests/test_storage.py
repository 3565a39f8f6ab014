"""Tests for the local key-value stores."""

import json

import pytest

from tripledger.services.storage import (
    CorruptDocumentError,
    InMemoryStore,
    JsonFileStore,
    StorageError,
)


class TestJsonFileStore:

    def test_save_and_load(self, tmp_path):
        store = JsonFileStore(tmp_path / "data")
        store.save("tripData", {"transactions": [{"desc": "Chai", "amount": 20}], "city": "Jaipur"})

        assert store.load("tripData") == {"transactions": [{"desc": "Chai", "amount": 20}], "city": "Jaipur"}
        assert (tmp_path / "data" / "tripData.json").exists()

    def test_missing_key_loads_none(self, tmp_path):
        assert JsonFileStore(tmp_path).load("syncQueue") is None

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.save("syncQueue", [1])
        store.save("syncQueue", [1, 2])

        assert store.load("syncQueue") == [1, 2]
        assert [p.name for p in tmp_path.iterdir()] == ["syncQueue.json"]

    def test_documents_are_independent(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.save("tripData", {"a": 1})
        store.save("syncQueue", [])

        (tmp_path / "tripData.json").write_text("{broken", encoding="utf-8")

        with pytest.raises(CorruptDocumentError) as exc_info:
            store.load("tripData")
        assert exc_info.value.key == "tripData"
        assert store.load("syncQueue") == []

    def test_non_ascii_preserved(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.save("tripData", {"label": "Get ₹200"})

        raw = (tmp_path / "tripData.json").read_text(encoding="utf-8")
        assert "₹" in raw
        assert json.loads(raw) == {"label": "Get ₹200"}

    def test_invalid_key(self, tmp_path):
        with pytest.raises(StorageError):
            JsonFileStore(tmp_path).save("../escape", {})

    def test_unserializable_document(self, tmp_path):
        with pytest.raises(StorageError):
            JsonFileStore(tmp_path).save("tripData", {"when": object()})

    def test_delete_and_keys(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.save("tripData", {})
        store.save("syncQueue", [])

        assert store.keys() == ["syncQueue", "tripData"]
        assert store.delete("tripData") is True
        assert store.delete("tripData") is False
        assert store.keys() == ["syncQueue"]


class TestInMemoryStore:

    def test_documents_copied_through_json(self):
        store = InMemoryStore()
        document = {"items": [1, 2]}
        store.save("tripData", document)
        document["items"].append(3)

        assert store.load("tripData") == {"items": [1, 2]}

    def test_initial_documents_do_not_count_as_saves(self):
        store = InMemoryStore({"tripData": {}})
        assert store.save_count == 0
        assert store.keys() == ["tripData"]

    def test_corrupt_raw_document(self):
        store = InMemoryStore()
        store.put_raw("tripData", "not json")

        with pytest.raises(CorruptDocumentError):
            store.load("tripData")
