"""
Tests for store/json_store.py

Timestamp identifiers, atomic file writes, localStorage-style documents with
mixed field naming, and import of exported dumps.
"""
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from store.base import RecordNotFoundError, StoreError
from store.json_store import JsonRecordStore


class TestIdentifiers:
    def test_ids_are_millisecond_timestamps(self, json_store):
        record = json_store.create("farms", {"name": "A"})
        assert record["id"] >= 1_700_000_000_000

    def test_ids_strictly_increasing_with_frozen_clock(self, tmp_path):
        store = JsonRecordStore(tmp_path / "s.json", clock=lambda: 1_700_000_000.0)
        ids = [store.create("tasks", {"title": str(i)})["id"] for i in range(3)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    def test_ids_above_existing_records(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text(json.dumps({"farms": [{"id": 9_999_999_999_999, "name": "Future"}]}))
        store = JsonRecordStore(path, clock=lambda: 1.0)
        assert store.create("farms", {"name": "B"})["id"] == 10_000_000_000_000


class TestFile:
    def test_missing_file_is_empty(self, json_store):
        assert json_store.list("crops") == []
        assert json_store.count("farms") == 0
        assert not json_store.path.exists()

    def test_document_layout(self, json_store):
        json_store.create("farms", {"name": "A", "crop_types": ["Corn"]})
        data = json.loads(json_store.path.read_text())
        assert set(data) == {"farms", "crops", "tasks", "expenses"}
        assert data["farms"][0]["crop_types"] == ["Corn"]

    def test_no_temp_files_left(self, json_store):
        json_store.create("farms", {"name": "A"})
        json_store.create("farms", {"name": "B"})
        leftovers = [p for p in json_store.path.parent.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []

    def test_reads_camel_case_documents(self, tmp_path):
        path = tmp_path / "local.json"
        path.write_text(json.dumps({
            "farms": [{"Id": 1, "Name": "Green Valley", "Location": "North"}],
            "tasks": [{"id": "5", "title": "Water", "farmId": 1, "dueDate": "2023-07-11",
                       "completed": "false"}],
        }))
        store = JsonRecordStore(path)
        assert store.get("farms", 1)["name"] == "Green Valley"
        task = store.get("tasks", 5)
        assert task["farm_id"] == 1
        assert task["due_date"] == "2023-07-11"
        assert task["completed"] is False
        assert store.list("crops") == []

    def test_corrupt_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(StoreError, match="Cannot read"):
            JsonRecordStore(path).list("farms")

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"farms": {"id": 1}}))
        with pytest.raises(StoreError, match="not a list"):
            JsonRecordStore(path).list("farms")

    def test_top_level_not_object(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[]")
        with pytest.raises(StoreError):
            JsonRecordStore(path).count("farms")

    def test_describe(self, json_store):
        json_store.create("expenses", {"amount": 5})
        info = json_store.describe()
        assert info["backend"] == "json"
        assert info["counts"]["expenses"] == 1


class TestCrud:
    def test_update_keeps_created_at(self, json_store):
        created = json_store.create("crops", {"name": "Corn", "status": "planted"})
        updated = json_store.update("crops", {**created, "status": "growing",
                                              "created_at": "changed"})
        assert updated["status"] == "growing"
        assert updated["created_at"] == created["created_at"]
        assert json_store.get("crops", created["id"])["status"] == "growing"

    def test_get_by_string_id(self, json_store):
        created = json_store.create("farms", {"name": "A"})
        assert json_store.get("farms", str(created["id"]))["name"] == "A"

    def test_missing_record(self, json_store):
        with pytest.raises(RecordNotFoundError):
            json_store.get("tasks", 1)
        with pytest.raises(RecordNotFoundError):
            json_store.update("tasks", {"id": 1})
        with pytest.raises(RecordNotFoundError):
            json_store.delete("tasks", 1)

    def test_delete(self, json_store):
        a = json_store.create("farms", {"name": "A"})
        b = json_store.create("farms", {"name": "B"})
        json_store.delete("farms", a["id"])
        assert [f["id"] for f in json_store.list("farms")] == [b["id"]]


class TestImport:
    def test_import_keeps_ids_and_replaces_duplicates(self, json_store):
        existing = json_store.create("farms", {"name": "Old"})
        counts = json_store.import_blobs({
            "farms": [
                {"Id": existing["id"], "Name": "Renamed"},
                {"id": 42, "name": "Imported"},
                {"name": "No id"},
                "garbage",
            ],
            "expenses": [{"Name": "Seed", "amount": "250", "farmId": 42}],
        })
        assert counts == {"farms": 3, "crops": 0, "tasks": 0, "expenses": 1}
        names = [f["name"] for f in json_store.list("farms")]
        assert names == ["Renamed", "Imported", "No id"]
        expense = json_store.list("expenses")[0]
        assert expense["description"] == "Seed"
        assert expense["amount"] == 250.0
        assert expense["created_at"]

    def test_import_replace(self, json_store):
        json_store.create("farms", {"name": "Old"})
        json_store.import_blobs({"farms": [{"id": 1, "name": "New"}]}, replace=True)
        assert [f["name"] for f in json_store.list("farms")] == ["New"]
