"""
Tests for store/sqlite_store.py

CRUD against a real SQLite file, identifier and creation-time handling,
filter pushdown, and translation of SQLite failures into StoreError.
"""
import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pipeline.specs import FilterSpec
from store.base import RecordNotFoundError, StoreError
from store.sqlite_store import SqliteRecordStore
from utils.database import open_connection


class TestSchema:
    def test_tables_created(self, sqlite_store):
        conn = sqlite3.connect(str(sqlite_store.db_path))
        names = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        conn.close()
        assert {"farms", "crops", "tasks", "expenses"} <= names

    def test_reopen_keeps_data(self, sqlite_store):
        sqlite_store.create("farms", {"name": "Green", "location": "N", "size": "5"})
        reopened = SqliteRecordStore(sqlite_store.db_path)
        assert reopened.count("farms") == 1

    def test_describe(self, seeded_sqlite):
        info = seeded_sqlite.describe()
        assert info["backend"] == "sqlite"
        assert info["path"].endswith("cropkeeper.sqlite")
        assert info["counts"] == {"farms": 2, "crops": 4, "tasks": 3, "expenses": 3}


class TestCrud:
    def test_create_assigns_sequential_ids(self, sqlite_store):
        a = sqlite_store.create("farms", {"name": "A", "location": "L", "size": "1"})
        b = sqlite_store.create("farms", {"name": "B", "location": "L", "size": "1"})
        assert (a["id"], b["id"]) == (1, 2)
        assert a["created_at"]

    def test_create_ignores_given_id(self, sqlite_store):
        record = sqlite_store.create("farms", {"id": 77, "name": "A", "created_at": "x"})
        assert record["id"] == 1
        assert record["created_at"] != "x"

    def test_crop_types_round_trip(self, sqlite_store):
        farm = sqlite_store.create("farms", {"name": "A", "crop_types": ["Corn", "Wheat"]})
        assert sqlite_store.get("farms", farm["id"])["crop_types"] == ["Corn", "Wheat"]

    def test_completed_stored_as_bool(self, sqlite_store):
        task = sqlite_store.create("tasks", {"title": "T", "farm_id": 1, "completed": True})
        assert sqlite_store.get("tasks", task["id"])["completed"] is True

    def test_get_by_string_id(self, seeded_sqlite):
        assert seeded_sqlite.get("farms", "1")["name"] == "Green Valley Farm"

    def test_get_missing(self, sqlite_store):
        with pytest.raises(RecordNotFoundError, match="Farm 5 not found"):
            sqlite_store.get("farms", 5)

    def test_update_keeps_id_and_created_at(self, seeded_sqlite):
        before = seeded_sqlite.get("crops", 1)
        updated = seeded_sqlite.update("crops", {**before, "status": "harvested",
                                                 "created_at": "1999-01-01"})
        assert updated["status"] == "harvested"
        assert updated["id"] == before["id"]
        assert updated["created_at"] == before["created_at"]

    def test_update_missing(self, sqlite_store):
        with pytest.raises(RecordNotFoundError):
            sqlite_store.update("crops", {"id": 42, "name": "X"})

    def test_delete(self, seeded_sqlite):
        seeded_sqlite.delete("expenses", 1)
        assert seeded_sqlite.count("expenses") == 2
        with pytest.raises(RecordNotFoundError):
            seeded_sqlite.delete("expenses", 1)

    def test_list_in_id_order(self, seeded_sqlite):
        assert [c["id"] for c in seeded_sqlite.list("crops")] == [1, 2, 3, 4]

    def test_unknown_kind(self, sqlite_store):
        with pytest.raises(ValueError):
            sqlite_store.list("barns")


class TestPushdown:
    def test_farm_filter(self, seeded_sqlite):
        crops = seeded_sqlite.list("crops", FilterSpec(farm_id=2))
        assert [c["name"] for c in crops] == ["Wheat", "Soybeans"]

    def test_search_case_insensitive(self, seeded_sqlite):
        crops = seeded_sqlite.list("crops", FilterSpec(search="CORN"))
        assert [c["name"] for c in crops] == ["Corn"]

    def test_wildcards_literal(self, seeded_sqlite):
        assert seeded_sqlite.list("expenses", FilterSpec(search="%")) == []

    def test_completed_filter(self, seeded_sqlite):
        tasks = seeded_sqlite.list("tasks", FilterSpec(equals={"completed": True}))
        assert [t["title"] for t in tasks] == ["Repair fence"]

    def test_date_range(self, seeded_sqlite):
        expenses = seeded_sqlite.list("expenses", FilterSpec(date_from="2023-05-16"))
        assert [e["category"] for e in expenses] == ["Fertilizer", "Equipment"]

    def test_non_exact_fields_not_pushed(self, seeded_sqlite):
        where, params = seeded_sqlite.pushdown_clause(
            "farms", FilterSpec(farm_id=1, equals={"status": "growing"})
        )
        assert where == ""
        assert params == []

    def test_no_query(self, seeded_sqlite):
        assert seeded_sqlite.pushdown_clause("crops", None) == ("", [])


class TestPythonLower:
    def test_registered_on_connection(self, tmp_path):
        conn = open_connection(tmp_path / "fold.sqlite")
        try:
            row = conn.execute("SELECT py_lower(?), py_lower(?), py_lower(NULL), py_lower(24)",
                               ("\u212aALE", "CAFÉ")).fetchone()
        finally:
            conn.close()
        assert tuple(row) == ("kale", "café", None, "24")

    def test_search_matches_kelvin_sign(self, sqlite_store):
        sqlite_store.create("farms", {"name": "\u212aingsley", "location": "N", "size": "5"})
        found = sqlite_store.list("farms", FilterSpec(search="king"))
        assert [f["name"] for f in found] == ["\u212aingsley"]


class TestFailures:
    def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "broken.sqlite"
        path.write_bytes(b"this is not a database" * 100)
        with pytest.raises(StoreError):
            SqliteRecordStore(path)

    def test_missing_table_raises_store_error(self, sqlite_store):
        conn = sqlite3.connect(str(sqlite_store.db_path))
        conn.execute("DROP TABLE expenses")
        conn.commit()
        conn.close()
        with pytest.raises(StoreError):
            sqlite_store.list("expenses")
