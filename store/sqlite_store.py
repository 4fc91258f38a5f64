"""
SQLite record store.

One table per entity kind with integer auto-increment identifiers. ``list``
pushes the farm, exact-match, date-range and search conditions of a
``FilterSpec`` into the WHERE clause; the pipeline re-applies them in memory,
so the pushed-down result only has to be a superset.

A connection is opened per operation and closed afterwards.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pipeline.schema import ENTITY_KINDS, get_schema
from pipeline.specs import FilterSpec
from store.base import RecordNotFoundError, RecordStore, StoreError, check_kind
from store.mapping import FIELDS, coerce_id, normalize_record, to_storage
from utils.database import get_table_count, open_connection
from utils.query import build_order_clause, build_where_clause

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS farms (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT,
    location    TEXT,
    size        TEXT,
    crop_types  TEXT,
    created_at  TEXT
);
CREATE TABLE IF NOT EXISTS crops (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    name          TEXT,
    variety       TEXT,
    farm_id       INTEGER,
    location      TEXT,
    planting_date TEXT,
    harvest_date  TEXT,
    status        TEXT,
    created_at    TEXT
);
CREATE TABLE IF NOT EXISTS tasks (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    title       TEXT,
    description TEXT,
    farm_id     INTEGER,
    due_date    TEXT,
    priority    TEXT,
    completed   INTEGER,
    created_at  TEXT
);
CREATE TABLE IF NOT EXISTS expenses (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    date        TEXT,
    amount      REAL,
    category    TEXT,
    description TEXT,
    farm_id     INTEGER,
    created_at  TEXT
);
CREATE INDEX IF NOT EXISTS idx_crops_farm ON crops(farm_id);
CREATE INDEX IF NOT EXISTS idx_tasks_farm ON tasks(farm_id);
CREATE INDEX IF NOT EXISTS idx_expenses_farm ON expenses(farm_id);
"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def _to_row(kind: str, record: dict[str, Any]) -> dict[str, Any]:
    row = {k: v for k, v in record.items() if k != "id"}
    if "crop_types" in row:
        row["crop_types"] = json.dumps(row["crop_types"] or [])
    if isinstance(row.get("completed"), bool):
        row["completed"] = int(row["completed"])
    return row


def _from_row(kind: str, row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    if kind == "farms":
        raw = data.get("crop_types")
        try:
            data["crop_types"] = json.loads(raw) if raw else []
        except (TypeError, ValueError):
            # Rows written by hand may hold a plain comma-separated list
            data["crop_types"] = raw
    return normalize_record(kind, data)


class SqliteRecordStore(RecordStore):
    """Record store backed by a SQLite database file."""

    backend = "sqlite"

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._ensure_schema()

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield a connection; commit on success, translate SQLite errors."""
        try:
            conn = open_connection(self.db_path)
        except sqlite3.Error as exc:
            logger.error("sqlite store open failed path=%s error=%s", self.db_path, exc)
            raise StoreError(f"Cannot open database '{self.db_path}': {exc}") from exc
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.exception("sqlite store operation failed path=%s", self.db_path)
            raise StoreError(f"Database operation failed: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot create database directory: {exc}") from exc
        with self._connect() as conn:
            conn.executescript(_SCHEMA_SQL)

    def _select(self, conn: sqlite3.Connection, kind: str,
                where: str = "", params: list[Any] | None = None) -> list[dict[str, Any]]:
        order = build_order_clause("id", "asc", {"id"})
        rows = conn.execute(
            f"SELECT {', '.join(FIELDS[kind])} FROM {kind} {where} {order}",
            params or [],
        ).fetchall()
        return [_from_row(kind, r) for r in rows]

    def _fetch_one(self, conn: sqlite3.Connection, kind: str, record_id: Any) -> dict[str, Any]:
        rows = self._select(conn, kind, "WHERE CAST(id AS TEXT) = ?", [str(record_id)])
        if not rows:
            raise RecordNotFoundError(kind, record_id)
        return rows[0]

    def pushdown_clause(self, kind: str, query: FilterSpec | None) -> tuple[str, list[Any]]:
        """WHERE clause and parameters ``list`` would use for *query*."""
        if query is None:
            return "", []
        schema = get_schema(kind)
        equals = {k: v for k, v in query.active_equals.items() if k in schema.exact_fields}
        return build_where_clause(
            farm_id=query.farm_id if schema.owned_by_farm else None,
            equals=equals,
            date_column=schema.date_field,
            date_from=query.date_from,
            date_to=query.date_to,
            search=query.search_term,
            search_columns=schema.search_fields,
            allowed_columns=set(FIELDS[kind]),
        )

    # ── RecordStore interface ────────────────────────────────────────────────

    def list(self, kind: str, query: FilterSpec | None = None) -> list[dict[str, Any]]:
        check_kind(kind)
        where, params = self.pushdown_clause(kind, query)
        with self._connect() as conn:
            return self._select(conn, kind, where, params)

    def get(self, kind: str, record_id: Any) -> dict[str, Any]:
        check_kind(kind)
        with self._connect() as conn:
            return self._fetch_one(conn, kind, record_id)

    def create(self, kind: str, record: dict[str, Any]) -> dict[str, Any]:
        check_kind(kind)
        row = _to_row(kind, to_storage(kind, record))
        row["created_at"] = _now_iso()
        columns = list(row)
        with self._connect() as conn:
            cur = conn.execute(
                f"INSERT INTO {kind} ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' * len(columns))})",
                [row[c] for c in columns],
            )
            created = self._fetch_one(conn, kind, cur.lastrowid)
        logger.debug("sqlite store create kind=%s id=%s", kind, created["id"])
        return created

    def update(self, kind: str, record: dict[str, Any]) -> dict[str, Any]:
        check_kind(kind)
        record_id = coerce_id(record.get("id"))
        row = _to_row(kind, to_storage(kind, record))
        row.pop("created_at", None)
        columns = list(row)
        with self._connect() as conn:
            self._fetch_one(conn, kind, record_id)
            conn.execute(
                f"UPDATE {kind} SET {', '.join(f'{c} = ?' for c in columns)} "
                f"WHERE CAST(id AS TEXT) = ?",
                [row[c] for c in columns] + [str(record_id)],
            )
            updated = self._fetch_one(conn, kind, record_id)
        logger.debug("sqlite store update kind=%s id=%s", kind, record_id)
        return updated

    def delete(self, kind: str, record_id: Any) -> None:
        check_kind(kind)
        with self._connect() as conn:
            cur = conn.execute(
                f"DELETE FROM {kind} WHERE CAST(id AS TEXT) = ?", (str(record_id),)
            )
            if cur.rowcount == 0:
                raise RecordNotFoundError(kind, record_id)
        logger.debug("sqlite store delete kind=%s id=%s", kind, record_id)

    def count(self, kind: str) -> int:
        check_kind(kind)
        with self._connect() as conn:
            return get_table_count(conn, kind)

    def describe(self) -> dict[str, Any]:
        with self._connect() as conn:
            counts = {kind: get_table_count(conn, kind) for kind in ENTITY_KINDS}
        return {"backend": self.backend, "path": str(self.db_path), "counts": counts}
