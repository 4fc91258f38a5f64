"""
Local JSON-file record store.

One JSON document holds one list per entity kind under the keys ``farms``,
``crops``, ``tasks`` and ``expenses`` (the same keys the browser build keeps
in localStorage, so an exported localStorage dump can be imported as-is).

Identifiers are wall-clock millisecond timestamps, bumped when needed so that
they are strictly increasing. Every write replaces the file atomically via a
temporary file in the same directory.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping

from pipeline.schema import ENTITY_KINDS
from pipeline.specs import FilterSpec
from store.base import (
    RecordNotFoundError,
    RecordStore,
    StoreError,
    check_kind,
    same_id,
)
from store.mapping import normalize_record, to_storage

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class JsonRecordStore(RecordStore):
    """Record store backed by a single JSON file.

    Filtering happens entirely in the list pipeline; ``list`` ignores the
    query and returns every record of the kind.
    """

    backend = "json"

    def __init__(self, path: Path | str,
                 clock: Callable[[], float] = time.time) -> None:
        self.path = Path(path)
        self._clock = clock
        self._lock = threading.RLock()
        self._last_id = 0

    # ── File access ──────────────────────────────────────────────────────────

    def _read(self) -> dict[str, list[dict[str, Any]]]:
        if not self.path.exists():
            return {kind: [] for kind in ENTITY_KINDS}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("json store read failed path=%s error=%s", self.path, exc)
            raise StoreError(f"Cannot read record store '{self.path}': {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"Record store '{self.path}' is not a JSON object")
        blobs: dict[str, list[dict[str, Any]]] = {}
        for kind in ENTITY_KINDS:
            items = data.get(kind) or []
            if not isinstance(items, list):
                raise StoreError(f"Record store key '{kind}' is not a list")
            blobs[kind] = [normalize_record(kind, r) for r in items
                           if isinstance(r, Mapping)]
        return blobs

    def _write(self, blobs: dict[str, list[dict[str, Any]]]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(blobs, f, indent=2, default=str)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            logger.error("json store write failed path=%s error=%s", self.path, exc)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Cannot write record store '{self.path}': {exc}") from exc

    def _next_id(self, existing: list[dict[str, Any]]) -> int:
        numeric = [r["id"] for r in existing if isinstance(r.get("id"), int)]
        candidate = max(
            int(self._clock() * 1000),
            self._last_id + 1,
            (max(numeric) + 1) if numeric else 0,
        )
        self._last_id = candidate
        return candidate

    @staticmethod
    def _index_of(records: list[dict[str, Any]], kind: str, record_id: Any) -> int:
        for i, r in enumerate(records):
            if same_id(r.get("id"), record_id):
                return i
        raise RecordNotFoundError(kind, record_id)

    # ── RecordStore interface ────────────────────────────────────────────────

    def list(self, kind: str, query: FilterSpec | None = None) -> list[dict[str, Any]]:
        check_kind(kind)
        with self._lock:
            return self._read()[kind]

    def get(self, kind: str, record_id: Any) -> dict[str, Any]:
        check_kind(kind)
        with self._lock:
            records = self._read()[kind]
            return records[self._index_of(records, kind, record_id)]

    def create(self, kind: str, record: dict[str, Any]) -> dict[str, Any]:
        check_kind(kind)
        with self._lock:
            blobs = self._read()
            new = to_storage(kind, record)
            new["id"] = self._next_id(blobs[kind])
            new["created_at"] = _now_iso()
            blobs[kind].append(new)
            self._write(blobs)
        logger.debug("json store create kind=%s id=%s", kind, new["id"])
        return new

    def update(self, kind: str, record: dict[str, Any]) -> dict[str, Any]:
        check_kind(kind)
        with self._lock:
            blobs = self._read()
            records = blobs[kind]
            i = self._index_of(records, kind, record.get("id"))
            current = records[i]
            updated = to_storage(kind, record)
            updated["id"] = current["id"]
            updated["created_at"] = current.get("created_at")
            records[i] = updated
            self._write(blobs)
        logger.debug("json store update kind=%s id=%s", kind, updated["id"])
        return updated

    def delete(self, kind: str, record_id: Any) -> None:
        check_kind(kind)
        with self._lock:
            blobs = self._read()
            records = blobs[kind]
            del records[self._index_of(records, kind, record_id)]
            self._write(blobs)
        logger.debug("json store delete kind=%s id=%s", kind, record_id)

    def count(self, kind: str) -> int:
        check_kind(kind)
        with self._lock:
            return len(self._read()[kind])

    def describe(self) -> dict[str, Any]:
        with self._lock:
            blobs = self._read()
        return {
            "backend": self.backend,
            "path": str(self.path),
            "counts": {kind: len(blobs[kind]) for kind in ENTITY_KINDS},
        }

    # ── Import ───────────────────────────────────────────────────────────────

    def import_blobs(self, data: Mapping[str, Any], replace: bool = False) -> dict[str, int]:
        """Merge a localStorage-style dump into the store.

        Records keep their identifiers; a record whose identifier already
        exists in the store replaces the stored one. Records without an
        identifier get a fresh one.

        Args:
            data: ``{"farms": [...], "crops": [...], ...}`` in any accepted
                field naming (camelCase included)
            replace: Drop all existing records first

        Returns:
            Number of records imported per kind
        """
        imported = {kind: 0 for kind in ENTITY_KINDS}
        with self._lock:
            blobs = {kind: [] for kind in ENTITY_KINDS} if replace else self._read()
            for kind in ENTITY_KINDS:
                for raw in data.get(kind) or []:
                    if not isinstance(raw, Mapping):
                        continue
                    record = to_storage(kind, raw)
                    record["created_at"] = record.get("created_at") or _now_iso()
                    records = blobs[kind]
                    if record.get("id") is None:
                        record["id"] = self._next_id(records)
                        records.append(record)
                    else:
                        try:
                            records[self._index_of(records, kind, record["id"])] = record
                        except RecordNotFoundError:
                            records.append(record)
                    imported[kind] += 1
            self._write(blobs)
        logger.info("json store import path=%s counts=%s", self.path, imported)
        return imported
