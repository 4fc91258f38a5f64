"""
Record store interface and errors.

A record store persists the four entity kinds and assigns their identifiers.
Backends are interchangeable: the entity services and the list pipeline only
ever see canonical snake_case records (see ``store.mapping``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pipeline.schema import ENTITY_KINDS
from pipeline.specs import FilterSpec


class StoreError(Exception):
    """The backend failed to read or write (I/O, SQLite, corrupt file)."""


class RecordNotFoundError(Exception):
    """No record of the given kind has the given identifier."""

    def __init__(self, kind: str, record_id: Any) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind[:-1].capitalize()} {record_id} not found")


def check_kind(kind: str) -> str:
    """Return *kind* unchanged.

    Raises:
        ValueError: If *kind* is not an entity kind
    """
    if kind not in ENTITY_KINDS:
        raise ValueError(
            f"Unknown entity kind: '{kind}'. Must be one of: {', '.join(ENTITY_KINDS)}"
        )
    return kind


def same_id(a: Any, b: Any) -> bool:
    """Identifiers are compared on their string form."""
    return a is not None and b is not None and str(a) == str(b)


class RecordStore(ABC):
    """Persistence for farms, crops, tasks and expenses.

    Every failure of the underlying storage surfaces as ``StoreError``; raw
    ``sqlite3`` or ``OSError`` exceptions never leave a backend.
    """

    backend: str = "abstract"

    @abstractmethod
    def list(self, kind: str, query: FilterSpec | None = None) -> list[dict[str, Any]]:
        """Records of *kind* in identifier (insertion) order.

        A backend may use *query* to skip records, but must return a superset
        of the records the in-memory pipeline would keep for it.
        """

    @abstractmethod
    def get(self, kind: str, record_id: Any) -> dict[str, Any]:
        """Return one record; raises ``RecordNotFoundError``."""

    @abstractmethod
    def create(self, kind: str, record: dict[str, Any]) -> dict[str, Any]:
        """Persist a new record and return it with ``id`` and ``created_at``.

        Any ``id``/``created_at`` in *record* is ignored.
        """

    @abstractmethod
    def update(self, kind: str, record: dict[str, Any]) -> dict[str, Any]:
        """Overwrite every field of the record ``record["id"]`` except ``id``
        and ``created_at``; raises ``RecordNotFoundError``."""

    @abstractmethod
    def delete(self, kind: str, record_id: Any) -> None:
        """Remove one record; raises ``RecordNotFoundError``."""

    @abstractmethod
    def count(self, kind: str) -> int:
        """Number of records of *kind*."""

    def describe(self) -> dict[str, Any]:
        """Backend name, location and per-kind counts for health checks."""
        return {
            "backend": self.backend,
            "counts": {kind: self.count(kind) for kind in ENTITY_KINDS},
        }

    def close(self) -> None:
        """Release resources held by the backend (default: nothing)."""
