"""
Filter and sort specifications for entity list views.

A ``FilterSpec`` describes which records a list page shows; a ``SortSpec``
describes their order. Both are plain values: building one never fails, and
options that make no sense for a kind are ignored rather than rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from utils.config import KnownValues

ALL = "all"
SORT_DIRECTIONS = ("asc", "desc")


def is_unconstrained(value: Any) -> bool:
    """True for the "no constraint" values: None, "" and "all"."""
    return value is None or value == "" or value == ALL


def completed_from_status(status: Any) -> bool | None:
    """Map the tasks page's ``all|completed|pending`` choice onto ``completed``.

    Unknown choices behave like ``all``.
    """
    if status is None:
        return None
    return KnownValues.TASK_STATUS_FILTERS.get(str(status).lower())


@dataclass
class FilterSpec:
    """Conditions a record must meet to appear in a list.

    Attributes:
        farm_id: Owning farm, or None/"all" for every farm. Compared on its
            string form, so ``1`` and ``"1"`` are the same farm.
        equals: Exact-match field -> value pairs (crop ``status``, task
            ``priority``/``completed``, expense ``category``). Entries whose
            value is None/"all" are inactive.
        date_from: Inclusive lower bound on the kind's date field.
        date_to: Inclusive upper bound on the kind's date field.
        search: Case-insensitive substring over the kind's search fields.
            Surrounding whitespace is ignored; a blank term is inactive.
    """

    farm_id: Any = None
    equals: dict[str, Any] = field(default_factory=dict)
    date_from: str | None = None
    date_to: str | None = None
    search: str | None = None

    @property
    def active_equals(self) -> dict[str, Any]:
        return {k: v for k, v in self.equals.items() if not is_unconstrained(v)}

    @property
    def search_term(self) -> str:
        return (self.search or "").strip()

    @property
    def has_date_bounds(self) -> bool:
        return bool(self.date_from) or bool(self.date_to)

    def is_empty(self) -> bool:
        """True when no condition is active (the spec keeps every record)."""
        return (
            is_unconstrained(self.farm_id)
            and not self.active_equals
            and not self.has_date_bounds
            and not self.search_term
        )

    def to_params(self) -> dict[str, Any]:
        """Active conditions as query-string parameters (for page links)."""
        params: dict[str, Any] = {}
        if not is_unconstrained(self.farm_id):
            params["farm_id"] = self.farm_id
        for key, value in self.active_equals.items():
            if key == "completed":
                params["status"] = "completed" if value else "pending"
            else:
                params[key] = value
        if self.date_from:
            params["date_from"] = self.date_from
        if self.date_to:
            params["date_to"] = self.date_to
        if self.search_term:
            params["q"] = self.search_term
        return params


@dataclass
class SortSpec:
    """Sort key and direction. ``key=None`` asks for the kind's default."""

    key: str | None = None
    direction: str = "asc"

    def __post_init__(self) -> None:
        direction = str(self.direction or "asc").lower()
        self.direction = direction if direction in SORT_DIRECTIONS else "asc"

    @property
    def descending(self) -> bool:
        return self.direction == "desc"

    def toggled(self, key: str) -> "SortSpec":
        """Spec for a click on column *key*: asc first, desc on a repeat click."""
        if self.key == key and self.direction == "asc":
            return SortSpec(key, "desc")
        return SortSpec(key, "asc")
