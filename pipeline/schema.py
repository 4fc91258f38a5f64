"""
Per-kind field roles used by the list pipeline.

Each entity kind names the field its date range applies to, the fields the
free-text search covers, the fields that can be exact-matched, and how each
sortable field compares.
"""

from __future__ import annotations

from dataclasses import dataclass

from pipeline.specs import SortSpec

ENTITY_KINDS = ("farms", "crops", "tasks", "expenses")


@dataclass(frozen=True)
class EntitySchema:
    kind: str
    date_field: str | None
    search_fields: tuple[str, ...]
    exact_fields: tuple[str, ...]
    sort_keys: tuple[str, ...]
    numeric_fields: frozenset[str] = frozenset({"id"})
    date_fields: frozenset[str] = frozenset()
    default_sort: SortSpec | None = None
    owned_by_farm: bool = True

    def comparison(self, key: str) -> str:
        """Comparison policy of *key*: "numeric", "date" or "text"."""
        if key in self.numeric_fields:
            return "numeric"
        if key in self.date_fields:
            return "date"
        return "text"


FARMS = EntitySchema(
    kind="farms",
    date_field=None,
    search_fields=("name", "location"),
    exact_fields=(),
    sort_keys=("id", "name", "location", "size", "created_at"),
    owned_by_farm=False,
)

CROPS = EntitySchema(
    kind="crops",
    date_field="planting_date",
    search_fields=("name", "variety"),
    exact_fields=("status",),
    sort_keys=("id", "name", "variety", "farm_name", "location",
               "planting_date", "harvest_date", "status", "created_at"),
    date_fields=frozenset({"planting_date", "harvest_date"}),
)

TASKS = EntitySchema(
    kind="tasks",
    date_field="due_date",
    search_fields=("title", "description"),
    exact_fields=("priority", "completed"),
    sort_keys=("id", "title", "farm_name", "due_date", "priority",
               "completed", "created_at"),
    date_fields=frozenset({"due_date"}),
    default_sort=SortSpec("due_date", "asc"),
)

EXPENSES = EntitySchema(
    kind="expenses",
    date_field="date",
    search_fields=("description", "category"),
    exact_fields=("category",),
    sort_keys=("id", "date", "amount", "category", "description",
               "farm_name", "created_at"),
    numeric_fields=frozenset({"id", "amount"}),
    date_fields=frozenset({"date"}),
    default_sort=SortSpec("date", "desc"),
)

SCHEMAS: dict[str, EntitySchema] = {
    s.kind: s for s in (FARMS, CROPS, TASKS, EXPENSES)
}


def get_schema(kind: str | EntitySchema) -> EntitySchema:
    """Return the schema for *kind* (a schema passes through unchanged).

    Raises:
        ValueError: If *kind* is not an entity kind
    """
    if isinstance(kind, EntitySchema):
        return kind
    try:
        return SCHEMAS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown entity kind: '{kind}'. Must be one of: {', '.join(ENTITY_KINDS)}"
        ) from None
