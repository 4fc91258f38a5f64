"""
List view assembly: filter, then sort, then paginate.

``run_listing`` is the single entry point used by the entity services. It is a
pure function of its inputs and is recomputed on every request. ``total`` and
the expense ``summary`` always describe the whole filtered set, never just
the requested page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from pipeline.aggregates import ExpenseSummary, summarize_expenses
from pipeline.filters import apply_filters
from pipeline.schema import get_schema
from pipeline.specs import FilterSpec, SortSpec
from pipeline.sorting import resolve_sort, sort_records


@dataclass
class ListingResult:
    """One page of a filtered, sorted entity list."""

    kind: str
    items: list[dict[str, Any]]
    total: int
    filters: FilterSpec
    sort: SortSpec | None
    limit: int | None = None
    offset: int = 0
    summary: ExpenseSummary | None = None
    all_items: list[dict[str, Any]] = field(default_factory=list, repr=False)

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total


def paginate(records: list[dict[str, Any]], limit: int | None,
             offset: int = 0) -> list[dict[str, Any]]:
    """Slice *records*; ``limit=None`` returns everything from *offset*.

    Raises:
        ValueError: If limit or offset is negative
    """
    if offset < 0:
        raise ValueError("offset must be >= 0")
    if limit is None:
        return records[offset:]
    if limit < 0:
        raise ValueError("limit must be >= 0")
    return records[offset:offset + limit]


def run_listing(
    records: Iterable[dict[str, Any]],
    kind: str,
    filter_spec: FilterSpec | None = None,
    sort_spec: SortSpec | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> ListingResult:
    """Filter, sort and paginate the records of one kind.

    Args:
        records: Records of *kind* in store order
        kind: Entity kind
        filter_spec: Conditions (None keeps everything)
        sort_spec: Ordering (None uses the kind's default)
        limit: Page size, None for all
        offset: Records to skip after sorting

    Returns:
        ListingResult; ``summary`` is set for expenses only
    """
    schema = get_schema(kind)
    filter_spec = filter_spec or FilterSpec()
    filtered = apply_filters(records, filter_spec, schema)
    ordered = sort_records(filtered, sort_spec, schema)
    summary = summarize_expenses(ordered) if schema.kind == "expenses" else None
    return ListingResult(
        kind=schema.kind,
        items=paginate(ordered, limit, offset),
        total=len(ordered),
        filters=filter_spec,
        sort=resolve_sort(sort_spec, schema),
        limit=limit,
        offset=offset,
        summary=summary,
        all_items=ordered,
    )
