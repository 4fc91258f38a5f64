"""
Pipeline package -- CropKeeper list filtering, sorting and aggregation.

Re-exports key entry points so callers can do::

    from pipeline import FilterSpec, SortSpec, run_listing
"""

from pipeline.aggregates import ExpenseSummary, summarize_expenses
from pipeline.filters import apply_filters, matches, partition
from pipeline.listing import ListingResult, paginate, run_listing
from pipeline.schema import ENTITY_KINDS, EntitySchema, get_schema
from pipeline.sorting import resolve_sort, sort_records
from pipeline.specs import FilterSpec, SortSpec, completed_from_status, is_unconstrained

__all__ = [
    "ENTITY_KINDS",
    "EntitySchema",
    "ExpenseSummary",
    "FilterSpec",
    "ListingResult",
    "SortSpec",
    "apply_filters",
    "completed_from_status",
    "get_schema",
    "is_unconstrained",
    "matches",
    "paginate",
    "partition",
    "resolve_sort",
    "run_listing",
    "sort_records",
    "summarize_expenses",
]
