"""
Shared list-endpoint helpers used by the JSON routes and the HTML pages.

Both surfaces accept the same query parameters (farm_id, q, date_from,
date_to, sort_by, sort_dir and the kind's exact-match field) and turn them
into the same ``FilterSpec``/``SortSpec`` pair, so a page and its API
endpoint always agree.
"""

from typing import Any

from pipeline.listing import ListingResult
from pipeline.specs import FilterSpec, SortSpec, completed_from_status

MAX_PAGE_SIZE = 500


def build_filter_spec(
    farm_id: Any = None,
    q: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    **equals: Any,
) -> FilterSpec:
    """Build a FilterSpec from request parameters.

    A ``status`` parameter on tasks means ``all|completed|pending`` and is
    mapped onto the ``completed`` flag; pass it as ``task_status``.
    """
    task_status = equals.pop("task_status", None)
    if task_status is not None:
        equals["completed"] = completed_from_status(task_status)
    return FilterSpec(
        farm_id=farm_id or None,
        equals={k: v for k, v in equals.items() if v is not None},
        date_from=date_from or None,
        date_to=date_to or None,
        search=q,
    )


def build_sort_spec(sort_by: str | None, sort_dir: str | None) -> SortSpec:
    return SortSpec(sort_by or None, sort_dir or "asc")


def listing_response(result: ListingResult) -> dict[str, Any]:
    """Serialize a ListingResult for the JSON list endpoints."""
    body: dict[str, Any] = {
        "total": result.total,
        "limit": result.limit,
        "offset": result.offset,
        "sort_by": result.sort.key if result.sort else None,
        "sort_dir": result.sort.direction if result.sort else None,
        "items": result.items,
    }
    if result.summary is not None:
        body["summary"] = result.summary.to_dict()
    return body
