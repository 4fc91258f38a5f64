"""
Expense endpoints.

GET    /api/v1/expenses                 → filtered list plus summary aggregates
GET    /api/v1/expenses/export          → filtered, sorted set as CSV, NDJSON or Excel
POST   /api/v1/expenses                 → create an expense
GET    /api/v1/expenses/{expense_id}    → one expense
PUT    /api/v1/expenses/{expense_id}    → replace an expense's fields
DELETE /api/v1/expenses/{expense_id}    → delete an expense

The summary (total, per-category sums, top five categories) always covers
the whole filtered set, not just the returned page.
"""

import csv
import io
import json
from datetime import datetime, timezone
from typing import Any, Iterator

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import StreamingResponse

from api.database import get_services
from api.listing import MAX_PAGE_SIZE, build_filter_spec, build_sort_spec, listing_response
from api.models import (
    ErrorResponse,
    ExpenseIn,
    ExpenseListResponse,
    ExpenseOut,
    ValidationErrorResponse,
)
from pipeline.specs import FilterSpec
from store.services import Services

router = APIRouter(prefix="/expenses", tags=["expenses"])

EXPORT_COLUMNS = ["id", "date", "amount", "category", "description",
                  "farm_id", "farm_name", "created_at"]

_ERRORS = {
    404: {"model": ErrorResponse, "description": "Expense not found"},
    422: {"model": ValidationErrorResponse, "description": "Draft failed validation"},
}


def _filter_summary(spec: FilterSpec) -> str:
    params = spec.to_params()
    return "; ".join(f"{k}={v}" for k, v in params.items()) if params else "none"


@router.get("", response_model=ExpenseListResponse, summary="List expenses")
def list_expenses(
    farm_id: str | None = Query(None, description="Owning farm id, or 'all'"),
    category: str | None = Query(None, description="Expense category, or 'all'"),
    q: str | None = Query(None, description="Case-insensitive search over description and category"),
    date_from: str | None = Query(None, description="Date lower bound (YYYY-MM-DD, inclusive)"),
    date_to: str | None = Query(None, description="Date upper bound (YYYY-MM-DD, inclusive)"),
    sort_by: str | None = Query(None, description="Sort key (default: date descending)"),
    sort_dir: str = Query("asc", pattern="^(asc|desc)$", description="Sort direction"),
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    services: Services = Depends(get_services),
) -> dict:
    """Return expenses matching every given filter with summary aggregates."""
    spec = build_filter_spec(farm_id=farm_id, q=q, date_from=date_from,
                             date_to=date_to, category=category)
    result = services.expenses.list(spec, build_sort_spec(sort_by, sort_dir), limit, offset)
    return listing_response(result)


@router.get("/export", summary="Export expenses as CSV, JSON or Excel")
def export_expenses(
    request: Request,
    fmt: str = Query("csv", pattern="^(csv|json|xlsx)$", description="Output format"),
    farm_id: str | None = Query(None),
    category: str | None = Query(None),
    q: str | None = Query(None),
    date_from: str | None = Query(None),
    date_to: str | None = Query(None),
    sort_by: str | None = Query(None),
    sort_dir: str = Query("asc", pattern="^(asc|desc)$"),
    services: Services = Depends(get_services),
) -> StreamingResponse:
    """Stream the filtered, sorted expense set.

    CSV and Excel start with source attribution rows; JSON is newline
    delimited with a leading ``_metadata`` object.
    """
    spec = build_filter_spec(farm_id=farm_id, q=q, date_from=date_from,
                             date_to=date_to, category=category)
    result = services.expenses.list(spec, build_sort_spec(sort_by, sort_dir))
    rows = result.items
    export_date = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    filter_summary = _filter_summary(spec)
    headers = {"X-Total-Count": str(result.total)}

    if fmt == "csv":
        def csv_stream() -> Iterator[str]:
            buf = io.StringIO()
            meta = csv.writer(buf)
            meta.writerow(["# Source: CropKeeper"])
            meta.writerow([f"# Export Date: {export_date}"])
            meta.writerow([f"# Filters: {filter_summary}"])
            meta.writerow([f"# Total: {result.summary.total:.2f}"])
            writer = csv.DictWriter(buf, fieldnames=EXPORT_COLUMNS, extrasaction="ignore")
            writer.writeheader()
            yield buf.getvalue()
            for row in rows:
                buf.seek(0)
                buf.truncate()
                writer.writerow(row)
                yield buf.getvalue()

        return StreamingResponse(
            csv_stream(),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=expenses.csv", **headers},
        )

    if fmt == "xlsx":
        import openpyxl

        wb = openpyxl.Workbook(write_only=True)
        meta_ws = wb.create_sheet("Metadata")
        meta_ws.append(["Source", "CropKeeper"])
        meta_ws.append(["Export Date", export_date])
        meta_ws.append(["Filters", filter_summary])
        meta_ws.append(["URL", str(request.url)])
        meta_ws.append(["Total", result.summary.total])
        ws = wb.create_sheet("Expenses")
        ws.append(EXPORT_COLUMNS)
        for row in rows:
            ws.append([_cell(row.get(c)) for c in EXPORT_COLUMNS])
        buf = io.BytesIO()
        wb.save(buf)
        content = buf.getvalue()
        return StreamingResponse(
            iter([content]),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={
                "Content-Disposition": "attachment; filename=expenses.xlsx",
                "Content-Length": str(len(content)),
                **headers,
            },
        )

    def json_stream() -> Iterator[str]:
        metadata = {
            "_metadata": {
                "source": "CropKeeper",
                "export_date": export_date,
                "filters": filter_summary,
                "url": str(request.url),
                "total_records": result.total,
                "summary": result.summary.to_dict(),
            }
        }
        yield json.dumps(metadata, default=str) + "\n"
        for row in rows:
            yield json.dumps({c: row.get(c) for c in EXPORT_COLUMNS}, default=str) + "\n"

    return StreamingResponse(
        json_stream(),
        media_type="application/x-ndjson",
        headers={"Content-Disposition": "attachment; filename=expenses.ndjson", **headers},
    )


def _cell(value: Any) -> Any:
    if value is None or isinstance(value, (int, float, str)):
        return value
    return str(value)


@router.post("", response_model=ExpenseOut, status_code=201, summary="Create an expense",
             responses={422: _ERRORS[422]})
def create_expense(body: ExpenseIn, services: Services = Depends(get_services)) -> dict:
    """Create an expense; the amount must be a positive number."""
    return services.expenses.create(body.to_draft())


@router.get("/{expense_id}", response_model=ExpenseOut, summary="Get an expense",
            responses={404: _ERRORS[404]})
def get_expense(expense_id: str, services: Services = Depends(get_services)) -> dict:
    return services.expenses.get(expense_id)


@router.put("/{expense_id}", response_model=ExpenseOut, summary="Update an expense",
            responses=_ERRORS)
def update_expense(expense_id: str, body: ExpenseIn,
                   services: Services = Depends(get_services)) -> dict:
    return services.expenses.update(expense_id, body.to_draft())


@router.delete("/{expense_id}", status_code=204, summary="Delete an expense",
               responses={404: _ERRORS[404]})
def delete_expense(expense_id: str, services: Services = Depends(get_services)) -> Response:
    services.expenses.delete(expense_id)
    return Response(status_code=204)
