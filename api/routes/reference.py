"""
Reference data endpoints.

GET /api/v1/reference/crop-statuses       → planted, growing, harvested
GET /api/v1/reference/task-priorities     → low, medium, high
GET /api/v1/reference/expense-categories  → the expense category list
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.models import ReferenceValueOut
from utils.config import KnownValues

router = APIRouter(prefix="/reference", tags=["reference"])

_CACHE_HEADER = {"Cache-Control": "max-age=3600"}


def _values(values, styled: bool = True) -> list[dict]:
    return [
        {
            "value": v,
            "label": v.capitalize(),
            "badge_class": KnownValues.badge_class(v) if styled else None,
        }
        for v in values
    ]


@router.get(
    "/crop-statuses",
    response_model=list[ReferenceValueOut],
    summary="List crop statuses",
)
def list_crop_statuses() -> JSONResponse:
    """Return the crop status values with their badge classes."""
    return JSONResponse(content=_values(KnownValues.CROP_STATUSES), headers=_CACHE_HEADER)


@router.get(
    "/task-priorities",
    response_model=list[ReferenceValueOut],
    summary="List task priorities",
)
def list_task_priorities() -> JSONResponse:
    """Return the task priority values with their badge classes."""
    return JSONResponse(content=_values(KnownValues.TASK_PRIORITIES), headers=_CACHE_HEADER)


@router.get(
    "/expense-categories",
    response_model=list[ReferenceValueOut],
    summary="List expense categories",
)
def list_expense_categories() -> JSONResponse:
    return JSONResponse(
        content=_values(KnownValues.EXPENSE_CATEGORIES, styled=False),
        headers=_CACHE_HEADER,
    )
