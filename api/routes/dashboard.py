"""Dashboard summary endpoint for the overview page."""

from fastapi import APIRouter, Depends

from api.database import get_store
from api.models import DashboardSummaryOut
from store.base import RecordStore
from store.services import dashboard_summary

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummaryOut,
            summary="Dashboard summary statistics")
def get_dashboard_summary(store: RecordStore = Depends(get_store)) -> dict:
    """Return the figures shown on the overview page.

    Includes:
    - Record counts per kind, plus pending tasks
    - The 3 most recently created crops
    - The 3 pending tasks due soonest
    - The 3 most recent expenses and the all-time expense total

    Nothing is cached; every call reads the store again.
    """
    return dashboard_summary(store)
