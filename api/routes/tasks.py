"""
Task endpoints.

GET    /api/v1/tasks                   → filtered task list (nearest due first)
POST   /api/v1/tasks                   → create a task
GET    /api/v1/tasks/{task_id}         → one task
PUT    /api/v1/tasks/{task_id}         → replace a task's fields
DELETE /api/v1/tasks/{task_id}         → delete a task
POST   /api/v1/tasks/{task_id}/toggle  → flip completed/pending
"""

from fastapi import APIRouter, Depends, Query, Response

from api.database import get_services
from api.listing import MAX_PAGE_SIZE, build_filter_spec, build_sort_spec, listing_response
from api.models import ErrorResponse, TaskIn, TaskListResponse, TaskOut, ValidationErrorResponse
from store.services import Services

router = APIRouter(prefix="/tasks", tags=["tasks"])

_ERRORS = {
    404: {"model": ErrorResponse, "description": "Task not found"},
    422: {"model": ValidationErrorResponse, "description": "Draft failed validation"},
}


@router.get("", response_model=TaskListResponse, summary="List tasks")
def list_tasks(
    farm_id: str | None = Query(None, description="Owning farm id, or 'all'"),
    status: str | None = Query(None, pattern="^(all|completed|pending)$",
                               description="all | completed | pending"),
    priority: str | None = Query(None, description="low | medium | high | all"),
    q: str | None = Query(None, description="Case-insensitive search over title and description"),
    date_from: str | None = Query(None, description="Due date lower bound (YYYY-MM-DD, inclusive)"),
    date_to: str | None = Query(None, description="Due date upper bound (YYYY-MM-DD, inclusive)"),
    sort_by: str | None = Query(None, description="Sort key (default: due_date ascending)"),
    sort_dir: str = Query("asc", pattern="^(asc|desc)$", description="Sort direction"),
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    services: Services = Depends(get_services),
) -> dict:
    """Return tasks matching every given filter, nearest due date first."""
    spec = build_filter_spec(farm_id=farm_id, q=q, date_from=date_from,
                             date_to=date_to, priority=priority, task_status=status)
    result = services.tasks.list(spec, build_sort_spec(sort_by, sort_dir), limit, offset)
    return listing_response(result)


@router.post("", response_model=TaskOut, status_code=201, summary="Create a task",
             responses={422: _ERRORS[422]})
def create_task(body: TaskIn, services: Services = Depends(get_services)) -> dict:
    """Create a task; priority defaults to ``medium`` and completed to false."""
    return services.tasks.create(body.to_draft())


@router.get("/{task_id}", response_model=TaskOut, summary="Get a task",
            responses={404: _ERRORS[404]})
def get_task(task_id: str, services: Services = Depends(get_services)) -> dict:
    return services.tasks.get(task_id)


@router.put("/{task_id}", response_model=TaskOut, summary="Update a task",
            responses=_ERRORS)
def update_task(task_id: str, body: TaskIn,
                services: Services = Depends(get_services)) -> dict:
    return services.tasks.update(task_id, body.to_draft())


@router.post("/{task_id}/toggle", response_model=TaskOut,
             summary="Toggle a task's completed flag", responses={404: _ERRORS[404]})
def toggle_task(task_id: str, services: Services = Depends(get_services)) -> dict:
    return services.tasks.toggle_completed(task_id)


@router.delete("/{task_id}", status_code=204, summary="Delete a task",
               responses={404: _ERRORS[404]})
def delete_task(task_id: str, services: Services = Depends(get_services)) -> Response:
    services.tasks.delete(task_id)
    return Response(status_code=204)
