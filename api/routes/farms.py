"""
Farm endpoints.

GET    /api/v1/farms              → filtered, sorted farm list
POST   /api/v1/farms              → create a farm
GET    /api/v1/farms/{farm_id}    → one farm
PUT    /api/v1/farms/{farm_id}    → replace a farm's fields
DELETE /api/v1/farms/{farm_id}    → delete (409 while it owns records,
                                    unless ?cascade=true)
"""

from fastapi import APIRouter, Depends, Query, Response

from api.database import get_services
from api.listing import MAX_PAGE_SIZE, build_filter_spec, build_sort_spec, listing_response
from api.models import ErrorResponse, FarmIn, FarmListResponse, FarmOut, ValidationErrorResponse
from store.services import Services

router = APIRouter(prefix="/farms", tags=["farms"])

_ERRORS = {
    404: {"model": ErrorResponse, "description": "Farm not found"},
    422: {"model": ValidationErrorResponse, "description": "Draft failed validation"},
}


@router.get("", response_model=FarmListResponse, summary="List farms")
def list_farms(
    q: str | None = Query(None, description="Case-insensitive search over name and location"),
    sort_by: str | None = Query(None, description="name | location | size | created_at | id"),
    sort_dir: str = Query("asc", pattern="^(asc|desc)$", description="Sort direction"),
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    services: Services = Depends(get_services),
) -> dict:
    """Return farms in creation order unless a sort key is given."""
    result = services.farms.list(
        build_filter_spec(q=q), build_sort_spec(sort_by, sort_dir), limit, offset
    )
    return listing_response(result)


@router.post("", response_model=FarmOut, status_code=201, summary="Create a farm",
             responses={422: _ERRORS[422]})
def create_farm(body: FarmIn, services: Services = Depends(get_services)) -> dict:
    """Create a farm. ``crop_types`` may be a list or a comma-separated string."""
    return services.farms.create(body.to_draft())


@router.get("/{farm_id}", response_model=FarmOut, summary="Get a farm",
            responses={404: _ERRORS[404]})
def get_farm(farm_id: str, services: Services = Depends(get_services)) -> dict:
    return services.farms.get(farm_id)


@router.put("/{farm_id}", response_model=FarmOut, summary="Update a farm",
            responses=_ERRORS)
def update_farm(farm_id: str, body: FarmIn,
                services: Services = Depends(get_services)) -> dict:
    """Overwrite every field of the farm; the identifier never changes."""
    return services.farms.update(farm_id, body.to_draft())


@router.delete(
    "/{farm_id}",
    status_code=204,
    summary="Delete a farm",
    responses={
        404: _ERRORS[404],
        409: {"model": ErrorResponse, "description": "Farm still owns crops, tasks or expenses"},
    },
)
def delete_farm(
    farm_id: str,
    cascade: bool = Query(False, description="Also delete the farm's crops, tasks and expenses"),
    services: Services = Depends(get_services),
) -> Response:
    services.farms.delete(farm_id, cascade=cascade)
    return Response(status_code=204)
