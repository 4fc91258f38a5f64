"""
Crop endpoints.

GET    /api/v1/crops              → filtered, sorted crop list
POST   /api/v1/crops              → create a crop
GET    /api/v1/crops/{crop_id}    → one crop
PUT    /api/v1/crops/{crop_id}    → replace a crop's fields
DELETE /api/v1/crops/{crop_id}    → delete a crop
"""

from fastapi import APIRouter, Depends, Query, Response

from api.database import get_services
from api.listing import MAX_PAGE_SIZE, build_filter_spec, build_sort_spec, listing_response
from api.models import CropIn, CropListResponse, CropOut, ErrorResponse, ValidationErrorResponse
from store.services import Services

router = APIRouter(prefix="/crops", tags=["crops"])

_ERRORS = {
    404: {"model": ErrorResponse, "description": "Crop not found"},
    422: {"model": ValidationErrorResponse, "description": "Draft failed validation"},
}


@router.get("", response_model=CropListResponse, summary="List crops")
def list_crops(
    farm_id: str | None = Query(None, description="Owning farm id, or 'all'"),
    status: str | None = Query(None, description="planted | growing | harvested | all"),
    q: str | None = Query(None, description="Case-insensitive search over name and variety"),
    date_from: str | None = Query(None, description="Planting date lower bound (YYYY-MM-DD, inclusive)"),
    date_to: str | None = Query(None, description="Planting date upper bound (YYYY-MM-DD, inclusive)"),
    sort_by: str | None = Query(None, description="Sort key, e.g. name, planting_date, status"),
    sort_dir: str = Query("asc", pattern="^(asc|desc)$", description="Sort direction"),
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE, description="Page size"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    services: Services = Depends(get_services),
) -> dict:
    """Return crops matching every given filter.

    Unknown farm ids yield an empty list, never an error. Without a sort key
    crops keep their creation order.
    """
    spec = build_filter_spec(farm_id=farm_id, q=q, date_from=date_from,
                             date_to=date_to, status=status)
    result = services.crops.list(spec, build_sort_spec(sort_by, sort_dir), limit, offset)
    return listing_response(result)


@router.post("", response_model=CropOut, status_code=201, summary="Create a crop",
             responses={422: _ERRORS[422]})
def create_crop(body: CropIn, services: Services = Depends(get_services)) -> dict:
    """Create a crop; status defaults to ``planted`` and variety to ""."""
    return services.crops.create(body.to_draft())


@router.get("/{crop_id}", response_model=CropOut, summary="Get a crop",
            responses={404: _ERRORS[404]})
def get_crop(crop_id: str, services: Services = Depends(get_services)) -> dict:
    return services.crops.get(crop_id)


@router.put("/{crop_id}", response_model=CropOut, summary="Update a crop",
            responses=_ERRORS)
def update_crop(crop_id: str, body: CropIn,
                services: Services = Depends(get_services)) -> dict:
    return services.crops.update(crop_id, body.to_draft())


@router.delete("/{crop_id}", status_code=204, summary="Delete a crop",
               responses={404: _ERRORS[404]})
def delete_crop(crop_id: str, services: Services = Depends(get_services)) -> Response:
    services.crops.delete(crop_id)
    return Response(status_code=204)
