"""
Weather endpoint.

GET /api/v1/weather/{farm_id} → simulated current conditions, 5-day forecast
                                and advisory alerts for one farm
"""

from fastapi import APIRouter, Depends

from api.database import get_services
from api.models import ErrorResponse, WeatherOut
from store.services import Services
from utils.weather import get_weather

router = APIRouter(prefix="/weather", tags=["weather"])


@router.get(
    "/{farm_id}",
    response_model=WeatherOut,
    summary="Weather report for a farm",
    responses={404: {"model": ErrorResponse, "description": "Farm not found"}},
)
def farm_weather(farm_id: str, services: Services = Depends(get_services)) -> dict:
    """Return the farm's weather report.

    Reports are deterministic per farm and cached for ``WEATHER_CACHE_TTL``
    seconds.
    """
    return get_weather(services.farms.get(farm_id))
