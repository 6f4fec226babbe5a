"""
Geolocation maintenance endpoints.
"""

from fastapi import APIRouter, Depends

from realestate.schemas.geolocation import RepairReport
from realestate.services.geolocation import GeolocationService
from realestate.utils.dependencies import get_geolocation_service
from realestate.schemas.error import get_error_responses


router = APIRouter(prefix="/geolocation", tags=["Geolocation"])


@router.post(
    "/repair",
    response_model=RepairReport,
    summary="Repair missing locations",
    description="Geocode and store coordinates for every property that has none",
    responses=get_error_responses(500, 503)
)
async def repair_missing_locations(
    geolocation: GeolocationService = Depends(get_geolocation_service)
) -> RepairReport:
    return await geolocation.repair_all_missing()
