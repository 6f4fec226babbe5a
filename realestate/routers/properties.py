"""
Property catalog API endpoints: listing, search, upsert, deletion and geocoding preview.
"""

from fastapi import APIRouter, Depends, Path, Query, Response, status
from typing import List, Optional

from realestate.repositories.property import PropertyRepository
from realestate.schemas.property import Property, PropertyFilters, PropertyPurpose, PropertyType
from realestate.services.geolocation import GeolocationService
from realestate.utils.dependencies import (
    get_current_user_id,
    get_geolocation_service,
    get_property_repository,
)
from realestate.schemas.error import get_auth_error_responses, get_common_error_responses


router = APIRouter(prefix="/properties", tags=["Properties"])


def get_property_filters(
    search_text: Optional[str] = Query(None, description="Case-insensitive term matched against title, description, address and city"),
    property_type: Optional[PropertyType] = Query(None, description="Property category"),
    purpose: Optional[PropertyPurpose] = Query(None, description="Buy, rent or seasonal"),
    city: Optional[str] = Query(None, description="Exact city, case-insensitive"),
    min_price: Optional[float] = Query(None, ge=0, description="Minimum price"),
    max_price: Optional[float] = Query(None, ge=0, description="Maximum price"),
    min_bedrooms: Optional[int] = Query(None, ge=0, description="Minimum number of bedrooms"),
    min_bathrooms: Optional[int] = Query(None, ge=0, description="Minimum number of bathrooms"),
    min_area: Optional[float] = Query(None, ge=0, description="Minimum area in square meters"),
    max_area: Optional[float] = Query(None, ge=0, description="Maximum area in square meters"),
) -> PropertyFilters:
    """Collect the search query parameters into a PropertyFilters value."""
    return PropertyFilters(
        search_text=search_text,
        property_type=property_type,
        purpose=purpose,
        city=city,
        min_price=min_price,
        max_price=max_price,
        min_bedrooms=min_bedrooms,
        min_bathrooms=min_bathrooms,
        min_area=min_area,
        max_area=max_area,
    )


@router.get(
    "",
    response_model=List[Property],
    summary="List properties",
    description="Refresh the catalog from the store and return the properties matching the filters",
    responses=get_common_error_responses()
)
async def list_properties(
    refresh: bool = Query(True, description="Re-fetch from the store before filtering"),
    filters: PropertyFilters = Depends(get_property_filters),
    repository: PropertyRepository = Depends(get_property_repository)
) -> List[Property]:
    """
    List the catalog.

    With ``refresh=false`` the cached snapshot is filtered without touching the store.
    """
    if refresh:
        await repository.fetch_all()
    return repository.filter(filters)


@router.get(
    "/mine",
    response_model=List[Property],
    summary="List my properties",
    responses=get_auth_error_responses()
)
async def list_my_properties(
    user_id: str = Depends(get_current_user_id),
    repository: PropertyRepository = Depends(get_property_repository)
) -> List[Property]:
    return repository.properties_for_user(user_id)


@router.get(
    "/{property_id}",
    response_model=Property,
    summary="Get property by id",
    responses=get_common_error_responses()
)
async def get_property(
    property_id: str = Path(..., min_length=1, description="Property id"),
    repository: PropertyRepository = Depends(get_property_repository)
) -> Property:
    return await repository.get_by_id(property_id)


@router.put(
    "",
    response_model=Property,
    summary="Create or update a property",
    description="Upsert a listing. An empty id creates a new one; missing coordinates are geocoded best-effort.",
    responses=get_common_error_responses()
)
async def save_property(
    prop: Property,
    repository: PropertyRepository = Depends(get_property_repository)
) -> Property:
    return await repository.save(prop)


@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a property",
    description="Delete a listing and the managed images it references",
    responses=get_common_error_responses()
)
async def delete_property(
    property_id: str = Path(..., min_length=1, description="Property id"),
    repository: PropertyRepository = Depends(get_property_repository)
) -> Response:
    prop = await repository.get_by_id(property_id)
    await repository.delete(prop)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{property_id}/geocode",
    response_model=Property,
    summary="Preview geocoding",
    description="Geocode the stored address of a property without persisting the result",
    responses=get_common_error_responses()
)
async def geocode_property_preview(
    property_id: str = Path(..., min_length=1, description="Property id"),
    repository: PropertyRepository = Depends(get_property_repository),
    geolocation: GeolocationService = Depends(get_geolocation_service)
) -> Property:
    prop = await repository.get_by_id(property_id)
    return await geolocation.geocode(prop)
