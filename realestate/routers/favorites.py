"""
Favorites API endpoints for the signed-in user.
"""

from fastapi import APIRouter, Depends, Path
from typing import List

from realestate.repositories.property import PropertyRepository
from realestate.schemas.favorite import Favorite
from realestate.schemas.property import Property
from realestate.schemas.session import FavoriteToggleResponse
from realestate.services.favorites import FavoritesOverlay
from realestate.utils.dependencies import (
    get_current_user_id,
    get_favorites_overlay,
    get_property_repository,
)
from realestate.schemas.error import get_auth_error_responses, get_error_responses


router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get(
    "",
    response_model=List[Property],
    summary="List favorited properties",
    description="Cached properties the signed-in user has favorited",
    responses=get_auth_error_responses()
)
async def list_favorites(
    user_id: str = Depends(get_current_user_id),
    favorites: FavoritesOverlay = Depends(get_favorites_overlay)
) -> List[Property]:
    return favorites.favorites()


@router.get(
    "/snapshots",
    response_model=List[Favorite],
    summary="List favorite snapshots",
    description="The listing snapshots stored with each favorite",
    responses=get_auth_error_responses()
)
async def list_favorite_snapshots(
    user_id: str = Depends(get_current_user_id),
    favorites: FavoritesOverlay = Depends(get_favorites_overlay)
) -> List[Favorite]:
    return await favorites.list_snapshots()


@router.post(
    "/load",
    response_model=List[str],
    summary="Reload favorites",
    description="Replace the local favorites with the user's stored favorites",
    responses=get_auth_error_responses()
)
async def load_favorites(
    user_id: str = Depends(get_current_user_id),
    favorites: FavoritesOverlay = Depends(get_favorites_overlay)
) -> List[str]:
    ids = await favorites.load()
    return sorted(ids)


@router.post(
    "/{property_id}/toggle",
    response_model=FavoriteToggleResponse,
    summary="Toggle a favorite",
    responses=get_error_responses(401, 404, 500, 503)
)
async def toggle_favorite(
    property_id: str = Path(..., min_length=1, description="Property id"),
    user_id: str = Depends(get_current_user_id),
    favorites: FavoritesOverlay = Depends(get_favorites_overlay),
    repository: PropertyRepository = Depends(get_property_repository)
) -> FavoriteToggleResponse:
    """
    Add the property to the user's favorites, or remove it when already there.
    The snapshot is taken from the cached listing, or read from the store when not cached.
    """
    prop = repository.cache.get(property_id)
    if prop is None:
        prop = await repository.get_by_id(property_id)
    is_favorite = await favorites.toggle(prop)
    return FavoriteToggleResponse(property_id=property_id, is_favorite=is_favorite)


@router.delete(
    "",
    summary="Delete every favorite",
    responses=get_auth_error_responses()
)
async def delete_all_favorites(
    user_id: str = Depends(get_current_user_id),
    favorites: FavoritesOverlay = Depends(get_favorites_overlay)
) -> dict:
    deleted = await favorites.delete_all()
    return {"deleted": deleted}
