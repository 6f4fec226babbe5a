"""
FastAPI dependency injection utilities.
Resolve the components owned by the application's service container.
"""

from fastapi import Depends, Request

from realestate.config import Settings
from realestate.repositories.property import PropertyRepository
from realestate.services.auth import SessionAuthContext
from realestate.services.container import ServiceContainer
from realestate.services.favorites import FavoritesOverlay
from realestate.services.geolocation import GeolocationService
from realestate.utils.exceptions import UnauthenticatedError


def get_container(request: Request) -> ServiceContainer:
    """
    Get the service container attached to the running application.

    Raises:
        RuntimeError: If the application was started without a container
    """
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("Service container is not initialized")
    return container


def get_settings_dependency(container: ServiceContainer = Depends(get_container)) -> Settings:
    return container.settings


def get_property_repository(container: ServiceContainer = Depends(get_container)) -> PropertyRepository:
    return container.properties


def get_favorites_overlay(container: ServiceContainer = Depends(get_container)) -> FavoritesOverlay:
    return container.favorites


def get_geolocation_service(container: ServiceContainer = Depends(get_container)) -> GeolocationService:
    return container.geolocation


def get_auth_context(container: ServiceContainer = Depends(get_container)) -> SessionAuthContext:
    return container.auth


def get_current_user_id(auth: SessionAuthContext = Depends(get_auth_context)) -> str:
    """
    Get the id of the signed-in user.

    Raises:
        UnauthenticatedError: If nobody is signed in
    """
    user_id = auth.current_user_id()
    if not user_id:
        raise UnauthenticatedError()
    return user_id
