"""
Utility modules for the real-estate catalog service.
"""

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    PropertyNotFoundError,
    UnauthenticatedError,
    InvalidTokenError,
    GeocodeError,
    RemoteStoreError,
    RemoteReadError,
    RemoteWriteError,
    FavoriteLoadError,
    FavoriteToggleError,
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    "APIException",
    "ValidationError",
    "NotFoundError",
    "PropertyNotFoundError",
    "UnauthenticatedError",
    "InvalidTokenError",
    "GeocodeError",
    "RemoteStoreError",
    "RemoteReadError",
    "RemoteWriteError",
    "FavoriteLoadError",
    "FavoriteToggleError",
]
