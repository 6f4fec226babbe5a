"""
Custom exception classes for the real estate listings backend.
Provides structured error handling with appropriate HTTP status codes.
"""

from typing import Any, Dict, Optional, List
from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base API exception class."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

    def __str__(self) -> str:
        return self.detail


class ValidationError(APIException):
    """Validation error exception."""

    def __init__(
        self,
        detail: str,
        field_errors: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="VALIDATION_ERROR"
        )
        self.field_errors = field_errors or []


class NotFoundError(APIException):
    """Requested document is absent or could not be parsed."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        detail = f"{resource} not found"
        if resource_id:
            detail += f" with ID: {resource_id}"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND"
        )
        self.resource = resource
        self.resource_id = resource_id


class PropertyNotFoundError(NotFoundError):
    """Property not found exception."""

    def __init__(self, property_id: str):
        super().__init__("Property", property_id)


class UnauthenticatedError(APIException):
    """Operation needs a signed-in user."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHENTICATED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class InvalidTokenError(UnauthenticatedError):
    """Invalid or expired session token."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail)


class GeocodeError(APIException):
    """Address could not be resolved to coordinates."""

    def __init__(self, address: str, reason: Optional[str] = None):
        detail = f"Could not geocode address '{address}'"
        if reason:
            detail += f": {reason}"
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code="GEOCODE_ERROR"
        )
        self.address = address


class RemoteStoreError(APIException):
    """Base class for failures of the remote document or blob store."""

    error_code_value = "REMOTE_STORE_ERROR"

    def __init__(self, detail: str, cause: Optional[BaseException] = None):
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=self.error_code_value
        )
        self.cause = cause


class RemoteReadError(RemoteStoreError):
    """Reading from the remote store failed."""

    error_code_value = "REMOTE_READ_ERROR"


class RemoteWriteError(RemoteStoreError):
    """Writing to the remote store failed."""

    error_code_value = "REMOTE_WRITE_ERROR"


class FavoriteLoadError(RemoteStoreError):
    """The user's favorites could not be loaded."""

    error_code_value = "FAVORITE_LOAD_ERROR"

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__("Failed to load favorites", cause)


class FavoriteToggleError(RemoteStoreError):
    """A favorite could not be added or removed."""

    error_code_value = "FAVORITE_TOGGLE_ERROR"

    def __init__(self, property_id: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to toggle favorite for property {property_id}", cause)
        self.property_id = property_id
