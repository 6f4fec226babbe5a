"""
Pydantic schemas for domain values, request payloads and responses.
"""

from realestate.schemas.geolocation import GeoLocation, RepairReport
from realestate.schemas.property import Property, PropertyType, PropertyPurpose, PropertyFilters
from realestate.schemas.favorite import Favorite
from realestate.schemas.session import SessionCreate, SessionResponse, FavoriteToggleResponse
from realestate.schemas.error import ErrorDetail, ErrorResponse, APIErrorResponse

__all__ = [
    "GeoLocation",
    "RepairReport",
    "Property",
    "PropertyType",
    "PropertyPurpose",
    "PropertyFilters",
    "Favorite",
    "SessionCreate",
    "SessionResponse",
    "FavoriteToggleResponse",
    "ErrorDetail",
    "ErrorResponse",
    "APIErrorResponse",
]
