"""
API route handlers for the real-estate catalog service.
"""

from .session import router as session_router
from .properties import router as properties_router
from .favorites import router as favorites_router
from .geolocation import router as geolocation_router

__all__ = ["session_router", "properties_router", "favorites_router", "geolocation_router"]
