"""
Service layer: property cache, favorites overlay, geolocation enrichment and their collaborators.
"""

from .cache import PropertyCache
from .auth import AuthContext, SessionAuthContext
from .blob import BlobStore, LocalBlobStore
from .favorites import FavoritesOverlay
from .error_handler import ErrorHandlerService

# GeolocationService and the container depend on the repositories; import them directly

__all__ = [
    "PropertyCache",
    "AuthContext",
    "SessionAuthContext",
    "BlobStore",
    "LocalBlobStore",
    "FavoritesOverlay",
    "ErrorHandlerService",
]
