"""
Explicit wiring of the core components.
Each application (or test) owns one container; nothing is a process-wide singleton.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional
import logging

import httpx

from realestate.config import Settings
from realestate.database import create_engine, create_session_factory, create_tables, test_database_connection
from realestate.geocoding import Geocoder, NominatimGeocoder
from realestate.repositories.document import DocumentStore, SQLAlchemyDocumentStore
from realestate.repositories.property import PropertyRepository
from realestate.services.auth import SessionAuthContext
from realestate.services.blob import BlobStore, LocalBlobStore
from realestate.services.cache import PropertyCache
from realestate.services.favorites import FavoritesOverlay
from realestate.services.geolocation import GeolocationService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Owned instances of the core components and their collaborators."""

    settings: Settings
    store: DocumentStore
    blob_store: BlobStore
    geocoder: Geocoder
    auth: SessionAuthContext
    cache: PropertyCache
    properties: PropertyRepository
    favorites: FavoritesOverlay
    geolocation: GeolocationService
    health_check: Optional[Callable[[], Awaitable[bool]]] = None
    _closers: List[Callable[[], Awaitable[Any]]] = field(default_factory=list)

    async def sign_out(self) -> None:
        """Sign the session out and drop the user's favorites overlay."""
        self.auth.sign_out()
        await self.favorites.clear()

    async def aclose(self) -> None:
        await self.cache.close()
        for closer in reversed(self._closers):
            await closer()
        logger.info("Service container closed")


def assemble(
    settings: Settings,
    store: DocumentStore,
    blob_store: BlobStore,
    geocoder: Geocoder,
    auth: Optional[SessionAuthContext] = None,
) -> ServiceContainer:
    """Construct the core components around the given collaborators."""
    auth = auth or SessionAuthContext()
    cache = PropertyCache()
    properties = PropertyRepository(store, blob_store, cache, geocoder)
    favorites = FavoritesOverlay(store, auth, cache)
    geolocation = GeolocationService(properties, geocoder, max_concurrency=settings.geocode_max_concurrency)
    return ServiceContainer(
        settings=settings,
        store=store,
        blob_store=blob_store,
        geocoder=geocoder,
        auth=auth,
        cache=cache,
        properties=properties,
        favorites=favorites,
        geolocation=geolocation,
    )


async def build_container(settings: Settings) -> ServiceContainer:
    """
    Build the production container: SQLAlchemy document store, local blob store
    and an HTTP geocoder.
    """
    engine = create_engine(settings)
    await create_tables(engine)
    session_factory = create_session_factory(engine)

    http_client = httpx.AsyncClient(timeout=settings.geocoder_timeout_seconds)

    container = assemble(
        settings,
        store=SQLAlchemyDocumentStore(session_factory),
        blob_store=LocalBlobStore.from_settings(settings),
        geocoder=NominatimGeocoder.from_settings(http_client, settings),
    )
    container.health_check = lambda: test_database_connection(session_factory)
    container._closers.extend([engine.dispose, http_client.aclose])
    logger.info(f"Service container ready (database: {engine.url.render_as_string(hide_password=True)})")
    return container
