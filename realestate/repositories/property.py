"""
Property repository.
Owns the synchronization between the remote ``properties`` collection and the
in-memory property cache, and the Property <-> document codec.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging
import uuid

from pydantic import ValidationError as PydanticValidationError

from realestate.geocoding import Geocoder, geocode_property
from realestate.repositories.document import DocumentStore, StoredDocument, utcnow
from realestate.schemas.geolocation import GeoLocation
from realestate.schemas.property import Property, PropertyFilters
from realestate.services.blob import BlobStore
from realestate.services.cache import PropertyCache
from realestate.utils.exceptions import (
    GeocodeError,
    NotFoundError,
    PropertyNotFoundError,
    RemoteReadError,
    RemoteWriteError,
)

logger = logging.getLogger(__name__)

PROPERTIES_COLLECTION = "properties"

# Stored in place of missing coordinates
ABSENT_COORDINATE = 0.0


def generate_property_id() -> str:
    return str(uuid.uuid4()).upper()


def encode_property(prop: Property) -> Dict[str, Any]:
    """
    Convert a property to its document field map.
    The id is the document key and ``is_favorite`` is never persisted.
    """
    return {
        "userId": prop.user_id,
        "title": prop.title,
        "description": prop.description,
        "address": prop.address,
        "city": prop.city,
        "zipCode": prop.zip_code,
        "country": prop.country,
        "type": prop.type.value,
        "purpose": prop.purpose.value,
        "price": prop.price,
        "bedrooms": prop.bedrooms,
        "bathrooms": prop.bathrooms,
        "area": prop.area,
        "imageURLs": list(prop.image_urls),
        "latitude": prop.latitude if prop.has_coordinates else ABSENT_COORDINATE,
        "longitude": prop.longitude if prop.has_coordinates else ABSENT_COORDINATE,
        "contact": prop.whatsapp,
        "createdAt": prop.created_at.isoformat() if prop.created_at else None,
        "updatedAt": prop.updated_at.isoformat() if prop.updated_at else None,
    }


def encode_coordinates(location: Optional[GeoLocation]) -> Dict[str, float]:
    if location is None:
        return {"latitude": ABSENT_COORDINATE, "longitude": ABSENT_COORDINATE}
    return {"latitude": location.latitude, "longitude": location.longitude}


def decode_property(document: StoredDocument) -> Property:
    """
    Build a property from a stored document.

    Raises:
        ValueError: If the document cannot be parsed
    """
    data = document.data
    if not isinstance(data, dict):
        raise ValueError("document data is not a field map")

    latitude = data.get("latitude")
    longitude = data.get("longitude")
    if latitude is None or longitude is None or (latitude == ABSENT_COORDINATE and longitude == ABSENT_COORDINATE):
        latitude = longitude = None

    return Property.model_validate({
        "id": document.id,
        "user_id": data.get("userId", ""),
        "title": data.get("title"),
        "description": data.get("description"),
        "address": data.get("address"),
        "city": data.get("city", ""),
        "zip_code": data.get("zipCode", ""),
        "country": data.get("country", ""),
        "type": data.get("type", "House"),
        "purpose": data.get("purpose", "Buy"),
        "price": data.get("price"),
        "bedrooms": data.get("bedrooms"),
        "bathrooms": data.get("bathrooms"),
        "area": data.get("area"),
        "image_urls": data.get("imageURLs", []),
        "latitude": latitude,
        "longitude": longitude,
        "whatsapp": data.get("contact", ""),
        "created_at": data.get("createdAt"),
        "updated_at": data.get("updatedAt"),
    })


class PropertyRepository:
    """
    Single authoritative cache of all known properties, synchronized with the remote store.

    Cache mutations go through the PropertyCache writer; this class never touches the
    cached list directly.
    """

    def __init__(
        self,
        store: DocumentStore,
        blob_store: BlobStore,
        cache: PropertyCache,
        geocoder: Geocoder,
        collection: str = PROPERTIES_COLLECTION,
    ):
        self.store = store
        self.blob_store = blob_store
        self.cache = cache
        self.geocoder = geocoder
        self.collection = collection

    async def fetch_all(self) -> List[Property]:
        """
        Load every property, apply the favorites overlay and replace the cache.

        Returns:
            The new cache contents

        Raises:
            RemoteReadError: If the store cannot be read; the cache is left untouched
        """
        try:
            documents = await self.store.list(self.collection)
        except Exception as e:
            logger.error(f"Failed to fetch properties: {e}")
            raise RemoteReadError("Failed to list properties", e) from e

        properties = []
        for document in documents:
            try:
                properties.append(decode_property(document))
            except (PydanticValidationError, ValueError) as e:
                logger.warning(f"Skipping unparseable property document {document.id}: {e}")

        cached = await self.cache.replace(properties)
        logger.debug(f"Fetched {len(cached)} properties")
        return cached

    async def get_by_id(self, property_id: str) -> Property:
        """
        Fetch one property fresh from the store; the cache is not touched.

        Raises:
            PropertyNotFoundError: If the document is absent or unparseable
            RemoteReadError: If the store cannot be read
        """
        if not property_id:
            raise PropertyNotFoundError(property_id)

        try:
            document = await self.store.get(self.collection, property_id)
        except Exception as e:
            logger.error(f"Failed to get property {property_id}: {e}")
            raise RemoteReadError(f"Failed to read property {property_id}", e) from e

        if document is None:
            raise PropertyNotFoundError(property_id)

        try:
            prop = decode_property(document)
        except (PydanticValidationError, ValueError) as e:
            logger.warning(f"Property document {property_id} could not be parsed: {e}")
            raise PropertyNotFoundError(property_id) from e

        return prop.with_favorite(self.cache.is_favorite(prop.id))

    async def save(self, prop: Property) -> Property:
        """
        Create or update a property.

        Assigns an id when empty, keeps ``created_at`` from the stored document,
        refreshes ``updated_at`` and geocodes the address when no coordinates are
        known. Geocoding failure never fails the save.

        Returns:
            The persisted property as cached

        Raises:
            RemoteReadError: If the existence check fails
            RemoteWriteError: If the write fails; the cache is left untouched
        """
        if not prop.id:
            prop = prop.model_copy(update={"id": generate_property_id()})

        try:
            existing = await self.store.get(self.collection, prop.id)
        except Exception as e:
            logger.error(f"Failed to check property {prop.id}: {e}")
            raise RemoteReadError(f"Failed to read property {prop.id}", e) from e

        upstream = self._decode_or_none(existing)
        now = utcnow()

        if upstream is not None:
            created_at = upstream.created_at or prop.created_at or now
            location = prop.location or upstream.location
        else:
            created_at = prop.created_at or now
            location = prop.location

        updated_at = now
        if prop.updated_at is not None and self._after(prop.updated_at, now):
            updated_at = prop.updated_at

        prop = prop.model_copy(update={
            "created_at": created_at,
            "updated_at": updated_at,
            "latitude": location.latitude if location else None,
            "longitude": location.longitude if location else None,
            "is_favorite": False,
        })

        if location is None:
            try:
                prop = await geocode_property(self.geocoder, prop)
            except GeocodeError as e:
                logger.warning(f"Saving property {prop.id} without coordinates: {e.detail}")

        fields = encode_property(prop)
        try:
            if existing is not None:
                await self.store.update(self.collection, prop.id, fields)
            else:
                await self.store.set(self.collection, prop.id, fields)
        except Exception as e:
            logger.error(f"Failed to save property {prop.id}: {e}")
            raise RemoteWriteError(f"Failed to save property {prop.id}", e) from e

        logger.info(f"{'Updated' if existing is not None else 'Created'} property: {prop.title} (ID: {prop.id})")
        return await self.cache.upsert(prop)

    async def delete(self, prop: Property) -> None:
        """
        Delete a property, the managed blobs it references, then refresh the cache.

        Raises:
            RemoteWriteError: If a blob or the document cannot be deleted
            PropertyNotFoundError: If the document does not exist
        """
        for url in prop.image_urls:
            if not self.blob_store.is_managed(url):
                continue
            try:
                await self.blob_store.delete(url)
            except Exception as e:
                logger.error(f"Failed to delete image {url} of property {prop.id}: {e}")
                raise RemoteWriteError(f"Failed to delete image of property {prop.id}", e) from e

        try:
            deleted = await self.store.delete(self.collection, prop.id)
        except Exception as e:
            logger.error(f"Failed to delete property {prop.id}: {e}")
            raise RemoteWriteError(f"Failed to delete property {prop.id}", e) from e

        if not deleted:
            raise PropertyNotFoundError(prop.id)

        logger.info(f"Deleted property {prop.id}")
        await self.fetch_all()

    async def update_coordinates(
        self,
        property_id: str,
        location: GeoLocation,
        only_if_missing: bool = False
    ) -> bool:
        """
        Persist only the coordinates of one property and patch its cache entry.

        Args:
            property_id: Property to locate
            location: New coordinates
            only_if_missing: Write only while the stored coordinates are still absent

        Returns:
            False if ``only_if_missing`` was set and the property was located in the meantime

        Raises:
            PropertyNotFoundError: If the document no longer exists
            RemoteWriteError: If the write fails
        """
        now = utcnow()
        fields = {**encode_coordinates(location), "updatedAt": now.isoformat()}
        only_if = encode_coordinates(None) if only_if_missing else None
        try:
            written = await self.store.update(self.collection, property_id, fields, only_if=only_if)
        except NotFoundError as e:
            raise PropertyNotFoundError(property_id) from e
        except Exception as e:
            logger.error(f"Failed to update coordinates of property {property_id}: {e}")
            raise RemoteWriteError(f"Failed to update coordinates of property {property_id}", e) from e

        if written is False:
            logger.info(f"Property {property_id} already has coordinates, keeping them")
            return False

        await self.cache.patch(
            property_id,
            lambda cached: cached.with_location(location).model_copy(update={"updated_at": now}),
        )
        return True

    def snapshot(self) -> List[Property]:
        return self.cache.snapshot()

    def filter(self, filters: PropertyFilters) -> List[Property]:
        """Cached properties matching the filters."""
        return [prop for prop in self.cache.snapshot() if filters.matches(prop)]

    def properties_for_user(self, user_id: str) -> List[Property]:
        """Cached properties owned by a user."""
        return [prop for prop in self.cache.snapshot() if prop.user_id == user_id]

    @staticmethod
    def _decode_or_none(document: Optional[StoredDocument]) -> Optional[Property]:
        if document is None:
            return None
        try:
            return decode_property(document)
        except (PydanticValidationError, ValueError) as e:
            logger.warning(f"Overwriting unparseable property document {document.id}: {e}")
            return None

    @staticmethod
    def _after(candidate: datetime, reference: datetime) -> bool:
        if candidate.tzinfo is None:
            return False
        return candidate > reference
