"""
Test configuration and fixtures for the real-estate catalog.
Provides in-memory collaborators, a temporary SQLite document store and test data factories.
"""

import asyncio
import copy
from typing import Any, AsyncGenerator, Dict, List, Optional, Set

import pytest
from httpx import ASGITransport, AsyncClient

from realestate.config import Settings
from realestate.database import create_engine, create_session_factory, create_tables
from realestate.main import create_app
from realestate.repositories.document import SQLAlchemyDocumentStore, StoredDocument, resolve_server_values
from realestate.repositories.property import PROPERTIES_COLLECTION, encode_property
from realestate.schemas.geolocation import GeoLocation
from realestate.schemas.property import Property, PropertyPurpose, PropertyType
from realestate.services.auth import SessionAuthContext
from realestate.services.container import ServiceContainer, assemble
from realestate.utils.exceptions import GeocodeError, NotFoundError


class StoreUnavailable(Exception):
    """Injected remote store failure."""


class InMemoryDocumentStore:
    """
    Document store double.

    ``fail(op)`` makes every later call of that operation raise;
    ``gates[op]`` is awaited before the operation runs.
    """

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.failures: Dict[str, Exception] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[tuple] = []

    def fail(self, op: str, error: Optional[Exception] = None) -> None:
        self.failures[op] = error or StoreUnavailable(f"{op} unavailable")

    def recover(self, op: str) -> None:
        self.failures.pop(op, None)

    def seed(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        self.collections.setdefault(collection, {})[document_id] = copy.deepcopy(data)

    def raw(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        return self.collections.get(collection, {}).get(document_id)

    async def _enter(self, op: str, collection: str, document_id: Optional[str] = None) -> None:
        self.calls.append((op, collection, document_id))
        gate = self.gates.get(op)
        if gate is not None:
            await gate.wait()
        error = self.failures.get(op)
        if error is not None:
            raise error

    async def get(self, collection: str, document_id: str) -> Optional[StoredDocument]:
        await self._enter("get", collection, document_id)
        data = self.raw(collection, document_id)
        if data is None:
            return None
        return StoredDocument(id=document_id, data=copy.deepcopy(data))

    async def list(self, collection: str) -> List[StoredDocument]:
        await self._enter("list", collection)
        return [
            StoredDocument(id=document_id, data=copy.deepcopy(data))
            for document_id, data in self.collections.get(collection, {}).items()
        ]

    async def set(self, collection: str, document_id: str, fields: Dict[str, Any]) -> None:
        await self._enter("set", collection, document_id)
        self.seed(collection, document_id, resolve_server_values(fields))

    async def update(
        self,
        collection: str,
        document_id: str,
        fields: Dict[str, Any],
        only_if: Optional[Dict[str, Any]] = None
    ) -> bool:
        await self._enter("update", collection, document_id)
        existing = self.raw(collection, document_id)
        if existing is None:
            raise NotFoundError("Document", f"{collection}/{document_id}")
        if only_if and any(existing.get(name) != value for name, value in only_if.items()):
            return False
        existing.update(copy.deepcopy(resolve_server_values(fields)))
        return True

    async def delete(self, collection: str, document_id: str) -> bool:
        await self._enter("delete", collection, document_id)
        return self.collections.get(collection, {}).pop(document_id, None) is not None


class FakeGeocoder:
    """
    Geocoder double resolving every address to ``default`` unless listed in
    ``failures`` (raises) or ``empty`` (no candidates).
    """

    def __init__(self, default: Optional[GeoLocation] = None, delay: float = 0.0):
        self.default = default or GeoLocation(latitude=38.7223, longitude=-9.1393)
        self.results: Dict[str, List[GeoLocation]] = {}
        self.failures: Set[str] = set()
        self.empty: Set[str] = set()
        self.delay = delay
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def geocode(self, address: str) -> List[GeoLocation]:
        self.calls.append(address)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            if any(marker in address for marker in self.failures):
                raise GeocodeError(address, "geocoder unavailable")
            if any(marker in address for marker in self.empty):
                return []
            return self.results.get(address, [self.default])
        finally:
            self.in_flight -= 1


class FakeBlobStore:
    """Blob store double managing URLs under ``base_url``."""

    def __init__(self, base_url: str = "https://blobs.test"):
        self.base_url = base_url
        self.blobs: Set[str] = set()
        self.deleted: List[str] = []
        self.fail_delete = False

    def is_managed(self, url: str) -> bool:
        return url.startswith(self.base_url + "/")

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        url = f"{self.base_url}/{path}"
        self.blobs.add(url)
        return url

    async def delete(self, url: str) -> None:
        if self.fail_delete:
            raise StoreUnavailable("blob store unavailable")
        self.blobs.discard(url)
        self.deleted.append(url)


# Test data factories
class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def build(**overrides: Any) -> Property:
        """Create an unsaved property."""
        data = {
            "id": "",
            "user_id": "owner-1",
            "title": "Sea View Apartment",
            "description": "Bright two-bedroom flat close to the river",
            "address": "12 Rua Augusta",
            "city": "Lisbon",
            "zip_code": "1100-048",
            "country": "Portugal",
            "type": PropertyType.APARTMENT,
            "purpose": PropertyPurpose.BUY,
            "price": 350000,
            "bedrooms": 2,
            "bathrooms": 1,
            "area": 85.0,
            "image_urls": [],
            "whatsapp": "+351912345678",
        }
        data.update(overrides)
        return Property(**data)

    @staticmethod
    def document(**overrides: Any) -> Dict[str, Any]:
        """Create a stored property field map."""
        fields = encode_property(PropertyFactory.build())
        fields["createdAt"] = "2024-01-01T10:00:00+00:00"
        fields["updatedAt"] = "2024-01-01T10:00:00+00:00"
        fields.update(overrides)
        return fields

    @staticmethod
    def seed(store: InMemoryDocumentStore, property_id: str, **overrides: Any) -> Dict[str, Any]:
        """Store a property document directly, bypassing the repository."""
        fields = PropertyFactory.document(**overrides)
        store.seed(PROPERTIES_COLLECTION, property_id, fields)
        return fields


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at temporary storage."""
    return Settings(
        environment="testing",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}",
        upload_dir=str(tmp_path / "uploads"),
        blob_base_url="https://blobs.test",
        geocode_max_concurrency=2,
        jwt_secret_key="test-secret-key-that-is-long-enough-1234",
    )


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def auth() -> SessionAuthContext:
    return SessionAuthContext()


@pytest.fixture
async def container(
    settings: Settings,
    memory_store: InMemoryDocumentStore,
    blob_store: FakeBlobStore,
    geocoder: FakeGeocoder,
    auth: SessionAuthContext
) -> AsyncGenerator[ServiceContainer, None]:
    """Core components wired around the in-memory collaborators."""
    services = assemble(settings, store=memory_store, blob_store=blob_store, geocoder=geocoder, auth=auth)
    yield services
    await services.aclose()


@pytest.fixture
async def sqlite_store(settings: Settings) -> AsyncGenerator[SQLAlchemyDocumentStore, None]:
    """SQLAlchemy document store over a temporary SQLite file."""
    engine = create_engine(settings)
    await create_tables(engine)
    yield SQLAlchemyDocumentStore(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture
async def async_client(container: ServiceContainer) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to an application using the test container."""
    app = create_app(container.settings, container=container)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
