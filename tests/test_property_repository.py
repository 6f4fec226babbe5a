"""
Tests for the property repository and its document codec.
"""

from datetime import datetime, timedelta, timezone

import pytest

from realestate.repositories.document import StoredDocument
from realestate.repositories.property import (
    ABSENT_COORDINATE,
    PROPERTIES_COLLECTION,
    decode_property,
    encode_property,
)
from realestate.schemas.geolocation import GeoLocation
from realestate.schemas.property import PropertyFilters, PropertyPurpose, PropertyType
from realestate.services.container import ServiceContainer
from realestate.utils.exceptions import PropertyNotFoundError, RemoteReadError, RemoteWriteError
from tests.conftest import FakeBlobStore, FakeGeocoder, InMemoryDocumentStore, PropertyFactory


class TestPropertyCodec:
    """Test the Property <-> document mapping."""

    def test_absent_coordinates_are_written_as_sentinel(self):
        fields = encode_property(PropertyFactory.build())

        assert fields["latitude"] == ABSENT_COORDINATE
        assert fields["longitude"] == ABSENT_COORDINATE

    def test_derived_and_key_fields_are_not_written(self):
        fields = encode_property(PropertyFactory.build(id="P1", is_favorite=True))

        assert "id" not in fields
        assert "isFavorite" not in fields
        assert "is_favorite" not in fields

    def test_document_field_names(self):
        fields = encode_property(PropertyFactory.build(image_urls=["https://img/1.jpg"]))

        assert fields["userId"] == "owner-1"
        assert fields["zipCode"] == "1100-048"
        assert fields["imageURLs"] == ["https://img/1.jpg"]
        assert fields["contact"] == "+351912345678"
        assert fields["type"] == "Apartment"
        assert fields["purpose"] == "Buy"

    def test_sentinel_is_read_as_absent(self):
        prop = decode_property(StoredDocument(id="P1", data=PropertyFactory.document(latitude=0.0, longitude=0.0)))

        assert prop.latitude is None
        assert prop.longitude is None
        assert prop.has_coordinates is False

    def test_missing_coordinates_are_read_as_absent(self):
        data = PropertyFactory.document()
        del data["latitude"]
        del data["longitude"]

        prop = decode_property(StoredDocument(id="P1", data=data))

        assert prop.location is None

    def test_real_coordinates_are_preserved(self):
        prop = decode_property(StoredDocument(id="P1", data=PropertyFactory.document(latitude=38.7, longitude=-9.1)))

        assert prop.location == GeoLocation(latitude=38.7, longitude=-9.1)

    def test_round_trip_is_lossless(self):
        listing = PropertyFactory.build(
            id="P1",
            latitude=41.15,
            longitude=-8.61,
            image_urls=["https://img/1.jpg", "https://img/2.jpg"],
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            updated_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
        )

        decoded = decode_property(StoredDocument(id="P1", data=encode_property(listing)))

        assert decoded == listing

    def test_unparseable_document_raises_value_error(self):
        with pytest.raises(ValueError):
            decode_property(StoredDocument(id="P1", data=PropertyFactory.document(price=None)))


class TestFetchAll:
    """Test catalog refresh."""

    @pytest.mark.asyncio
    async def test_fetch_all_replaces_cache(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        PropertyFactory.seed(memory_store, "P1", title="First")
        PropertyFactory.seed(memory_store, "P2", title="Second")

        properties = await container.properties.fetch_all()

        assert [p.id for p in properties] == ["P1", "P2"]
        assert [p.id for p in container.cache.snapshot()] == ["P1", "P2"]

    @pytest.mark.asyncio
    async def test_fetch_all_skips_unparseable_documents(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        PropertyFactory.seed(memory_store, "P1")
        PropertyFactory.seed(memory_store, "BROKEN", price="not a number")

        properties = await container.properties.fetch_all()

        assert [p.id for p in properties] == ["P1"]

    @pytest.mark.asyncio
    async def test_fetch_all_failure_leaves_cache_untouched(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        PropertyFactory.seed(memory_store, "P1")
        await container.properties.fetch_all()
        memory_store.fail("list")

        with pytest.raises(RemoteReadError):
            await container.properties.fetch_all()

        assert [p.id for p in container.cache.snapshot()] == ["P1"]


class TestGetById:
    """Test single-record reads."""

    @pytest.mark.asyncio
    async def test_get_by_id_reads_store_without_touching_cache(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        PropertyFactory.seed(memory_store, "P1", title="Fresh")

        prop = await container.properties.get_by_id("P1")

        assert prop.id == "P1"
        assert prop.title == "Fresh"
        assert len(container.cache) == 0

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, container: ServiceContainer):
        with pytest.raises(PropertyNotFoundError):
            await container.properties.get_by_id("missing")

    @pytest.mark.asyncio
    async def test_get_by_id_empty_id(self, container: ServiceContainer):
        with pytest.raises(PropertyNotFoundError):
            await container.properties.get_by_id("")

    @pytest.mark.asyncio
    async def test_get_by_id_unparseable(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        PropertyFactory.seed(memory_store, "P1", area=-5)

        with pytest.raises(PropertyNotFoundError):
            await container.properties.get_by_id("P1")

    @pytest.mark.asyncio
    async def test_get_by_id_read_failure(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        memory_store.fail("get")

        with pytest.raises(RemoteReadError):
            await container.properties.get_by_id("P1")


class TestSave:
    """Test upserts."""

    @pytest.mark.asyncio
    async def test_save_assigns_id_and_caches(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        saved = await container.properties.save(PropertyFactory.build())

        assert saved.id
        assert saved.id == saved.id.upper()
        assert memory_store.raw(PROPERTIES_COLLECTION, saved.id) is not None
        assert container.cache.get(saved.id) == saved

    @pytest.mark.asyncio
    async def test_save_then_get_returns_equal_property(self, container: ServiceContainer):
        saved = await container.properties.save(PropertyFactory.build(latitude=41.15, longitude=-8.61))

        fetched = await container.properties.get_by_id(saved.id)

        assert fetched == saved

    @pytest.mark.asyncio
    async def test_resave_does_not_duplicate(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        saved = await container.properties.save(PropertyFactory.build())

        updated = await container.properties.save(saved.model_copy(update={"title": "Renovated"}))

        assert updated.id == saved.id
        assert len(memory_store.collections[PROPERTIES_COLLECTION]) == 1
        assert [p.title for p in container.cache.snapshot()] == ["Renovated"]

    @pytest.mark.asyncio
    async def test_save_keeps_stored_creation_time(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        PropertyFactory.seed(memory_store, "P1", createdAt="2024-01-01T10:00:00+00:00")

        saved = await container.properties.save(PropertyFactory.build(id="P1", title="Changed"))

        assert saved.created_at == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert saved.updated_at > saved.created_at

    @pytest.mark.asyncio
    async def test_save_keeps_later_updated_at(self, container: ServiceContainer):
        future = datetime.now(timezone.utc) + timedelta(days=1)

        saved = await container.properties.save(PropertyFactory.build(updated_at=future))

        assert saved.updated_at == future

    @pytest.mark.asyncio
    async def test_save_geocodes_missing_coordinates(
        self,
        container: ServiceContainer,
        memory_store: InMemoryDocumentStore,
        geocoder: FakeGeocoder
    ):
        saved = await container.properties.save(PropertyFactory.build())

        assert saved.location == geocoder.default
        assert geocoder.calls == ["12 Rua Augusta, Lisbon, Portugal, 1100-048"]
        stored = memory_store.raw(PROPERTIES_COLLECTION, saved.id)
        assert stored["latitude"] == geocoder.default.latitude
        assert stored["longitude"] == geocoder.default.longitude

    @pytest.mark.asyncio
    async def test_save_with_coordinates_skips_geocoder(self, container: ServiceContainer, geocoder: FakeGeocoder):
        saved = await container.properties.save(PropertyFactory.build(latitude=41.15, longitude=-8.61))

        assert saved.location == GeoLocation(latitude=41.15, longitude=-8.61)
        assert geocoder.calls == []

    @pytest.mark.asyncio
    async def test_save_keeps_stored_coordinates(
        self,
        container: ServiceContainer,
        memory_store: InMemoryDocumentStore,
        geocoder: FakeGeocoder
    ):
        PropertyFactory.seed(memory_store, "P1", latitude=41.15, longitude=-8.61)

        saved = await container.properties.save(PropertyFactory.build(id="P1"))

        assert saved.location == GeoLocation(latitude=41.15, longitude=-8.61)
        assert geocoder.calls == []

    @pytest.mark.asyncio
    async def test_geocode_failure_does_not_fail_save(
        self,
        container: ServiceContainer,
        memory_store: InMemoryDocumentStore,
        geocoder: FakeGeocoder
    ):
        geocoder.failures.add("Rua Augusta")

        saved = await container.properties.save(PropertyFactory.build())

        assert saved.has_coordinates is False
        stored = memory_store.raw(PROPERTIES_COLLECTION, saved.id)
        assert stored["latitude"] == 0.0
        assert stored["longitude"] == 0.0

    @pytest.mark.asyncio
    async def test_write_failure_leaves_cache_untouched(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        memory_store.fail("set")

        with pytest.raises(RemoteWriteError):
            await container.properties.save(PropertyFactory.build())

        assert len(container.cache) == 0

    @pytest.mark.asyncio
    async def test_existence_check_failure(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        memory_store.fail("get")

        with pytest.raises(RemoteReadError):
            await container.properties.save(PropertyFactory.build())

        assert memory_store.collections == {}


class TestDelete:
    """Test deletion."""

    @pytest.mark.asyncio
    async def test_delete_removes_managed_blobs_document_and_cache_entry(
        self,
        container: ServiceContainer,
        memory_store: InMemoryDocumentStore,
        blob_store: FakeBlobStore
    ):
        managed = await blob_store.upload("property_images/1.jpg", b"data", "image/jpeg")
        external = "https://elsewhere.test/2.jpg"
        saved = await container.properties.save(PropertyFactory.build(image_urls=[managed, external]))

        await container.properties.delete(saved)

        assert blob_store.deleted == [managed]
        assert memory_store.raw(PROPERTIES_COLLECTION, saved.id) is None
        assert container.cache.get(saved.id) is None

    @pytest.mark.asyncio
    async def test_second_delete_raises_not_found(self, container: ServiceContainer):
        saved = await container.properties.save(PropertyFactory.build())
        await container.properties.delete(saved)

        with pytest.raises(PropertyNotFoundError):
            await container.properties.delete(saved)

    @pytest.mark.asyncio
    async def test_blob_failure_keeps_document(
        self,
        container: ServiceContainer,
        memory_store: InMemoryDocumentStore,
        blob_store: FakeBlobStore
    ):
        managed = await blob_store.upload("property_images/1.jpg", b"data", "image/jpeg")
        saved = await container.properties.save(PropertyFactory.build(image_urls=[managed]))
        blob_store.fail_delete = True

        with pytest.raises(RemoteWriteError):
            await container.properties.delete(saved)

        assert memory_store.raw(PROPERTIES_COLLECTION, saved.id) is not None
        assert container.cache.get(saved.id) is not None


class TestCoordinateUpdates:
    """Test coordinate-only writes."""

    @pytest.mark.asyncio
    async def test_update_coordinates_patches_store_and_cache(
        self,
        container: ServiceContainer,
        memory_store: InMemoryDocumentStore
    ):
        PropertyFactory.seed(memory_store, "P1", title="Keep me")
        await container.properties.fetch_all()
        location = GeoLocation(latitude=37.01, longitude=-7.93)

        written = await container.properties.update_coordinates("P1", location)

        assert written is True
        assert container.cache.get("P1").location == location
        stored = memory_store.raw(PROPERTIES_COLLECTION, "P1")
        assert (stored["latitude"], stored["longitude"]) == (37.01, -7.93)
        assert stored["title"] == "Keep me"

    @pytest.mark.asyncio
    async def test_update_coordinates_only_if_missing_keeps_existing(
        self,
        container: ServiceContainer,
        memory_store: InMemoryDocumentStore
    ):
        PropertyFactory.seed(memory_store, "P1", latitude=41.15, longitude=-8.61)
        await container.properties.fetch_all()

        written = await container.properties.update_coordinates(
            "P1", GeoLocation(latitude=1.0, longitude=1.0), only_if_missing=True
        )

        assert written is False
        stored = memory_store.raw(PROPERTIES_COLLECTION, "P1")
        assert (stored["latitude"], stored["longitude"]) == (41.15, -8.61)
        assert container.cache.get("P1").location == GeoLocation(latitude=41.15, longitude=-8.61)

    @pytest.mark.asyncio
    async def test_update_coordinates_only_if_missing_writes_absent(
        self,
        container: ServiceContainer,
        memory_store: InMemoryDocumentStore
    ):
        PropertyFactory.seed(memory_store, "P1")
        await container.properties.fetch_all()
        location = GeoLocation(latitude=37.01, longitude=-7.93)

        written = await container.properties.update_coordinates("P1", location, only_if_missing=True)

        assert written is True
        assert container.cache.get("P1").location == location

    @pytest.mark.asyncio
    async def test_update_coordinates_of_vanished_document(self, container: ServiceContainer):
        with pytest.raises(PropertyNotFoundError):
            await container.properties.update_coordinates("gone", GeoLocation(latitude=1.0, longitude=1.0))


class TestCatalogViews:
    """Test in-memory views of the cache."""

    @pytest.mark.asyncio
    async def test_filter(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        PropertyFactory.seed(memory_store, "P1", type="Villa", price=900000, city="Faro", bedrooms=4)
        PropertyFactory.seed(memory_store, "P2", type="Apartment", price=200000, city="Lisbon", bedrooms=1)
        PropertyFactory.seed(memory_store, "P3", type="Apartment", price=300000, city="Lisbon", purpose="Rent", bedrooms=2)
        await container.properties.fetch_all()

        by_type = container.properties.filter(PropertyFilters(property_type=PropertyType.APARTMENT))
        by_price = container.properties.filter(PropertyFilters(min_price=250000, max_price=950000))
        by_purpose = container.properties.filter(PropertyFilters(purpose=PropertyPurpose.RENT))
        by_rooms = container.properties.filter(PropertyFilters(min_bedrooms=2, city="lisbon"))

        assert [p.id for p in by_type] == ["P2", "P3"]
        assert [p.id for p in by_price] == ["P1", "P3"]
        assert [p.id for p in by_purpose] == ["P3"]
        assert [p.id for p in by_rooms] == ["P3"]

    @pytest.mark.asyncio
    async def test_filter_free_text_is_case_insensitive(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        PropertyFactory.seed(memory_store, "P1", title="Garden Cottage")
        PropertyFactory.seed(memory_store, "P2", title="City Loft")
        await container.properties.fetch_all()

        result = container.properties.filter(PropertyFilters(search_text="GARDEN"))

        assert [p.id for p in result] == ["P1"]

    def test_filter_rejects_inverted_ranges(self):
        with pytest.raises(ValueError):
            PropertyFilters(min_price=10, max_price=5)

    @pytest.mark.asyncio
    async def test_properties_for_user(self, container: ServiceContainer, memory_store: InMemoryDocumentStore):
        PropertyFactory.seed(memory_store, "P1", userId="alice")
        PropertyFactory.seed(memory_store, "P2", userId="bob")
        await container.properties.fetch_all()

        assert [p.id for p in container.properties.properties_for_user("alice")] == ["P1"]
