"""
Pydantic schemas for property listings and search filters.
Properties are immutable values; changes produce copies.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
import enum

from realestate.schemas.geolocation import GeoLocation
from realestate.utils.validators import clean_text, is_valid_whatsapp, join_address


class PropertyType(str, enum.Enum):
    """Property category."""
    HOUSE = "House"
    APARTMENT = "Apartment"
    VILLA = "Villa"
    LAND = "Land"


class PropertyPurpose(str, enum.Enum):
    """What the listing is offered for."""
    BUY = "Buy"
    RENT = "Rent"
    SEASONAL = "Seasonal"


class Property(BaseModel):
    """
    A real-estate listing.

    ``latitude``/``longitude`` are both None until the address is geocoded.
    ``is_favorite`` is derived from the favorites overlay and never persisted.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        "",
        max_length=128,
        description="Listing id, assigned on first save when empty"
    )

    user_id: str = Field("", description="Owner of the listing")

    title: str = Field(..., max_length=255, description="Listing title", examples=["Luxury Villa with Ocean View"])
    description: str = Field(..., max_length=5000, description="Detailed description")

    address: str = Field(..., max_length=255, description="Street address", examples=["123 Ocean Drive"])
    city: str = Field("", max_length=120)
    zip_code: str = Field("", max_length=20)
    country: str = Field("", max_length=120)

    type: PropertyType = Field(PropertyType.HOUSE, description="Property category")
    purpose: PropertyPurpose = Field(PropertyPurpose.BUY, description="Buy, rent or seasonal")

    price: float = Field(..., ge=0, description="Price in the reference currency", examples=[1250000])
    bedrooms: int = Field(..., ge=0, description="Number of bedrooms")
    bathrooms: int = Field(..., ge=0, description="Number of bathrooms")
    area: float = Field(..., gt=0, description="Area in square meters")

    image_urls: List[str] = Field(default_factory=list, description="Image URLs in display order")

    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    whatsapp: str = Field("", description="WhatsApp contact number", examples=["+1234567890"])

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    is_favorite: bool = False

    @field_validator("title", "description", "address", "city", "zip_code", "country", "whatsapp")
    @classmethod
    def strip_text(cls, v):
        return clean_text(v)

    @field_validator("whatsapp")
    @classmethod
    def validate_whatsapp(cls, v):
        """Validate the WhatsApp contact number."""
        if not is_valid_whatsapp(v):
            raise ValueError("WhatsApp number must look like +1234567890")
        return v

    @model_validator(mode="after")
    def validate_coordinates(self):
        """Both coordinates are provided together, or both are None."""
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Both latitude and longitude must be provided together, or both must be None")
        return self

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def location(self) -> Optional[GeoLocation]:
        """Coordinates as a GeoLocation, or None when not geocoded."""
        if not self.has_coordinates:
            return None
        return GeoLocation(latitude=self.latitude, longitude=self.longitude)

    @property
    def full_address(self) -> str:
        """Address string sent to the geocoder: address, city, country, zip code."""
        return join_address([self.address, self.city, self.country, self.zip_code])

    @property
    def thumbnail_url(self) -> str:
        return self.image_urls[0] if self.image_urls else ""

    def with_location(self, location: GeoLocation) -> "Property":
        """Return a copy carrying the given coordinates."""
        return self.model_copy(update={"latitude": location.latitude, "longitude": location.longitude})

    def with_favorite(self, is_favorite: bool) -> "Property":
        """Return a copy with the derived favorite flag set."""
        if self.is_favorite == is_favorite:
            return self
        return self.model_copy(update={"is_favorite": is_favorite})


class PropertyFilters(BaseModel):
    """Filters applied to the cached catalog."""

    search_text: Optional[str] = Field(None, description="Matches title, description, address and city")
    property_type: Optional[PropertyType] = None
    purpose: Optional[PropertyPurpose] = None
    city: Optional[str] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    min_bedrooms: Optional[int] = Field(None, ge=0)
    min_bathrooms: Optional[int] = Field(None, ge=0)
    min_area: Optional[float] = Field(None, ge=0)
    max_area: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def validate_ranges(self):
        """Validate that min values are not greater than max values."""
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price cannot be greater than max_price")
        if self.min_area is not None and self.max_area is not None and self.min_area > self.max_area:
            raise ValueError("min_area cannot be greater than max_area")
        return self

    def matches(self, prop: Property) -> bool:
        if self.property_type is not None and prop.type != self.property_type:
            return False
        if self.purpose is not None and prop.purpose != self.purpose:
            return False
        if self.city and prop.city.lower() != self.city.strip().lower():
            return False
        if self.min_price is not None and prop.price < self.min_price:
            return False
        if self.max_price is not None and prop.price > self.max_price:
            return False
        if self.min_bedrooms is not None and prop.bedrooms < self.min_bedrooms:
            return False
        if self.min_bathrooms is not None and prop.bathrooms < self.min_bathrooms:
            return False
        if self.min_area is not None and prop.area < self.min_area:
            return False
        if self.max_area is not None and prop.area > self.max_area:
            return False
        if self.search_text:
            term = self.search_text.strip().lower()
            haystack = " ".join([prop.title, prop.description, prop.address, prop.city]).lower()
            if term not in haystack:
                return False
        return True
