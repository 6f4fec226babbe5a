"""
Favorite snapshot schema.
A favorite is stored under the user's namespace with a denormalized copy of the listing.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime

from realestate.schemas.property import Property, PropertyPurpose, PropertyType


class Favorite(BaseModel):
    """Denormalized favorite entry for fast listing."""

    property_id: str
    title: str = ""
    price: float = 0.0
    thumbnail_url: str = ""
    address: str = ""
    city: str = ""
    country: str = ""
    type: PropertyType = PropertyType.HOUSE
    purpose: PropertyPurpose = PropertyPurpose.BUY
    added_at: Optional[datetime] = Field(None, description="Server-assigned add timestamp")

    @classmethod
    def from_property(cls, prop: Property) -> "Favorite":
        return cls(
            property_id=prop.id,
            title=prop.title,
            price=prop.price,
            thumbnail_url=prop.thumbnail_url,
            address=prop.address,
            city=prop.city,
            country=prop.country,
            type=prop.type,
            purpose=prop.purpose,
        )

    def to_document(self) -> Dict[str, Any]:
        """Field map without the timestamp, which the store assigns."""
        return {
            "propertyId": self.property_id,
            "title": self.title,
            "price": self.price,
            "thumbnailURL": self.thumbnail_url,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "type": self.type.value,
            "purpose": self.purpose.value,
        }

    @classmethod
    def from_document(cls, document_id: str, data: Dict[str, Any]) -> "Favorite":
        return cls(
            property_id=data.get("propertyId") or document_id,
            title=data.get("title", ""),
            price=data.get("price", 0.0),
            thumbnail_url=data.get("thumbnailURL", ""),
            address=data.get("address", ""),
            city=data.get("city", ""),
            country=data.get("country", ""),
            type=data.get("type", PropertyType.HOUSE),
            purpose=data.get("purpose", PropertyPurpose.BUY),
            added_at=data.get("addedAt"),
        )
