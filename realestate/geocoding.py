"""
Address geocoding.
Resolves a listing's free-text address to coordinates through an external geocoder.
"""

from typing import List, Optional, Protocol
import logging

import httpx

from realestate.config import Settings
from realestate.schemas.geolocation import GeoLocation
from realestate.schemas.property import Property
from realestate.utils.exceptions import GeocodeError

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    """Maps a free-text address to candidate locations, best match first."""

    async def geocode(self, address: str) -> List[GeoLocation]: ...


class NominatimGeocoder:
    """
    Geocoder backed by a Nominatim-compatible HTTP search endpoint.
    Any transport or payload problem is reported as GeocodeError.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "real-estate-listings/1.0",
        max_candidates: int = 1,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.max_candidates = max_candidates

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "NominatimGeocoder":
        return cls(
            client,
            base_url=settings.geocoder_base_url,
            user_agent=settings.geocoder_user_agent,
        )

    async def geocode(self, address: str) -> List[GeoLocation]:
        """
        Query the search endpoint for an address.

        Args:
            address: Free-text address

        Returns:
            Candidate locations, best match first; may be empty

        Raises:
            GeocodeError: If the request fails or the payload is malformed
        """
        try:
            response = await self.client.get(
                f"{self.base_url}/search",
                params={"q": address, "format": "json", "limit": self.max_candidates},
                headers={"User-Agent": self.user_agent},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise GeocodeError(address, f"geocoder request failed: {e}") from e
        except ValueError as e:
            raise GeocodeError(address, "geocoder returned invalid JSON") from e

        if not isinstance(payload, list):
            raise GeocodeError(address, "unexpected geocoder response")

        try:
            return [
                GeoLocation(latitude=float(item["lat"]), longitude=float(item["lon"]))
                for item in payload
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeError(address, "geocoder candidate without coordinates") from e


async def geocode_property(geocoder: Geocoder, prop: Property) -> Property:
    """
    Geocode a property's address.

    The address string joins address, city, country and zip code in that order.
    The first candidate wins.

    Args:
        geocoder: Geocoder to query
        prop: Property to locate

    Returns:
        Copy of the property with latitude/longitude set

    Raises:
        GeocodeError: If the geocoder fails or returns no candidates
    """
    address = prop.full_address
    if not address:
        raise GeocodeError(address, "address is empty")

    try:
        candidates = await geocoder.geocode(address)
    except GeocodeError:
        raise
    except Exception as e:
        raise GeocodeError(address, str(e)) from e

    first: Optional[GeoLocation] = candidates[0] if candidates else None
    if first is None:
        raise GeocodeError(address, "no candidates")

    logger.debug(f"Geocoded '{address}' to ({first.latitude}, {first.longitude})")
    return prop.with_location(first)
