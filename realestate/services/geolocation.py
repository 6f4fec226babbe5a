"""
Geolocation enrichment.
Geocodes single properties and repairs every catalog entry still missing coordinates.
"""

import asyncio
import logging
from typing import Optional

from realestate.geocoding import Geocoder, geocode_property
from realestate.repositories.property import PropertyRepository
from realestate.schemas.geolocation import RepairReport
from realestate.schemas.property import Property
from realestate.utils.exceptions import GeocodeError, NotFoundError, RemoteWriteError

logger = logging.getLogger(__name__)


class GeolocationService:
    """
    Best-effort coordinates for listings.

    Bulk repair runs one task per property without coordinates, at most
    ``max_concurrency`` of them talking to the geocoder at a time. A failing
    task never affects its siblings.
    """

    def __init__(self, repository: PropertyRepository, geocoder: Geocoder, max_concurrency: int = 4):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.repository = repository
        self.geocoder = geocoder
        self.max_concurrency = max_concurrency

    async def geocode(self, prop: Property) -> Property:
        """
        Return a copy of the property located from its address. Nothing is persisted.

        Raises:
            GeocodeError: If the address cannot be resolved
        """
        return await geocode_property(self.geocoder, prop)

    async def repair_all_missing(self, cancel_event: Optional[asyncio.Event] = None) -> RepairReport:
        """
        Geocode and persist every property whose coordinates are absent.

        Tasks that have not started when ``cancel_event`` is set are skipped;
        tasks already talking to the geocoder complete normally. The catalog is
        re-fetched once after all tasks finish.

        Returns:
            Report of repaired, failed and skipped property ids

        Raises:
            RemoteReadError: If the catalog cannot be fetched
        """
        catalog = await self.repository.fetch_all()
        missing = [prop for prop in catalog if not prop.has_coordinates]
        report = RepairReport(attempted=len(missing))

        if not missing:
            logger.info("No properties missing coordinates")
            return report

        logger.info(f"Repairing coordinates of {len(missing)} properties")
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def repair(prop: Property) -> None:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    report.skipped.append(prop.id)
                    return

                try:
                    located = await self.geocode(prop)
                except GeocodeError as e:
                    logger.warning(f"Could not geocode property {prop.id}: {e.detail}")
                    report.failed.append(prop.id)
                    return

                try:
                    written = await self.repository.update_coordinates(prop.id, located.location, only_if_missing=True)
                except (NotFoundError, RemoteWriteError) as e:
                    logger.warning(f"Could not store coordinates of property {prop.id}: {e.detail}")
                    report.failed.append(prop.id)
                    return

                if not written:
                    report.superseded.append(prop.id)
                    return

                report.repaired.append(prop.id)

        results = await asyncio.gather(*(repair(prop) for prop in missing), return_exceptions=True)
        for prop, result in zip(missing, results):
            if isinstance(result, Exception):
                logger.error(f"Unexpected failure repairing property {prop.id}: {result}")
                report.failed.append(prop.id)

        report.cancelled = bool(cancel_event is not None and cancel_event.is_set())

        await self.repository.fetch_all()
        logger.info(
            f"Location repair finished: {len(report.repaired)} repaired, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped, "
            f"{len(report.superseded)} located elsewhere"
        )
        return report
