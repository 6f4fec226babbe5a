"""
Schemas for geocoding results and the bulk repair report.
"""

from pydantic import BaseModel, Field
from typing import List


class GeoLocation(BaseModel):
    """A geocoded coordinate pair."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class RepairReport(BaseModel):
    """Outcome of a bulk location repair run."""

    attempted: int = Field(0, description="Properties that were missing coordinates")
    repaired: List[str] = Field(default_factory=list, description="Ids that received coordinates")
    failed: List[str] = Field(default_factory=list, description="Ids whose geocoding or write failed")
    skipped: List[str] = Field(default_factory=list, description="Ids not attempted because the run was cancelled")
    superseded: List[str] = Field(default_factory=list, description="Ids located by another writer while the run was geocoding them")
    cancelled: bool = False
