# Data models for the gazetteer dataset and the public API.

from pydantic import BaseModel, ConfigDict, Field, RootModel
from typing import List, Optional
import math

# --- Internal Data Models (ZIP gazetteer) ---

class ZipRecord(BaseModel):
    """One ZIP code centroid from the compressed gazetteer dataset."""
    model_config = ConfigDict(frozen=True)

    zip: str = Field(..., pattern=r"^\d{5}$", description="5-digit US ZIP code.")
    lat: Optional[float] = Field(None, description="Centroid latitude in degrees.")
    lon: Optional[float] = Field(None, description="Centroid longitude in degrees.")

    @property
    def has_coordinates(self) -> bool:
        return (
            self.lat is not None
            and self.lon is not None
            and math.isfinite(self.lat)
            and math.isfinite(self.lon)
        )

class ZipDataset(RootModel[List[ZipRecord]]):
    """Root model for zipcodes.json.gz (a bare JSON array)."""

# --- API Request Models ---

class CoordinateSearchRequest(BaseModel):
    """Request body for the coordinate-based search endpoints."""
    lat: float = Field(..., description="Origin latitude.")
    lon: float = Field(..., description="Origin longitude.")
    radius: float = Field(..., description="Search radius in miles.")

class ZipSearchRequest(BaseModel):
    """Request body for the ZIP-based search endpoints."""
    zip: str = Field(..., description="Origin 5-digit ZIP code.")
    radius: float = Field(..., description="Search radius in miles.")

# --- Public Data Transfer Objects (DTOs) ---

class NearbyZipsResponse(BaseModel):
    zips: List[str] = Field(..., description="ZIP codes inside the radius, nearest first.")

class NearbyPrinter(BaseModel):
    """A printer listing with its distance from the search origin.

    Listing fields owned by the record store pass through untouched.
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(None, description="Record store document id.")
    zip: str = Field(..., description="ZIP code the printer is located in.")
    distance: float = Field(..., description="Distance from the origin in miles.")

class NearbyPrintersResponse(BaseModel):
    printers: List[NearbyPrinter] = Field(..., description="Printers sorted by ascending distance.")

class ZipDistanceResponse(BaseModel):
    distance: float = Field(..., description="Great-circle distance in miles.")
    duration: str = Field(..., description="Rough driving time estimate.")

# --- Error Response Model ---

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="A machine-readable error code.")
    detail: str = Field(..., description="A human-readable explanation.")
    error_id: Optional[str] = Field(None, description="Correlation id for unexpected server errors.")
