"""Pydantic schemas for location API."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LocationResponse(BaseModel):
    """Stored location in API responses (createdAt on the wire)."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    latitude: float
    longitude: float
    created_at: datetime = Field(alias="createdAt")


class LocationSaved(BaseModel):
    """Response for a successful POST /send-location."""

    message: str = "Location saved successfully"
    location: LocationResponse
