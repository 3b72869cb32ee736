"""Location API routes."""
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from db import get_db
from repositories.location_repository import create_location as repo_create_location
from repositories.location_repository import list_recent_locations as repo_list_recent_locations
from schemas.locations import LocationResponse, LocationSaved
from utils.errors import StorageError
from utils.location_validators import validate_location_payload

LOG = logging.getLogger(__name__)

router = APIRouter(tags=["locations"])


@router.post("/send-location", response_model=LocationSaved, status_code=status.HTTP_201_CREATED)
def send_location(
    body: Any = Body(None),
    db: Session = Depends(get_db),
) -> LocationSaved | JSONResponse:
    """Validate and store one latitude/longitude pair."""
    ok, normalized, error_body = validate_location_payload(body)
    if not ok:
        LOG.warning("Rejected location: %s (received %r)", error_body["error"], error_body["received"])
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body)

    try:
        loc = repo_create_location(db, **normalized)
    except StorageError as e:
        LOG.error("Error saving location: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "message": str(e)},
        )

    LOG.info("Location saved: id=%s lat=%s lng=%s", loc.id, loc.latitude, loc.longitude)
    return LocationSaved(location=LocationResponse.model_validate(loc))


@router.get("/locations", response_model=list[LocationResponse])
def list_locations(db: Session = Depends(get_db)) -> list[LocationResponse] | JSONResponse:
    """Return the most recent locations, newest first."""
    try:
        locations = repo_list_recent_locations(db)
    except StorageError as e:
        LOG.error("Error retrieving locations: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Error fetching locations", "message": str(e)},
        )
    LOG.info("Fetched %d locations", len(locations))
    return [LocationResponse.model_validate(loc) for loc in locations]
