# Schemas package
from .health import HealthResponse
from .locations import LocationResponse, LocationSaved

__all__ = [
    "HealthResponse",
    "LocationResponse",
    "LocationSaved",
]
