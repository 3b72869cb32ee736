"""Validate POST /send-location payloads."""
import math
from typing import Any

from models.location import LATITUDE_RANGE, LONGITUDE_RANGE

MISSING_FIELDS = "Missing required fields"
INVALID_LATITUDE = "Invalid latitude value"
INVALID_LONGITUDE = "Invalid longitude value"


def json_safe(value: Any) -> Any:
    """Replace non-finite floats (NaN, Infinity) with None so the value can be rendered as JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: json_safe(v) for k, v in value.items()}
    if isinstance(value, list):
        return [json_safe(v) for v in value]
    return value


def _to_number(value: Any) -> float | None:
    """Numbers and numeric strings become float; anything else (bool included) is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _in_range(value: float | None, bounds: tuple[float, float]) -> bool:
    return value is not None and math.isfinite(value) and bounds[0] <= value <= bounds[1]


def validate_location_payload(body: Any) -> tuple[bool, dict[str, float] | None, dict[str, Any] | None]:
    """
    Validate a location payload. Returns (ok, normalized, error_body).
    First failure wins: missing fields, then latitude, then longitude.
    error_body is {"error": ..., "received": ...} ready to send with HTTP 400.
    """
    payload = body if isinstance(body, dict) else {}
    raw_lat = payload.get("latitude")
    raw_lng = payload.get("longitude")
    if raw_lat is None or raw_lng is None:
        received = json_safe(body) if isinstance(body, (dict, list)) else {}
        return False, None, {"error": MISSING_FIELDS, "received": received}

    latitude = _to_number(raw_lat)
    if not _in_range(latitude, LATITUDE_RANGE):
        return False, None, {"error": INVALID_LATITUDE, "received": json_safe(raw_lat)}

    longitude = _to_number(raw_lng)
    if not _in_range(longitude, LONGITUDE_RANGE):
        return False, None, {"error": INVALID_LONGITUDE, "received": json_safe(raw_lng)}

    return True, {"latitude": latitude, "longitude": longitude}, None
