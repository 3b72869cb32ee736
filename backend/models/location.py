"""Location model for DB persistence."""
import math
import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Float, String
from sqlalchemy.orm import Mapped, mapped_column, validates
from sqlalchemy.types import TypeDecorator

from models import Base

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend (SQLite drops the offset on storage)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    @staticmethod
    def _as_utc(value: datetime | None) -> datetime | None:
        if value is None:
            return None
        # Naive values are stored and read back as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_bind_param(self, value, dialect):
        return self._as_utc(value)

    def process_result_value(self, value, dialect):
        return self._as_utc(value)


class Location(Base):
    """Location table: id, latitude, longitude, created_at. Rows are never updated."""

    __tablename__ = "location"
    __table_args__ = (
        CheckConstraint("latitude >= -90 AND latitude <= 90", name="ck_location_latitude_range"),
        CheckConstraint("longitude >= -180 AND longitude <= 180", name="ck_location_longitude_range"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=_utcnow,
        index=True,
    )

    @validates("latitude", "longitude")
    def _validate_coordinate(self, key: str, value: float) -> float:
        low, high = LATITUDE_RANGE if key == "latitude" else LONGITUDE_RANGE
        if value is None or not math.isfinite(value) or not low <= value <= high:
            raise ValueError(f"{key} must be a finite number between {low:g} and {high:g}, got {value!r}")
        return float(value)
