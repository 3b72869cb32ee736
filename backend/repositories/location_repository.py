"""Location repository: create and list most recent."""
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.location import Location
from utils.config import RECENT_LOCATIONS_LIMIT
from utils.errors import StorageError


def create_location(session: Session, latitude: float, longitude: float) -> Location:
    """Create a location, commit, and return it. Id and created_at are assigned here."""
    try:
        loc = Location(latitude=latitude, longitude=longitude)
        session.add(loc)
        session.commit()
        session.refresh(loc)
    except (SQLAlchemyError, ValueError) as e:
        session.rollback()
        raise StorageError(str(e)) from e
    return loc


def list_recent_locations(session: Session, limit: int = RECENT_LOCATIONS_LIMIT) -> list[Location]:
    """Return up to `limit` locations, newest first."""
    try:
        result = session.execute(
            select(Location).order_by(Location.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        raise StorageError(str(e)) from e


def count_locations(session: Session) -> int:
    """Return the number of stored locations."""
    try:
        result = session.execute(select(func.count()).select_from(Location))
    except SQLAlchemyError as e:
        raise StorageError(str(e)) from e
    return result.scalar() or 0
