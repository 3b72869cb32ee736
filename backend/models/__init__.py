"""SQLAlchemy declarative base for the location store."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all DB models; Base.metadata drives schema creation on connect."""
    pass
