"""Database handle: engine, sessions, connect/close lifecycle and connectivity events."""
from collections import defaultdict
from collections.abc import Callable, Generator
import logging
import os
from typing import Any

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base
import models.location  # noqa: F401 - register with Base
from utils import config
from utils.errors import ConfigurationError, FatalStartupError

LOG = logging.getLogger(__name__)

EVENTS = ("connected", "error", "disconnected")

Listener = Callable[[Any], None]


def _build_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine_kw: dict[str, Any] = {"connect_args": connect_args, "echo": False}
    # In-memory SQLite: use one connection so all sessions share the same DB.
    if url.startswith("sqlite") and ":memory:" in url:
        engine_kw["poolclass"] = StaticPool
    engine = create_engine(url, **engine_kw)

    if url.startswith("sqlite"):

        @event.listens_for(engine, "connect")
        def _sqlite_fk(dbapi_conn, connection_record):
            dbapi_conn.execute("PRAGMA foreign_keys=ON")

    return engine


class Database:
    """One storage handle per process, shared by every request through app.state."""

    def __init__(self, url: str) -> None:
        self.engine = _build_engine(url)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._connected = False
        self._closed = False
        event.listen(self.engine, "handle_error", self._on_engine_error)

    @classmethod
    def from_config(cls) -> "Database":
        """Build from utils.config; DB_CONNECTION_STRING is required."""
        url = config.DB_CONNECTION_STRING
        if not url:
            raise ConfigurationError("DB_CONNECTION_STRING is not set")
        # Runtime safety: when TESTING=true, never use production DB.
        if os.environ.get("TESTING") == "true" and ":memory:" not in url and "test" not in url.lower().split("?")[0]:
            raise RuntimeError(
                "Tests must not run against production. Set TESTING_DATABASE_URL to sqlite:///:memory: "
                "(or another test URL containing :memory: or 'test')."
            )
        return cls(url)

    @property
    def url(self) -> str:
        """Connection URL with the password masked."""
        return self.engine.url.render_as_string(hide_password=True)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, event_name: str, callback: Listener) -> None:
        """Register callback for 'connected', 'error' or 'disconnected'."""
        if event_name not in EVENTS:
            raise ValueError(f"Unknown database event {event_name!r}; expected one of {EVENTS}")
        self._listeners[event_name].append(callback)

    def _emit(self, event_name: str, payload: Any = None) -> None:
        for callback in list(self._listeners[event_name]):
            callback(payload)

    def _on_engine_error(self, context) -> None:
        self._emit("error", context.original_exception)
        if context.is_disconnect:
            self._emit("disconnected", context.original_exception)

    def connect(self) -> None:
        """Ping the database and create tables/indexes if missing. No-op once connected."""
        if self._connected:
            return
        if self._closed:
            raise FatalStartupError("Database handle has already been closed")
        try:
            with self.engine.begin() as conn:
                conn.execute(text("SELECT 1"))
                Base.metadata.create_all(conn)
        except SQLAlchemyError as e:
            raise FatalStartupError(f"Could not connect to database: {e}") from e
        self._connected = True
        self._emit("connected", self.url)

    def session(self) -> Session:
        return self.session_factory()

    def close(self) -> None:
        """Release pooled connections. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._connected = False
        self.engine.dispose()
        self._emit("disconnected", None)


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency: yield a DB session from the app's Database and close after request."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
