# Set test environment before any application or db imports.
import os

os.environ["TESTING"] = "true"
os.environ["TESTING_DATABASE_URL"] = "sqlite:///:memory:"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.orm import Session

from db import get_db
from main import app


@pytest.fixture(scope="session")
def engine():
    """One in-memory engine per test run; connect (creates tables) once.

    pysqlite never emits BEGIN on its own, so SAVEPOINTs would not nest inside the
    outer test transaction. Take over transaction control so rollback really discards.
    """
    database = app.state.database
    eng = database.engine

    @event.listens_for(eng, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    database.connect()
    return eng


@pytest.fixture
def db_session(engine):
    """Function-scoped session; each test runs in a transaction that is rolled back."""
    connection = engine.connect()
    trans = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")
    try:
        yield session
    finally:
        session.close()
        if trans.is_active:
            trans.rollback()
        connection.close()


def _override_get_db(session):
    """Return a generator that yields the given session (for dependency override)."""
    def override():
        yield session
    return override


@pytest.fixture
def client(db_session):
    """API test client; overrides get_db to use the test db_session, cleared on teardown.

    Not entered as a context manager: the app's shutdown handler would close the
    shared in-memory database, which the engine fixture already connected.
    """
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
