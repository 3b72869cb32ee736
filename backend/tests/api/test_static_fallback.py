"""API tests: static frontend bundle with index.html fallback."""
import pytest
from fastapi.testclient import TestClient

from application import create_app
from db import Database

pytestmark = pytest.mark.api


@pytest.fixture
def static_dir(tmp_path):
    (tmp_path / "index.html").write_text("<html>app shell</html>")
    (tmp_path / "assets").mkdir()
    (tmp_path / "assets" / "app.js").write_text("console.log('app');")
    return tmp_path


@pytest.fixture
def static_client(static_dir):
    app = create_app(Database("sqlite:///:memory:"), static_dir=str(static_dir))
    return TestClient(app)


def test_existing_file_served(static_client):
    """A path matching a file returns that file."""
    r = static_client.get("/assets/app.js")
    assert r.status_code == 200
    assert r.text == "console.log('app');"


def test_root_serves_index(static_client):
    r = static_client.get("/")
    assert r.status_code == 200
    assert "app shell" in r.text


def test_unknown_path_falls_back_to_index(static_client):
    """Client-side routes get the entry document."""
    r = static_client.get("/map/history")
    assert r.status_code == 200
    assert "app shell" in r.text


def test_get_on_post_route_falls_back_to_index(static_client):
    """GET /send-location is not an API route, so the bundle answers."""
    r = static_client.get("/send-location")
    assert r.status_code == 200
    assert "app shell" in r.text


def test_missing_index_is_404(tmp_path):
    """Without index.html the framework's 404 stands."""
    app = create_app(Database("sqlite:///:memory:"), static_dir=str(tmp_path))
    r = TestClient(app).get("/nothing-here")
    assert r.status_code == 404


def test_missing_static_dir_is_not_mounted(tmp_path):
    """A missing bundle directory leaves only the API routes."""
    app = create_app(Database("sqlite:///:memory:"), static_dir=str(tmp_path / "absent"))
    r = TestClient(app).get("/anything")
    assert r.status_code == 404


@pytest.mark.parametrize("method", ["post", "put", "delete"])
def test_non_get_on_unknown_path_is_404(static_client, method):
    """Only GET reaches the bundle; other methods on unclaimed paths are not found."""
    r = getattr(static_client, method)("/nope")
    assert r.status_code == 404


def test_head_on_unknown_path_falls_back(static_client):
    r = static_client.head("/map/history")
    assert r.status_code == 200
