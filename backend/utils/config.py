"""Configuration from environment (and an optional .env file)."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

LOG = logging.getLogger(__name__)

load_dotenv()

_REPO_ROOT = Path(__file__).resolve().parent.parent.parent


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        LOG.warning("Invalid %s=%r, using default %s", name, raw, default)
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        LOG.warning("Invalid %s=%r, using default %s", name, raw, default)
        return default


HOST = os.environ.get("HOST", "0.0.0.0")
PORT = _int_env("PORT", 3000)

CLIENT_URL = os.environ.get("CLIENT_URL", "http://localhost:5173")

STATIC_DIR = os.environ.get("STATIC_DIR", str(_REPO_ROOT / "public"))

# Seconds to wait for in-flight requests on shutdown before cancelling them.
SHUTDOWN_TIMEOUT = _float_env("SHUTDOWN_TIMEOUT", 10.0)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

RECENT_LOCATIONS_LIMIT = 10

# When TESTING=true, use test DB URL so tests never touch production.
if os.environ.get("TESTING") == "true":
    DB_CONNECTION_STRING = os.environ.get("TESTING_DATABASE_URL", "sqlite:///:memory:")
else:
    DB_CONNECTION_STRING = os.environ.get("DB_CONNECTION_STRING")
