"""App factory: FastAPI app with location API, CORS, error handlers and static frontend."""
import logging
import os
from collections.abc import Callable

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.locations import router as locations_router
from api.routes import router
from db import Database
from utils import config
from utils.static_files import SPAStaticFiles

LOG = logging.getLogger(__name__)


def create_app(
    database: Database,
    client_url: str = config.CLIENT_URL,
    static_dir: str | None = config.STATIC_DIR,
    fatal_error_hook: Callable[[BaseException], None] | None = None,
) -> FastAPI:
    """Build the app around one shared Database handle."""
    app = FastAPI(
        title="Location Tracker",
        description="Stores latitude/longitude pairs and returns the most recent ones",
        version="0.1.0",
    )
    app.state.database = database
    app.state.fatal_error_hook = fatal_error_hook

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[client_url],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_json_handler(request: Request, exc: RequestValidationError):
        if any(err.get("type") == "json_invalid" for err in exc.errors()):
            LOG.error("Invalid JSON received on %s", request.url.path)
            return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid JSON format"})
        return await request_validation_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        LOG.critical("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        hook = request.app.state.fatal_error_hook
        if hook is not None:
            hook(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    @app.on_event("startup")
    def startup() -> None:
        """Connect to the database (no-op when the process manager already did)."""
        app.state.database.connect()

    @app.on_event("shutdown")
    def shutdown() -> None:
        """Close the database after uvicorn has drained in-flight requests."""
        app.state.database.close()

    app.include_router(router)
    app.include_router(locations_router)

    # Static bundle last so API routes are never shadowed.
    if static_dir and os.path.isdir(static_dir):
        app.mount("/", SPAStaticFiles(directory=static_dir, html=True), name="frontend")
    else:
        LOG.warning("Static directory %s not found; frontend is not served", static_dir)

    return app
