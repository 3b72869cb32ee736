"""API route handlers."""
from fastapi import APIRouter, Request

from schemas.health import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    """Health check endpoint; reports whether the database handle is connected."""
    database = request.app.state.database
    return HealthResponse(database="connected" if database.connected else "disconnected")
