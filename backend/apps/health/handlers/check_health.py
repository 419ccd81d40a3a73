"""GET /health - Check health of all services."""

from datetime import UTC, datetime

from fastapi import Depends
from pydantic import BaseModel, Field

from config import get_settings
from db import ProgressStore
from dependencies import get_progress_store, get_reader_session
from services.reader import ReaderSession

# --- Response Schemas ---


class ServiceStatus(BaseModel):
    """Status of an individual service."""

    name: str
    status: str = Field(..., description="healthy, degraded, or unhealthy")
    latency_ms: float | None = Field(None, description="Response time in ms")
    error: str | None = Field(None, description="Error message if unhealthy")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Environment name")
    document_open: bool = Field(..., description="Whether a document is loaded")
    services: list[ServiceStatus] = Field(
        ..., description="Individual service statuses"
    )
    timestamp: datetime


# --- Handler ---


async def check_health(
    progress_store: ProgressStore = Depends(get_progress_store),
    reader: ReaderSession = Depends(get_reader_session),
) -> HealthResponse:
    """Check health of all services."""
    settings = get_settings()
    progress_health = await progress_store.health_check()

    services = [
        ServiceStatus(
            name=f"progress:{settings.progress_backend}",
            status=progress_health["status"],
            latency_ms=progress_health.get("latency_ms"),
            error=progress_health.get("error"),
        ),
    ]

    statuses = [s.status for s in services]
    if all(s == "healthy" for s in statuses):
        overall = "healthy"
    elif any(s == "unhealthy" for s in statuses):
        overall = "unhealthy"
    else:
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version="0.1.0",
        environment=settings.environment,
        document_open=reader.document is not None,
        services=services,
        timestamp=datetime.now(UTC),
    )
