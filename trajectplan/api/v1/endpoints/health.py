"""Health check endpoint."""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from trajectplan.core.config import settings
from trajectplan.core.database import db_client

router = APIRouter()


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="healthy, or degraded when a dependency is unavailable")
    version: str = Field(..., description="Running application version")
    service: str = Field(..., description="Service name")
    database: str = Field(..., description="Database connectivity status")
    database_latency_ms: Optional[float] = Field(default=None, description="SELECT 1 round trip")
    completion_provider: str = Field(..., description="Configured completion provider")
    completion_configured: bool = Field(..., description="Whether the provider has an API key")


@router.get(
    "/",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check endpoint",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    """Report database reachability and completion provider configuration."""
    db_health = await db_client.health_check()
    database_ok = db_health["status"] == "healthy"

    return HealthCheckResponse(
        status="healthy" if database_ok and settings.llm.has_api_key else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        database=db_health["status"],
        database_latency_ms=db_health.get("latency_ms"),
        completion_provider=settings.llm_provider,
        completion_configured=settings.llm.has_api_key,
    )
