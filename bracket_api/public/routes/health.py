"""
Health check endpoint. Minimal, stable, no business logic.
"""
from fastapi import APIRouter
from datetime import datetime, timezone
from bracket_api.public.schemas import HealthResponse
from bracket_api.public.settings import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> HealthResponse:
    """
    Simple health check. Returns service status, version, commit.
    """
    return HealthResponse(
        status="ok",
        service=settings.service_name,
        version=settings.api_version,
        commit=settings.build_commit,
        timestamp=datetime.now(timezone.utc),
    )
