"""
Health Check Routes

System health and status endpoints.
"""

from fastapi import APIRouter
from models.schemas import HealthResponse
from config.settings import settings


router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint for monitoring and load balancers.

    Returns:
        HealthResponse with status and version information
    """
    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION
    )


@router.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "Measures how visible a brand is in AI assistant answers",
        "endpoints": {
            "health": "/health",
            "run_scan": "POST /scans",
            "scan_result": "GET /scans/{scan_id}",
            "scan_progress": "GET /scans/{scan_id}/progress",
            "competitors": "GET /brands/{brand_domain}/competitors"
        }
    }
