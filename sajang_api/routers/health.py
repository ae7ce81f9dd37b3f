"""Health check endpoints."""

import logging

from fastapi import APIRouter, Response, status
from sqlalchemy import text

from sajang_api import __version__
from sajang_api.config import env
from sajang_api.db.session import get_engine
from sajang_api.schemas import HealthResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def check_database() -> str:
    """Check database connectivity.

    Returns:
        str: "up" if healthy, error message otherwise
    """
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return "up"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return f"down: {str(e)[:50]}"


def check_firecrawl() -> str:
    """Crawl provider is configured (no network call)."""
    return "configured" if env.get_firecrawl_api_key() else "down: FIRECRAWL_API_KEY not set"


def _services() -> dict[str, str]:
    return {
        "api": "up",
        "database": check_database(),
        "firecrawl": check_firecrawl(),
    }


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Always returns 200 OK (use /readyz for dependency checks).
    """
    return HealthResponse(status="healthy", version=__version__, services=_services())


@router.get("/readyz", response_model=HealthResponse)
async def readiness_check(response: Response) -> HealthResponse:
    """
    Readiness check endpoint.

    Returns 503 if any dependency is down.
    """
    services = _services()

    if any(svc_status.startswith("down") for svc_status in services.values()):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", version=__version__, services=services)

    return HealthResponse(status="ready", version=__version__, services=services)
