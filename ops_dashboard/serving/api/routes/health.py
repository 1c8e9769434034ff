"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel
from redis.exceptions import RedisError

from ops_dashboard.config import Settings, get_settings
from ops_dashboard.serving.cache import get_redis

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Health of the service and its optional pieces.

    Checks:
    - Redis connectivity, when caching is enabled
    - Which analytics sources have credentials
    """
    checks: Dict[str, Any] = {}
    overall_status = "healthy"

    redis = get_redis()
    if redis is None:
        checks["redis"] = {"status": "disabled"}
    else:
        try:
            await redis.ping()
            checks["redis"] = {"status": "healthy"}
        except RedisError as e:
            checks["redis"] = {"status": "unhealthy", "error": str(e)}
            overall_status = "degraded"

    checks["ga4"] = {"configured": settings.ga4.is_configured}
    checks["meta"] = {"configured": settings.meta.is_configured}

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """Returns 200 once the upstream clients are initialized."""
    if getattr(request.app.state, "clients", None) is None:
        response.status_code = 503
        return {"status": "not_ready", "reason": "clients_not_initialized"}
    return {"status": "ready"}
