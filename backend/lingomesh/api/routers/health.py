"""
Health check endpoints.

Provides basic health check and detailed readiness check.
"""

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from lingomesh.api.deps import ServiceContainer, get_container
from lingomesh.core.db import check_db_health
from lingomesh.core.logging import get_logger
from lingomesh.schemas.health import ComponentStatus, HealthResponse, ReadyResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


async def _redis_health_check(container: ServiceContainer) -> tuple[bool, str]:
    if container.fast_tier is None:
        return False, "Redis cache disabled"
    if await container.fast_tier.ping():
        return True, "Redis connection successful"
    return False, "Redis connection failed"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check(container: ServiceContainer = Depends(get_container)) -> HealthResponse:
    """
    Basic health check.

    Uses the orchestrator's cached provider health, so no provider is called.
    """
    db_status = "ok" if check_db_health(container.engine) else "down"
    redis_healthy, _ = await _redis_health_check(container)
    redis_status = "ok" if redis_healthy else "down"

    provider_health = container.orchestrator.get_provider_health()
    any_provider = any(h.healthy for h in provider_health.values())

    services = {"database": db_status, "redis": redis_status}
    for name, health in provider_health.items():
        services[name] = "ok" if health.healthy else "down"

    if all(s == "ok" for s in services.values()):
        overall_status = "ok"
    elif not any_provider:
        overall_status = "down"
    else:
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(UTC).isoformat(),
        services=services,
        version="0.1.0",
    )


@router.get(
    "/health/ready",
    response_model=ReadyResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
)
async def readiness_check(container: ServiceContainer = Depends(get_container)):
    """
    Detailed readiness check.

    Probes the database, Redis and every configured provider. The service is
    ready when the database is reachable and at least one provider answers;
    Redis is an accelerator and does not gate readiness.

    Returns:
        ReadyResponse: Detailed component health status
    """
    components = []

    start_time = time.time()
    db_healthy = check_db_health(container.engine)
    components.append(
        ComponentStatus(
            name="database",
            status="healthy" if db_healthy else "unhealthy",
            message="Database connection successful"
            if db_healthy
            else "Database connection failed",
            latency_ms=(time.time() - start_time) * 1000,
        )
    )

    start_time = time.time()
    redis_healthy, redis_message = await _redis_health_check(container)
    components.append(
        ComponentStatus(
            name="redis",
            status="healthy" if redis_healthy else "unhealthy",
            message=redis_message,
            latency_ms=(time.time() - start_time) * 1000,
        )
    )

    start_time = time.time()
    provider_results = await container.orchestrator.health_check_all()
    provider_latency = (time.time() - start_time) * 1000
    for name, healthy in provider_results.items():
        components.append(
            ComponentStatus(
                name=name,
                status="healthy" if healthy else "unhealthy",
                message="Provider reachable" if healthy else "Provider not reachable",
                latency_ms=provider_latency,
            )
        )

    ready = db_healthy and any(provider_results.values())
    response = ReadyResponse(ready=ready, components=components)

    if not ready:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(),
        )

    return response
