"""
Health check and provider status schemas.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str = Field(description="Overall health status: ok | degraded | down")
    timestamp: str = Field(description="ISO 8601 timestamp")
    services: dict[str, str] = Field(description="Individual service statuses")
    version: str = Field(default="0.1.0", description="Application version")


class ComponentStatus(BaseModel):
    """Individual component health status."""

    name: str = Field(description="Component name")
    status: str = Field(description="Component status: healthy | unhealthy | unknown")
    message: str | None = Field(default=None, description="Status message or error")
    latency_ms: float | None = Field(default=None, description="Response latency in milliseconds")


class ReadyResponse(BaseModel):
    """Readiness check response with component status."""

    ready: bool = Field(description="Overall readiness status")
    components: list[ComponentStatus] = Field(description="Individual component statuses")


class ProviderHealthInfo(BaseModel):
    healthy: bool
    last_checked: datetime
    failure_count: int
    last_error: str = ""
    avg_latency_ms: float = 0.0


class ProviderMetricsInfo(BaseModel):
    total_requests: int
    successful_count: int
    failed_count: int
    total_latency_ms: int
    characters_count: int


class ProviderStatus(BaseModel):
    name: str
    priority: int
    health: ProviderHealthInfo
    metrics: ProviderMetricsInfo


class ProvidersResponse(BaseModel):
    """Configured providers in the order they are tried."""

    providers: list[ProviderStatus]
