"""
FastAPI dependencies shared by the routers.
"""

import re
from dataclasses import dataclass

import sqlalchemy as sa
from fastapi import Header, HTTPException, Request, status

from lingomesh.core.logging import set_tenant_id
from lingomesh.services.background import BackgroundWriter
from lingomesh.services.orchestrator import TranslationOrchestrator
from lingomesh.services.redis_cache import RedisTranslationCache
from lingomesh.services.translation_cache_service import TranslationCacheService
from lingomesh.services.translation_service import TranslationService

DEFAULT_TENANT = "default"

# Fits the tenant_id column and keeps Redis key segments free of separators
TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,50}$")


@dataclass
class ServiceContainer:
    """Long-lived components built once in the application lifespan."""

    orchestrator: TranslationOrchestrator
    translation_service: TranslationService
    cache_service: TranslationCacheService
    writer: BackgroundWriter
    fast_tier: RedisTranslationCache | None
    engine: sa.Engine


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_translation_service(request: Request) -> TranslationService:
    return get_container(request).translation_service


def get_cache_service(request: Request) -> TranslationCacheService:
    return get_container(request).cache_service


def get_orchestrator(request: Request) -> TranslationOrchestrator:
    return get_container(request).orchestrator


def get_tenant_id(x_tenant_id: str | None = Header(default=None)) -> str:
    """
    Tenant from the ``X-Tenant-ID`` header, ``default`` when absent.

    Raises:
        HTTPException: 400 when the header is not a valid tenant ID
    """
    tenant_id = (x_tenant_id or "").strip() or DEFAULT_TENANT
    if not TENANT_ID_PATTERN.match(tenant_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "INVALID_TENANT_ID",
                "message": "X-Tenant-ID must be 1-50 letters, digits, underscores or hyphens",
            },
        )
    set_tenant_id(tenant_id)
    return tenant_id
