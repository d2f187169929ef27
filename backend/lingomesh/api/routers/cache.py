"""
Translation cache management endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from lingomesh.api.deps import get_cache_service, get_tenant_id
from lingomesh.core.logging import get_logger
from lingomesh.schemas.cache import CacheInvalidationResponse, CacheStatsResponse
from lingomesh.services.translation_cache_service import TranslationCacheService
from lingomesh.services.translation_service import normalize_language_code

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/cache", tags=["Cache"])


@router.get(
    "/stats",
    response_model=CacheStatsResponse,
    summary="Get cache statistics",
)
async def get_cache_stats(
    tenant_id: str = Depends(get_tenant_id),
    cache_service: TranslationCacheService = Depends(get_cache_service),
):
    """
    Get durable cache statistics for the tenant.

    Returns:
        Total entries, total hits and cached language pairs
    """
    try:
        stats = await cache_service.get_stats(tenant_id)
    except Exception as e:
        logger.error(f"Failed to get cache stats: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get cache statistics: {str(e)}",
        )
    return CacheStatsResponse(tenant_id=tenant_id, **stats)


@router.delete(
    "",
    response_model=CacheInvalidationResponse,
    summary="Invalidate the tenant's cache",
)
async def invalidate_tenant_cache(
    tenant_id: str = Depends(get_tenant_id),
    cache_service: TranslationCacheService = Depends(get_cache_service),
):
    try:
        deleted = await cache_service.invalidate_tenant(tenant_id)
    except Exception as e:
        logger.error(f"Failed to invalidate cache for tenant {tenant_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to invalidate cache: {str(e)}",
        )

    return CacheInvalidationResponse(
        tenant_id=tenant_id,
        fast_tier_deleted=deleted["fast_tier"],
        durable_tier_deleted=deleted["durable_tier"],
    )


@router.delete(
    "/{source_lang}/{target_lang}",
    response_model=CacheInvalidationResponse,
    summary="Invalidate the tenant's cache for one language pair",
)
async def invalidate_language_pair_cache(
    source_lang: str,
    target_lang: str,
    tenant_id: str = Depends(get_tenant_id),
    cache_service: TranslationCacheService = Depends(get_cache_service),
):
    source = normalize_language_code(source_lang)
    target = normalize_language_code(target_lang)
    try:
        deleted = await cache_service.invalidate_language_pair(tenant_id, source, target)
    except Exception as e:
        logger.error(f"Failed to invalidate cache for {source}->{target}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to invalidate cache: {str(e)}",
        )

    return CacheInvalidationResponse(
        tenant_id=tenant_id,
        source_lang=source,
        target_lang=target,
        fast_tier_deleted=deleted["fast_tier"],
        durable_tier_deleted=deleted["durable_tier"],
    )
