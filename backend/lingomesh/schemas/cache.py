"""
Pydantic schemas for translation cache management.
"""

from pydantic import BaseModel, Field


class CacheInvalidationResponse(BaseModel):
    """Response after invalidating cache entries."""

    tenant_id: str = Field(..., description="Tenant whose entries were removed")
    source_lang: str | None = Field(default=None, description="Source language, when scoped to a pair")
    target_lang: str | None = Field(default=None, description="Target language, when scoped to a pair")
    fast_tier_deleted: int = Field(..., description="Redis keys deleted")
    durable_tier_deleted: int = Field(..., description="Database rows deleted")


class CacheStatsResponse(BaseModel):
    """Cache statistics for a tenant."""

    tenant_id: str
    total_entries: int = Field(..., description="Total number of cache entries")
    total_hits: int = Field(..., description="Total cache hits across all entries")
    language_pairs: list[str] = Field(default_factory=list, description="Cached language pairs")
