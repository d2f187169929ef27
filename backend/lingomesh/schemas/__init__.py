"""
Pydantic schemas for API request/response validation.
"""

from lingomesh.schemas.cache import CacheInvalidationResponse, CacheStatsResponse
from lingomesh.schemas.health import HealthResponse, ProvidersResponse, ReadyResponse
from lingomesh.schemas.translation import (
    BatchTranslationRequest,
    BatchTranslationResponse,
    DetectLanguageRequest,
    DetectLanguageResponse,
    TranslationRequest,
    TranslationResponse,
)

__all__ = [
    "BatchTranslationRequest",
    "BatchTranslationResponse",
    "CacheInvalidationResponse",
    "CacheStatsResponse",
    "DetectLanguageRequest",
    "DetectLanguageResponse",
    "HealthResponse",
    "ProvidersResponse",
    "ReadyResponse",
    "TranslationRequest",
    "TranslationResponse",
]
