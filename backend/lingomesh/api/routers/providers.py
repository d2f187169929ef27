"""
Provider status and language catalogue endpoints.
"""

from fastapi import APIRouter, Depends

from lingomesh.api.deps import get_orchestrator
from lingomesh.schemas.health import (
    ProviderHealthInfo,
    ProviderMetricsInfo,
    ProvidersResponse,
    ProviderStatus,
)
from lingomesh.schemas.translation import LanguagesResponse
from lingomesh.services.orchestrator import TranslationOrchestrator

router = APIRouter(prefix="/api/v1", tags=["Providers"])


@router.get(
    "/providers",
    response_model=ProvidersResponse,
    summary="Provider health and metrics",
)
async def list_providers(
    orchestrator: TranslationOrchestrator = Depends(get_orchestrator),
) -> ProvidersResponse:
    """Configured providers in fallback order, with health and usage counters."""
    health = orchestrator.get_provider_health()
    metrics = orchestrator.get_provider_metrics()
    priorities = orchestrator.get_provider_priorities()

    return ProvidersResponse(
        providers=[
            ProviderStatus(
                name=name,
                priority=priorities[name],
                health=ProviderHealthInfo(
                    healthy=health[name].healthy,
                    last_checked=health[name].last_checked,
                    failure_count=health[name].failure_count,
                    last_error=health[name].last_error,
                    avg_latency_ms=health[name].avg_latency_ms,
                ),
                metrics=ProviderMetricsInfo(
                    total_requests=metrics[name].total_requests,
                    successful_count=metrics[name].successful_count,
                    failed_count=metrics[name].failed_count,
                    total_latency_ms=metrics[name].total_latency_ms,
                    characters_count=metrics[name].characters_count,
                ),
            )
            for name in orchestrator.providers
        ]
    )


@router.get(
    "/languages",
    response_model=LanguagesResponse,
    summary="Supported languages",
)
async def list_languages(
    orchestrator: TranslationOrchestrator = Depends(get_orchestrator),
) -> LanguagesResponse:
    """
    Language codes published by the configured providers.

    Providers that validate pairs themselves publish no list and show up
    with an empty one.
    """
    per_provider = await orchestrator.get_supported_languages()
    languages = sorted({code for codes in per_provider.values() for code in codes})
    return LanguagesResponse(languages=languages, count=len(languages), providers=per_provider)
