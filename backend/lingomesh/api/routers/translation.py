"""
Translation endpoints.

Single, batch and language detection requests, scoped to the tenant from the
X-Tenant-ID header.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from lingomesh.api.deps import get_tenant_id, get_translation_service
from lingomesh.core.logging import get_logger
from lingomesh.schemas.translation import (
    BatchTranslationItem,
    BatchTranslationRequest,
    BatchTranslationResponse,
    DetectLanguageRequest,
    DetectLanguageResponse,
    ProviderAttemptInfo,
    TranslationRequest,
    TranslationResponse,
)
from lingomesh.services.providers.base import ProviderAttempt
from lingomesh.services.providers.errors import (
    AllProvidersFailedError,
    NoProvidersConfiguredError,
    ProviderError,
)
from lingomesh.services.translation_service import (
    BatchEntry,
    BatchTooLargeError,
    TranslationService,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Translation"])


def _attempt_info(attempt: ProviderAttempt) -> ProviderAttemptInfo:
    return ProviderAttemptInfo(
        provider=attempt.provider,
        success=attempt.success,
        skipped=attempt.skipped,
        skip_reason=attempt.skip_reason,
        latency_ms=round(attempt.latency * 1000, 3),
        error=attempt.error,
    )


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NoProvidersConfiguredError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "NO_PROVIDERS", "message": str(exc)},
        )
    if isinstance(exc, BatchTooLargeError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "BATCH_TOO_LARGE", "message": str(exc), "max_size": exc.max_size},
        )
    if isinstance(exc, TimeoutError):
        return HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail={"error": "TRANSLATION_TIMEOUT", "message": "Translation timed out"},
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": "TRANSLATION_FAILED", "message": str(exc)},
    )


@router.post(
    "/translate",
    response_model=TranslationResponse,
    response_model_exclude_none=True,
    summary="Translate text",
)
async def translate(
    request: TranslationRequest,
    include_attempts: bool = Query(default=False, description="Return the provider fallback trail"),
    tenant_id: str = Depends(get_tenant_id),
    service: TranslationService = Depends(get_translation_service),
) -> TranslationResponse:
    """
    Translate a single text.

    Served from cache when possible, otherwise from the first provider in
    priority order that succeeds.

    With ``include_attempts=true`` the response lists every provider that was
    skipped or tried; on failure the trail is part of the error detail.
    """
    try:
        outcome = await service.translate(
            tenant_id,
            request.text,
            request.source_lang,
            request.target_lang,
            request.context,
            include_attempts=include_attempts,
        )
    except (NoProvidersConfiguredError, AllProvidersFailedError, TimeoutError) as e:
        logger.error(f"Translation failed: {e}")
        error = _to_http_error(e)
        if include_attempts and isinstance(e, AllProvidersFailedError):
            error.detail["attempts"] = [
                _attempt_info(attempt).model_dump() for attempt in e.attempts
            ]
        raise error from e

    return TranslationResponse(
        original_text=outcome.original_text,
        translated_text=outcome.translated_text,
        source_lang=outcome.source_lang,
        target_lang=outcome.target_lang,
        cached=outcome.cached,
        provider=outcome.provider,
        attempts=(
            None
            if outcome.attempts is None
            else [_attempt_info(attempt) for attempt in outcome.attempts]
        ),
    )


@router.post(
    "/translate/batch",
    response_model=BatchTranslationResponse,
    summary="Translate a batch of texts",
)
async def translate_batch(
    request: BatchTranslationRequest,
    tenant_id: str = Depends(get_tenant_id),
    service: TranslationService = Depends(get_translation_service),
) -> BatchTranslationResponse:
    """
    Translate up to ``max_batch_size`` items.

    Items that fail keep their original text and carry an ``error``. The
    request fails with 502 only if every item failed.
    """
    entries = [
        BatchEntry(text=item.text, id=item.id, source_lang=item.source_lang, context=item.context)
        for item in request.items
    ]
    try:
        outcome = await service.translate_batch(
            tenant_id, entries, request.source_lang, request.target_lang
        )
    except (
        NoProvidersConfiguredError,
        AllProvidersFailedError,
        BatchTooLargeError,
        TimeoutError,
    ) as e:
        logger.error(f"Batch translation failed: {e}")
        raise _to_http_error(e) from e

    return BatchTranslationResponse(
        items=[
            BatchTranslationItem(
                id=item.id,
                original_text=item.original_text,
                translated_text=item.translated_text,
                source_lang=item.source_lang,
                cached=item.cached,
                provider=item.provider,
                error=item.error,
            )
            for item in outcome.items
        ],
        total_count=outcome.total_count,
        cached_count=outcome.cached_count,
        target_lang=outcome.target_lang,
    )


@router.post(
    "/detect",
    response_model=DetectLanguageResponse,
    summary="Detect the language of a text",
)
async def detect_language(
    request: DetectLanguageRequest,
    service: TranslationService = Depends(get_translation_service),
) -> DetectLanguageResponse:
    try:
        detected = await service.detect_language(request.text)
    except (NoProvidersConfiguredError, ProviderError) as e:
        logger.error(f"Language detection failed: {e}")
        raise _to_http_error(e) from e

    return DetectLanguageResponse(language=detected.language, confidence=detected.confidence)
