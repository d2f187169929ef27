"""
Translation Service

Coordinates the two-tier cache and the provider orchestrator for single and
batch requests.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field

from lingomesh.core.logging import get_logger
from lingomesh.services.orchestrator import TranslationOrchestrator
from lingomesh.services.providers.base import ProviderAttempt
from lingomesh.services.providers.errors import (
    AllProvidersFailedError,
    NoProvidersConfiguredError,
    TranslationError,
)
from lingomesh.services.providers.libretranslate_provider import (
    DetectedLanguage,
    LibreTranslateProvider,
)
from lingomesh.services.translation_cache_service import TranslationCacheService

logger = get_logger(__name__)

NO_PROVIDER = "none"


def normalize_language_code(code: str | None) -> str:
    """
    Reduce a language tag to its lower-case primary subtag.

    ``zh-CN`` -> ``zh``, ``pt_BR`` -> ``pt``, ``EN`` -> ``en``.
    """
    if not code:
        return ""
    return code.strip().replace("_", "-").split("-", 1)[0].lower()


@dataclass(frozen=True)
class TranslationOutcome:
    original_text: str
    translated_text: str
    source_lang: str
    target_lang: str
    cached: bool
    provider: str
    # Fallback trail, only collected on request
    attempts: list[ProviderAttempt] | None = None


@dataclass(frozen=True)
class BatchEntry:
    text: str
    id: str = ""
    source_lang: str = ""
    context: str = ""


@dataclass
class BatchItemOutcome:
    id: str
    original_text: str
    translated_text: str
    source_lang: str
    cached: bool = False
    provider: str = ""
    error: str = ""


@dataclass
class BatchOutcome:
    target_lang: str
    items: list[BatchItemOutcome] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def cached_count(self) -> int:
        return sum(1 for item in self.items if item.cached)


class BatchTooLargeError(TranslationError):
    def __init__(self, size: int, max_size: int):
        super().__init__(f"batch size {size} exceeds maximum of {max_size}")
        self.size = size
        self.max_size = max_size


class TranslationService:
    """
    Cache-first translation for tenants.

    Cache reads and writes are skipped entirely when ``cache`` is None.
    Successful translations are written back to both tiers in the background.
    """

    def __init__(
        self,
        orchestrator: TranslationOrchestrator,
        cache: TranslationCacheService | None = None,
        detector: LibreTranslateProvider | None = None,
        default_source_lang: str = "en",
        max_batch_size: int = 50,
        batch_timeout: float = 30.0,
        request_timeout: float = 30.0,
    ):
        self.orchestrator = orchestrator
        self.cache = cache
        self.detector = detector
        self.default_source_lang = default_source_lang
        self.max_batch_size = max_batch_size
        self.batch_timeout = batch_timeout
        self.request_timeout = request_timeout

    def _source(self, *candidates: str | None) -> str:
        for candidate in candidates:
            normalized = normalize_language_code(candidate)
            if normalized:
                return normalized
        return normalize_language_code(self.default_source_lang)

    async def translate(
        self,
        tenant_id: str,
        text: str,
        source_lang: str | None,
        target_lang: str,
        context: str = "",
        include_attempts: bool = False,
    ) -> TranslationOutcome:
        """
        Translate ``text`` for ``tenant_id``, serving from cache when possible.

        With ``include_attempts`` the outcome carries the provider fallback
        trail, empty when no provider was called.

        Raises:
            NoProvidersConfiguredError: No provider is configured
            AllProvidersFailedError: Every provider failed or was skipped
            TimeoutError: The request exceeded ``request_timeout``
        """
        source = self._source(source_lang)
        target = normalize_language_code(target_lang)

        no_attempts = [] if include_attempts else None

        if source == target:
            return TranslationOutcome(text, text, source, target, False, NO_PROVIDER, no_attempts)

        if self.cache is not None:
            cached = await self.cache.get(tenant_id, source, target, text, context)
            if cached is not None:
                return TranslationOutcome(
                    text, cached.translated_text, source, target, True, cached.provider, no_attempts
                )

        attempts = None
        async with asyncio.timeout(self.request_timeout):
            if include_attempts:
                result, attempts = await self.orchestrator.translate_with_fallback(
                    text, source, target
                )
            else:
                result = await self.orchestrator.translate(text, source, target)

        if self.cache is not None:
            self.cache.store(
                tenant_id, source, target, text, result.translated_text, result.provider, context
            )

        logger.info(
            f"Translated {len(text)} chars {source}->{target} via {result.provider}",
            extra={"provider": result.provider},
        )
        return TranslationOutcome(
            text, result.translated_text, source, target, False, result.provider, attempts
        )

    async def translate_batch(
        self,
        tenant_id: str,
        items: list[BatchEntry],
        source_lang: str | None,
        target_lang: str,
    ) -> BatchOutcome:
        """
        Translate several items with one provider batch call per source language.

        Failed items keep their original text and carry an ``error``. If every
        item fails an AllProvidersFailedError is raised.

        Raises:
            BatchTooLargeError: More than ``max_batch_size`` items
            TimeoutError: The batch exceeded ``batch_timeout``
        """
        if len(items) > self.max_batch_size:
            raise BatchTooLargeError(len(items), self.max_batch_size)

        target = normalize_language_code(target_lang)
        outcome = BatchOutcome(target_lang=target)
        # source language -> indices of items that still need translating
        pending: dict[str, list[int]] = defaultdict(list)

        for index, item in enumerate(items):
            source = self._source(item.source_lang, source_lang)
            entry = BatchItemOutcome(
                id=item.id,
                original_text=item.text,
                translated_text=item.text,
                source_lang=source,
            )
            outcome.items.append(entry)

            if source == target:
                entry.provider = NO_PROVIDER
                continue

            if self.cache is not None:
                cached = await self.cache.get(tenant_id, source, target, item.text, item.context)
                if cached is not None:
                    entry.translated_text = cached.translated_text
                    entry.provider = cached.provider
                    entry.cached = True
                    continue

            pending[source].append(index)

        errors: list[Exception] = []
        async with asyncio.timeout(self.batch_timeout):
            for source, indices in pending.items():
                texts = [items[i].text for i in indices]
                try:
                    results = await self.orchestrator.translate_batch(texts, source, target)
                except (NoProvidersConfiguredError, AllProvidersFailedError) as e:
                    logger.warning(f"Batch group {source}->{target} failed: {e}")
                    errors.append(e)
                    for i in indices:
                        outcome.items[i].error = str(e)
                    continue

                for i, result in zip(indices, results):
                    entry = outcome.items[i]
                    entry.translated_text = result.translated_text
                    entry.provider = result.provider
                    if result.error:
                        entry.error = result.error
                        continue
                    if self.cache is not None:
                        self.cache.store(
                            tenant_id, source, target, items[i].text,
                            result.translated_text, result.provider, items[i].context,
                        )

        if outcome.items and all(item.error for item in outcome.items):
            last = errors[-1]
            if isinstance(last, NoProvidersConfiguredError):
                raise last
            raise AllProvidersFailedError(last.attempted, last.last_error)

        logger.info(
            f"Batch of {outcome.total_count} items {target}: "
            f"{outcome.cached_count} cached, {sum(len(v) for v in pending.values())} translated"
        )
        return outcome

    async def detect_language(self, text: str) -> DetectedLanguage:
        if self.detector is None or not self.detector.is_configured():
            raise NoProvidersConfiguredError()
        return await self.detector.detect_language(text)
