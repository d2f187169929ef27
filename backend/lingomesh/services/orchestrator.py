"""
Translation Orchestrator.

Tries configured providers in priority order, skipping unhealthy ones and
ones that cannot handle the language pair, and returns the first success.
Owns the per-provider health and metrics records.
"""

import asyncio
import dataclasses
import threading
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TypeVar

from lingomesh.core.logging import get_logger
from lingomesh.services.providers.base import (
    BaseTranslationProvider,
    Clock,
    ProviderAttempt,
    ProviderHealth,
    ProviderMetrics,
    TranslationResult,
    backoff_seconds,
)
from lingomesh.services.providers.errors import (
    AllProvidersFailedError,
    NoProvidersConfiguredError,
    ThrottledError,
    UnsupportedLanguagePairError,
)

logger = get_logger(__name__)

T = TypeVar("T")

# Consecutive hard failures before the orchestrator stops selecting a provider
FAILURE_THRESHOLD = 3

SKIP_UNHEALTHY = "unhealthy"
SKIP_UNSUPPORTED = "unsupported_language_pair"


class TranslationOrchestrator:
    """
    Priority/fallback chain over translation providers.

    Only configured providers are kept, sorted by ascending priority; the
    order never changes afterwards. A provider is excluded after
    ``FAILURE_THRESHOLD`` consecutive failures and becomes eligible again
    once its backoff window since the last recorded attempt has passed.

    Rate-limit and model-loading errors, and explicit unsupported-pair
    rejections, count as failed attempts in metrics but leave the
    consecutive-failure counter alone.
    """

    def __init__(self, providers: list[BaseTranslationProvider], clock: Clock = time.time):
        self._clock = clock
        configured = [p for p in providers if p.is_configured()]
        self._providers = sorted(configured, key=lambda p: p.priority)

        self._health_lock = threading.Lock()
        self._metrics_lock = threading.Lock()
        now = self._now()
        self._health: dict[str, ProviderHealth] = {
            p.provider_name: ProviderHealth(provider=p.provider_name, last_checked=now)
            for p in self._providers
        }
        self._metrics: dict[str, ProviderMetrics] = {
            p.provider_name: ProviderMetrics(provider=p.provider_name) for p in self._providers
        }

        if self._providers:
            logger.info(
                f"Translation orchestrator initialized with providers: "
                f"{', '.join(self.providers)}"
            )
        else:
            logger.warning("Translation orchestrator initialized without configured providers")

    @property
    def providers(self) -> list[str]:
        """Provider names in the order they are tried."""
        return [p.provider_name for p in self._providers]

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    async def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        """
        Translate ``text`` with the first provider that succeeds.

        Raises:
            NoProvidersConfiguredError: No provider is configured
            AllProvidersFailedError: Every eligible provider failed or was skipped
        """
        return await self._run_chain(
            "translate",
            source_lang,
            target_lang,
            len(text),
            lambda provider: provider.translate(text, source_lang, target_lang),
        )

    async def translate_batch(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[TranslationResult]:
        """
        Translate ``texts`` with one batch call per provider tried.

        A provider whose batch call fails is abandoned for the whole batch;
        items are not re-routed individually.
        """
        if not self._providers:
            raise NoProvidersConfiguredError()
        if not texts:
            return []

        return await self._run_chain(
            "translate_batch",
            source_lang,
            target_lang,
            sum(len(t) for t in texts),
            lambda provider: provider.translate_batch(texts, source_lang, target_lang),
        )

    async def translate_with_fallback(
        self, text: str, source_lang: str, target_lang: str
    ) -> tuple[TranslationResult, list[ProviderAttempt]]:
        """
        Same as ``translate`` but also returns the per-provider audit trail.

        On exhaustion the raised AllProvidersFailedError carries the trail in
        its ``attempts`` attribute.
        """
        attempts: list[ProviderAttempt] = []
        result = await self._run_chain(
            "translate",
            source_lang,
            target_lang,
            len(text),
            lambda provider: provider.translate(text, source_lang, target_lang),
            attempts,
        )
        return result, attempts

    async def _run_chain(
        self,
        operation: str,
        source_lang: str,
        target_lang: str,
        characters: int,
        call: Callable[[BaseTranslationProvider], Awaitable[T]],
        attempts: list[ProviderAttempt] | None = None,
    ) -> T:
        if not self._providers:
            raise NoProvidersConfiguredError()

        attempted: list[str] = []
        last_error: Exception | None = None

        for provider in self._providers:
            name = provider.provider_name
            skip_reason = await self._skip_reason(provider, source_lang, target_lang)
            if skip_reason:
                logger.debug(f"Skipping {name} for {source_lang}->{target_lang}: {skip_reason}")
                if attempts is not None:
                    attempts.append(
                        ProviderAttempt(
                            provider=name,
                            started=self._now(),
                            skipped=True,
                            skip_reason=skip_reason,
                        )
                    )
                continue

            attempted.append(name)
            started = self._now()
            start = time.perf_counter()
            try:
                result = await call(provider)
            except asyncio.CancelledError:
                logger.info(f"{operation} cancelled during {name} attempt, not falling back")
                raise
            except Exception as e:
                latency = time.perf_counter() - start
                self._record_failure(name, e, latency)
                last_error = e
                if attempts is not None:
                    attempts.append(
                        ProviderAttempt(
                            provider=name,
                            started=started,
                            latency=latency,
                            error=str(e),
                        )
                    )
                continue

            latency = time.perf_counter() - start
            self._record_success(name, latency, characters)
            if attempts is not None:
                attempts.append(
                    ProviderAttempt(provider=name, started=started, latency=latency, success=True)
                )
            logger.debug(
                f"{operation} {source_lang}->{target_lang} served by {name} "
                f"in {latency * 1000:.0f}ms"
            )
            return result

        logger.error(
            f"All translation providers failed for {source_lang}->{target_lang}",
            extra={"attempted": attempted, "last_error": str(last_error) if last_error else None},
        )
        raise AllProvidersFailedError(attempted, last_error, attempts)

    async def _skip_reason(
        self, provider: BaseTranslationProvider, source_lang: str, target_lang: str
    ) -> str | None:
        if not self._is_selectable(provider) or not await provider.is_healthy():
            return SKIP_UNHEALTHY
        if not await provider.supports_language_pair(source_lang, target_lang):
            return SKIP_UNSUPPORTED
        return None

    def _is_selectable(self, provider: BaseTranslationProvider) -> bool:
        with self._health_lock:
            health = self._health[provider.provider_name]
            if health.healthy:
                return True
            window = backoff_seconds(
                health.failure_count, provider.backoff_base, provider.backoff_cap
            )
            return self._clock() - health.last_checked.timestamp() >= window

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _record_success(self, name: str, latency: float, characters: int) -> None:
        latency_ms = int(latency * 1000)
        with self._metrics_lock:
            metrics = self._metrics[name]
            metrics.total_requests += 1
            metrics.successful_count += 1
            metrics.total_latency_ms += latency_ms
            metrics.characters_count += characters
            avg_latency_ms = metrics.total_latency_ms / metrics.successful_count

        with self._health_lock:
            health = self._health[name]
            recovered = not health.healthy
            health.healthy = True
            health.failure_count = 0
            health.last_checked = self._now()
            health.avg_latency_ms = avg_latency_ms

        if recovered:
            logger.info(f"Provider {name} recovered")

    def _record_failure(self, name: str, error: Exception, latency: float) -> None:
        latency_ms = int(latency * 1000)
        with self._metrics_lock:
            metrics = self._metrics[name]
            metrics.total_requests += 1
            metrics.failed_count += 1
            metrics.total_latency_ms += latency_ms

        soft = isinstance(error, (ThrottledError, UnsupportedLanguagePairError))
        became_unhealthy = False
        with self._health_lock:
            health = self._health[name]
            health.last_checked = self._now()
            health.last_error = str(error)
            if not soft:
                health.failure_count += 1
                if health.healthy and health.failure_count >= FAILURE_THRESHOLD:
                    health.healthy = False
                    became_unhealthy = True
            failure_count = health.failure_count

        if isinstance(error, ThrottledError):
            logger.warning(f"Provider {name} throttled, trying next provider: {error}")
        else:
            logger.warning(
                f"Provider {name} failed, trying next provider: {error}",
                extra={"provider": name, "failure_count": failure_count},
            )
        if became_unhealthy:
            logger.error(f"Provider {name} marked unhealthy after {failure_count} failures")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_provider_health(self) -> dict[str, ProviderHealth]:
        """Snapshot of the health records."""
        with self._health_lock:
            return {name: dataclasses.replace(h) for name, h in self._health.items()}

    def get_provider_metrics(self) -> dict[str, ProviderMetrics]:
        """Snapshot of the metrics counters."""
        with self._metrics_lock:
            return {name: dataclasses.replace(m) for name, m in self._metrics.items()}

    def get_provider_priorities(self) -> dict[str, int]:
        return {p.provider_name: p.priority for p in self._providers}

    async def supports_language_pair(self, source_lang: str, target_lang: str) -> bool:
        return await self.best_provider_for_pair(source_lang, target_lang) is not None

    async def best_provider_for_pair(self, source_lang: str, target_lang: str) -> str | None:
        """Name of the provider that would be tried first for the pair."""
        for provider in self._providers:
            if await self._skip_reason(provider, source_lang, target_lang) is None:
                return provider.provider_name
        return None

    async def refresh_health(self) -> dict[str, bool]:
        """Re-read every provider's self-reported health into the health records."""
        results = {}
        for provider in self._providers:
            healthy = await provider.is_healthy()
            with self._health_lock:
                health = self._health[provider.provider_name]
                health.healthy = healthy
                health.last_checked = self._now()
            results[provider.provider_name] = healthy
        return results

    async def health_check_all(self) -> dict[str, bool]:
        """Live probe of every configured provider."""
        results = {}
        for provider in self._providers:
            try:
                results[provider.provider_name] = await provider.health_check()
            except Exception as e:
                logger.error(f"Health check failed for {provider.provider_name}: {e}")
                results[provider.provider_name] = False
        return results

    async def get_supported_languages(self) -> dict[str, list[str]]:
        """Language codes published by each configured provider, in priority order."""
        results = {}
        for provider in self._providers:
            try:
                results[provider.provider_name] = await provider.get_supported_languages()
            except Exception as e:
                logger.error(f"Language listing failed for {provider.provider_name}: {e}")
                results[provider.provider_name] = []
        return results

    async def aclose(self) -> None:
        for provider in self._providers:
            await provider.aclose()
