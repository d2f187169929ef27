"""
Base Translation Provider Interface.

Defines the contract every translation backend implements, the shared result
and bookkeeping records, and the self-reported health state with lazy backoff.
"""

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import httpx

from lingomesh.core.logging import get_logger
from lingomesh.services.providers.errors import (
    ProviderResponseError,
    ProviderTransportError,
)

logger = get_logger(__name__)

Clock = Callable[[], float]


class ProviderName(str, Enum):
    LIBRETRANSLATE = "libretranslate"
    BERGAMOT = "bergamot"
    HUGGINGFACE = "huggingface"
    GOOGLE = "google"


@dataclass(frozen=True)
class TranslationResult:
    """
    Outcome of one translation attempt.

    A fan-out batch sets ``error`` on items it could not translate; those
    carry the original text.
    """

    translated_text: str
    source_lang: str
    target_lang: str
    provider: str
    latency: float = 0.0  # seconds
    from_cache: bool = False
    error: str = ""


@dataclass
class ProviderHealth:
    """Orchestrator view of a provider's health."""

    provider: str
    healthy: bool = True
    last_checked: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    failure_count: int = 0
    last_error: str = ""
    avg_latency_ms: float = 0.0


@dataclass
class ProviderMetrics:
    """Monotonic per-provider counters."""

    provider: str
    total_requests: int = 0
    successful_count: int = 0
    failed_count: int = 0
    total_latency_ms: int = 0
    characters_count: int = 0


@dataclass
class ProviderAttempt:
    """One entry of the audit trail returned by translate_with_fallback."""

    provider: str
    started: datetime
    latency: float = 0.0
    success: bool = False
    error: str = ""
    skipped: bool = False
    skip_reason: str = ""


def backoff_seconds(failure_count: int, base: float, cap: float) -> float:
    """Linear backoff ``min(failure_count * base, cap)``."""
    return min(failure_count * base, cap)


class HealthState:
    """
    Provider-private health with lazy read-time backoff.

    A hard failure marks the provider unhealthy at once. ``is_available``
    allows a probe again once the backoff window since the last failure
    has elapsed; the next success clears the state.
    """

    def __init__(self, backoff_base: float, backoff_cap: float, clock: Clock = time.time):
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self._clock = clock
        self._lock = threading.Lock()
        self._healthy = True
        self._failure_count = 0
        self._last_failure_at = 0.0

    def is_available(self) -> bool:
        with self._lock:
            if self._healthy:
                return True
            window = backoff_seconds(self._failure_count, self.backoff_base, self.backoff_cap)
            return self._clock() - self._last_failure_at >= window

    def mark_healthy(self) -> None:
        with self._lock:
            self._healthy = True
            self._failure_count = 0

    def mark_unhealthy(self) -> int:
        with self._lock:
            self._healthy = False
            self._failure_count += 1
            self._last_failure_at = self._clock()
            return self._failure_count

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count


class BaseTranslationProvider(ABC):
    """
    Abstract base class for translation providers.

    Implementations make a single attempt per call; retry and fallback belong
    to the orchestrator. Transport failures and hard backend errors mark the
    provider unhealthy, successful calls mark it healthy again.
    """

    name: ProviderName
    default_priority: int = 100
    backoff_base: float = 30.0
    backoff_cap: float = 300.0
    # In-flight cap for the fan-out batch fallback
    batch_concurrency: int = 5

    def __init__(
        self,
        base_url: str = "",
        api_key: str = "",
        timeout: float = 30.0,
        priority: int | None = None,
        client: httpx.AsyncClient | None = None,
        clock: Clock = time.time,
    ):
        """
        Initialize translation provider.

        Args:
            base_url: Backend base URL (empty when not deployed)
            api_key: API key for authentication (if required)
            timeout: Request timeout in seconds
            priority: Override for the provider's default priority
            client: Pre-built HTTP client, mainly for tests
            clock: Time source used by the backoff window
        """
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.timeout = timeout
        self._priority = self.default_priority if priority is None else priority
        self._client = client
        self._owns_client = client is None
        self._health = HealthState(self.backoff_base, self.backoff_cap, clock)

    @property
    def provider_name(self) -> str:
        return self.name.value

    @property
    def priority(self) -> int:
        return self._priority

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the URL or credentials the provider needs are present. No I/O."""

    async def is_healthy(self) -> bool:
        """Cached self-reported health, with the backoff window applied."""
        return self._health.is_available()

    @abstractmethod
    async def supports_language_pair(self, source_lang: str, target_lang: str) -> bool:
        """Whether the provider can translate ``source_lang`` -> ``target_lang``."""

    @abstractmethod
    async def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        """
        Translate a single text.

        Raises:
            ProviderError: On any failure of this attempt
        """

    async def get_supported_languages(self) -> list[str]:
        """Language codes the provider knows about; empty when it cannot tell."""
        return []

    async def translate_batch(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[TranslationResult]:
        """
        Translate several texts, preserving order.

        Default implementation fans out to ``translate`` with bounded
        concurrency and substitutes the original text for failed items.
        """
        from lingomesh.services.batching import translate_concurrently

        return await translate_concurrently(
            self, texts, source_lang, target_lang, max_in_flight=self.batch_concurrency
        )

    async def health_check(self) -> bool:
        """
        Live probe of the backend.

        Returns:
            bool: True if the backend answered
        """
        return self.is_configured() and self._health.is_available()

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=10),
            )
        return self._client

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, mapping httpx failures to ProviderTransportError."""
        try:
            return await self._get_client().request(method, url, **kwargs)
        except httpx.HTTPError as e:
            self._mark_unhealthy(f"request failed: {e}")
            raise ProviderTransportError(self.provider_name, f"request failed: {e}") from e

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(
                self.provider_name, f"failed to parse response: {e}", response.status_code
            ) from e

    def _mark_healthy(self) -> None:
        self._health.mark_healthy()

    def _mark_unhealthy(self, reason: str) -> None:
        failures = self._health.mark_unhealthy()
        logger.warning(
            f"Provider {self.provider_name} marked unhealthy "
            f"(failures={failures}): {reason}"
        )

    async def aclose(self) -> None:
        """Release the pooled HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseTranslationProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} priority={self.priority} url={self.base_url!r}>"
