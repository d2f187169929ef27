"""
LibreTranslate Provider Implementation.

Primary open-source, self-hosted engine. No native batch endpoint, so batches
fan out with up to 10 requests in flight.
"""

import threading
import time
from dataclasses import dataclass

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from lingomesh.core.logging import get_logger
from lingomesh.services.providers.base import (
    BaseTranslationProvider,
    ProviderName,
    TranslationResult,
)
from lingomesh.services.providers.errors import (
    ProviderError,
    ProviderNotConfiguredError,
    ProviderResponseError,
    ProviderTransportError,
    RateLimitError,
    UnsupportedLanguagePairError,
)

logger = get_logger(__name__)

LANGUAGES_CACHE_TTL = 3600.0


@dataclass(frozen=True)
class LanguageInfo:
    code: str
    name: str


@dataclass(frozen=True)
class DetectedLanguage:
    language: str
    confidence: float


class LibreTranslateProvider(BaseTranslationProvider):
    """
    LibreTranslate provider implementation.

    Language support comes from ``GET /languages``, cached for an hour. When
    the list cannot be fetched the pair is assumed supported and the service
    validates it itself.
    """

    name = ProviderName.LIBRETRANSLATE
    default_priority = 1
    backoff_base = 10.0
    backoff_cap = 120.0
    batch_concurrency = 10

    def __init__(self, base_url: str = "", api_key: str = "", **kwargs):
        super().__init__(base_url=base_url, api_key=api_key, **kwargs)
        self._languages: list[LanguageInfo] = []
        self._languages_fetched_at = 0.0
        self._languages_lock = threading.Lock()

    def is_configured(self) -> bool:
        return bool(self.base_url)

    async def supports_language_pair(self, source_lang: str, target_lang: str) -> bool:
        try:
            languages = await self.get_languages()
        except ProviderError as e:
            logger.debug(f"LibreTranslate language list unavailable, assuming supported: {e}")
            return True

        codes = {lang.code for lang in languages}
        source_ok = source_lang in ("", "auto") or source_lang in codes
        return source_ok and target_lang in codes

    async def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        if not self.is_configured():
            raise ProviderNotConfiguredError(self.provider_name)

        start = time.perf_counter()

        if source_lang in ("", "auto"):
            try:
                detected = await self.detect_language(text)
                source_lang = detected.language
            except ProviderError as e:
                logger.warning(f"Language detection failed, defaulting to en: {e}")
                source_lang = "en"

        payload = {"q": text, "source": source_lang, "target": target_lang, "format": "text"}
        if self.api_key:
            payload["api_key"] = self.api_key

        response = await self._request("POST", f"{self.base_url}/translate", json=payload)

        if response.status_code == 429:
            raise RateLimitError(self.provider_name)
        if response.status_code == 400:
            detail = self._error_detail(response)
            if "not supported" in detail.lower():
                raise UnsupportedLanguagePairError(
                    self.provider_name, source_lang, target_lang, detail
                )
        if response.status_code != 200:
            message = f"translation API returned status {response.status_code}: {self._error_detail(response)}"
            self._mark_unhealthy(message)
            raise ProviderResponseError(self.provider_name, message, response.status_code)

        data = self._parse_json(response)
        translated = data.get("translatedText", "") if isinstance(data, dict) else ""
        if not translated:
            raise ProviderResponseError(self.provider_name, "empty translation response", 200)

        self._mark_healthy()
        return TranslationResult(
            translated_text=translated,
            source_lang=source_lang,
            target_lang=target_lang,
            provider=self.provider_name,
            latency=time.perf_counter() - start,
        )

    async def detect_language(self, text: str) -> DetectedLanguage:
        """
        Detect the language of ``text`` via ``POST /detect``.

        Returns:
            DetectedLanguage: Most confident candidate
        """
        if not self.is_configured():
            raise ProviderNotConfiguredError(self.provider_name)

        payload = {"q": text}
        if self.api_key:
            payload["api_key"] = self.api_key

        response = await self._request("POST", f"{self.base_url}/detect", json=payload)
        if response.status_code != 200:
            raise ProviderResponseError(
                self.provider_name,
                f"detect API returned status {response.status_code}",
                response.status_code,
            )

        data = self._parse_json(response)
        if not isinstance(data, list) or not data:
            raise ProviderResponseError(self.provider_name, "no language detected", 200)

        best = max(data, key=lambda item: float(item.get("confidence", 0)))
        return DetectedLanguage(
            language=best.get("language", ""), confidence=float(best.get("confidence", 0))
        )

    async def get_languages(self) -> list[LanguageInfo]:
        """Supported languages, cached for an hour."""
        with self._languages_lock:
            if self._languages and time.monotonic() - self._languages_fetched_at < LANGUAGES_CACHE_TTL:
                return list(self._languages)

        if not self.is_configured():
            raise ProviderNotConfiguredError(self.provider_name)

        languages = await self._fetch_languages()

        with self._languages_lock:
            self._languages = languages
            self._languages_fetched_at = time.monotonic()
        return list(languages)

    async def get_supported_languages(self) -> list[str]:
        try:
            languages = await self.get_languages()
        except ProviderError as e:
            logger.warning(f"LibreTranslate language list unavailable: {e}")
            return []
        return sorted(language.code for language in languages if language.code)

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, max=2),
        retry=retry_if_exception_type(ProviderTransportError),
        reraise=True,
    )
    async def _fetch_languages(self) -> list[LanguageInfo]:
        """Fetch the language list, retrying once on connection errors."""
        response = await self._request("GET", f"{self.base_url}/languages")
        if response.status_code != 200:
            raise ProviderResponseError(
                self.provider_name,
                f"languages API returned status {response.status_code}",
                response.status_code,
            )

        data = self._parse_json(response)
        if not isinstance(data, list):
            raise ProviderResponseError(self.provider_name, "unexpected languages response", 200)
        return [
            LanguageInfo(code=item.get("code", ""), name=item.get("name", ""))
            for item in data
            if isinstance(item, dict)
        ]

    async def health_check(self) -> bool:
        if not self.is_configured():
            return False
        try:
            response = await self._request("GET", f"{self.base_url}/languages")
        except ProviderError:
            return False
        return response.status_code == 200

    @staticmethod
    def _error_detail(response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text
        if isinstance(data, dict):
            return str(data.get("error") or data.get("detail") or data)
        return str(data)
