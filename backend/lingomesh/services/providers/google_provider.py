"""
Google Cloud Translation Provider Implementation.

Paid cloud engine, tried last. The v2 REST API takes a ``q`` array, so
single and batch translation share one request path.
"""

import time
from typing import Any

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
    RateLimitError,
)

logger = get_logger(__name__)

GOOGLE_TRANSLATE_URL = "https://translation.googleapis.com/language/translate/v2"

INVALID_LANGUAGE_CODES = frozenset({"xx"})


class GoogleTranslateProvider(BaseTranslationProvider):
    """Google Cloud Translation v2 client authenticated with an API key."""

    name = ProviderName.GOOGLE
    default_priority = 3
    backoff_base = 30.0
    backoff_cap = 300.0

    def __init__(self, api_key: str = "", base_url: str = "", **kwargs):
        super().__init__(base_url=base_url or GOOGLE_TRANSLATE_URL, api_key=api_key, **kwargs)

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def supports_language_pair(self, source_lang: str, target_lang: str) -> bool:
        return (
            source_lang not in INVALID_LANGUAGE_CODES
            and target_lang not in INVALID_LANGUAGE_CODES
        )

    async def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        results = await self._translate_many([text], source_lang, target_lang)
        return results[0]

    async def translate_batch(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[TranslationResult]:
        if not texts:
            return []
        results = await self._translate_many(texts, source_lang, target_lang)
        if len(results) != len(texts):
            raise ProviderResponseError(
                self.provider_name,
                f"batch response count mismatch: got {len(results)}, expected {len(texts)}",
                200,
            )
        return results

    async def get_supported_languages(self) -> list[str]:
        if not self.is_configured():
            return []
        try:
            response = await self._request(
                "GET", f"{self.base_url}/languages", params={"key": self.api_key}
            )
            data = self._parse_json(response)
        except ProviderError as e:
            logger.warning(f"Google language list unavailable: {e}")
            return []
        if response.status_code != 200 or not isinstance(data, dict):
            return []
        languages = (data.get("data") or {}).get("languages") or []
        return sorted(
            item["language"]
            for item in languages
            if isinstance(item, dict) and item.get("language")
        )

    async def health_check(self) -> bool:
        if not self.is_configured():
            return False
        try:
            response = await self._request(
                "GET", f"{self.base_url}/languages", params={"key": self.api_key}
            )
        except ProviderError:
            return False
        return response.status_code == 200

    async def _translate_many(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[TranslationResult]:
        if not self.is_configured():
            raise ProviderNotConfiguredError(self.provider_name)

        payload: dict[str, Any] = {"q": texts, "target": target_lang, "format": "text"}
        auto_detect = source_lang in ("", "auto")
        if not auto_detect:
            payload["source"] = source_lang

        start = time.perf_counter()
        response = await self._request(
            "POST", self.base_url, params={"key": self.api_key}, json=payload
        )
        data = self._parse_json(response)
        if not isinstance(data, dict):
            raise ProviderResponseError(
                self.provider_name, "unexpected response shape", response.status_code
            )

        error = data.get("error")
        if error or response.status_code != 200:
            if not isinstance(error, dict):
                error = {"message": str(error)} if error else {}
            code = error.get("code", response.status_code)
            message = error.get("message", f"status {response.status_code}")
            if code == 429:
                raise RateLimitError(self.provider_name, f"Google API error: {message}")
            self._mark_unhealthy(f"Google API error {code}: {message}")
            raise ProviderResponseError(
                self.provider_name, f"Google API error {code}: {message}", code
            )

        translations = (data.get("data") or {}).get("translations") or []
        if not translations:
            raise ProviderResponseError(self.provider_name, "no translation returned", 200)

        self._mark_healthy()
        latency = (time.perf_counter() - start) / len(translations)
        results = []
        for item in translations:
            detected = source_lang
            if auto_detect:
                detected = item.get("detectedSourceLanguage") or "en"
            results.append(
                TranslationResult(
                    translated_text=item.get("translatedText", ""),
                    source_lang=detected,
                    target_lang=target_lang,
                    provider=self.provider_name,
                    latency=latency,
                )
            )
        return results
