"""
Bergamot Provider Implementation.

Fast self-hosted CPU engine with a fixed set of English-centric models and a
native batch endpoint.
"""

import time

from lingomesh.services.providers.base import (
    BaseTranslationProvider,
    ProviderName,
    TranslationResult,
)
from lingomesh.services.providers.errors import (
    ProviderError,
    ProviderNotConfiguredError,
    ProviderResponseError,
    UnsupportedLanguagePairError,
)

_BERGAMOT_LANGUAGES = ("es", "de", "fr", "pt", "it", "nl", "ru", "pl", "cs", "et")

LANGUAGE_PAIRS = frozenset(
    [f"en-{lang}" for lang in _BERGAMOT_LANGUAGES]
    + [f"{lang}-en" for lang in _BERGAMOT_LANGUAGES]
)


class BergamotProvider(BaseTranslationProvider):
    """Bergamot translator service client."""

    name = ProviderName.BERGAMOT
    default_priority = 2
    backoff_base = 30.0
    backoff_cap = 300.0

    def is_configured(self) -> bool:
        return bool(self.base_url)

    async def supports_language_pair(self, source_lang: str, target_lang: str) -> bool:
        return f"{source_lang}-{target_lang}" in LANGUAGE_PAIRS

    async def get_supported_languages(self) -> list[str]:
        return sorted({"en", *_BERGAMOT_LANGUAGES})

    async def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        if not self.is_configured():
            raise ProviderNotConfiguredError(self.provider_name)

        start = time.perf_counter()
        response = await self._request(
            "POST",
            f"{self.base_url}/translate",
            json={"text": text, "source_lang": source_lang, "target_lang": target_lang},
        )
        self._check_response(response, source_lang, target_lang)

        data = self._parse_json(response)
        translated = data.get("translated_text", "") if isinstance(data, dict) else ""
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

    async def translate_batch(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[TranslationResult]:
        """Translate ``texts`` in one round trip via ``POST /translate/batch``."""
        if not self.is_configured():
            raise ProviderNotConfiguredError(self.provider_name)
        if not texts:
            return []

        start = time.perf_counter()
        response = await self._request(
            "POST",
            f"{self.base_url}/translate/batch",
            json={"texts": texts, "source_lang": source_lang, "target_lang": target_lang},
        )
        self._check_response(response, source_lang, target_lang)

        data = self._parse_json(response)
        translations = data.get("translations") if isinstance(data, dict) else None
        if not isinstance(translations, list) or len(translations) != len(texts):
            got = len(translations) if isinstance(translations, list) else 0
            raise ProviderResponseError(
                self.provider_name,
                f"batch response count mismatch: got {got}, expected {len(texts)}",
                200,
            )

        self._mark_healthy()
        latency = (time.perf_counter() - start) / len(texts)
        return [
            TranslationResult(
                translated_text=translation,
                source_lang=source_lang,
                target_lang=target_lang,
                provider=self.provider_name,
                latency=latency,
            )
            for translation in translations
        ]

    async def health_check(self) -> bool:
        if not self.is_configured():
            return False
        try:
            response = await self._request("GET", f"{self.base_url}/health")
        except ProviderError:
            return False
        return response.status_code == 200

    def _check_response(self, response, source_lang: str, target_lang: str) -> None:
        if response.status_code == 200:
            return

        detail = self._detail(response)
        if response.status_code == 400:
            raise UnsupportedLanguagePairError(self.provider_name, source_lang, target_lang, detail)
        if response.status_code == 503:
            self._mark_unhealthy("service unavailable")
            raise ProviderResponseError(self.provider_name, "bergamot service unavailable", 503)

        message = f"API error {response.status_code}: {detail}"
        self._mark_unhealthy(message)
        raise ProviderResponseError(self.provider_name, message, response.status_code)

    @staticmethod
    def _detail(response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text
        return str(data.get("detail", "")) if isinstance(data, dict) else str(data)
