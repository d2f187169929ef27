"""
Hugging Face Provider Implementation.

Neural MT via Helsinki-NLP OPUS-MT models, either through the hosted
Inference API (API key required) or a self-hosted translation service.
The mode is resolved once at construction.
"""

import time

from lingomesh.core.logging import get_logger
from lingomesh.services.providers.base import (
    BaseTranslationProvider,
    ProviderName,
    TranslationResult,
)
from lingomesh.services.providers.errors import (
    ModelLoadingError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderResponseError,
    RateLimitError,
    UnsupportedLanguagePairError,
)

logger = get_logger(__name__)

HF_INFERENCE_API_URL = "https://api-inference.huggingface.co/models"

# "source-target" -> model id on the Inference API
MODEL_CATALOGUE: dict[str, str] = {
    # Indian languages
    "en-hi": "Helsinki-NLP/opus-mt-en-hi",
    "en-ta": "Helsinki-NLP/opus-mt-en-mul",
    "en-te": "Helsinki-NLP/opus-mt-en-mul",
    "en-bn": "Helsinki-NLP/opus-mt-en-mul",
    "en-mr": "Helsinki-NLP/opus-mt-en-mul",
    "en-gu": "Helsinki-NLP/opus-mt-en-mul",
    # European
    "en-es": "Helsinki-NLP/opus-mt-en-es",
    "en-fr": "Helsinki-NLP/opus-mt-en-fr",
    "en-de": "Helsinki-NLP/opus-mt-en-de",
    "en-it": "Helsinki-NLP/opus-mt-en-it",
    "en-pt": "Helsinki-NLP/opus-mt-en-pt",
    "en-nl": "Helsinki-NLP/opus-mt-en-nl",
    "en-ru": "Helsinki-NLP/opus-mt-en-ru",
    "en-pl": "Helsinki-NLP/opus-mt-en-pl",
    # Asian
    "en-zh": "Helsinki-NLP/opus-mt-en-zh",
    "en-ja": "Helsinki-NLP/opus-mt-en-jap",
    "en-ko": "Helsinki-NLP/opus-mt-en-ko",
    "en-vi": "Helsinki-NLP/opus-mt-en-vi",
    "en-th": "Helsinki-NLP/opus-mt-en-th",
    "en-id": "Helsinki-NLP/opus-mt-en-id",
    # Middle East
    "en-ar": "Helsinki-NLP/opus-mt-en-ar",
    "en-tr": "Helsinki-NLP/opus-mt-en-tr",
    "en-he": "Helsinki-NLP/opus-mt-en-he",
    # Into English
    "hi-en": "Helsinki-NLP/opus-mt-hi-en",
    "es-en": "Helsinki-NLP/opus-mt-es-en",
    "fr-en": "Helsinki-NLP/opus-mt-fr-en",
    "de-en": "Helsinki-NLP/opus-mt-de-en",
    "it-en": "Helsinki-NLP/opus-mt-it-en",
    "pt-en": "Helsinki-NLP/opus-mt-pt-en",
    "nl-en": "Helsinki-NLP/opus-mt-nl-en",
    "ru-en": "Helsinki-NLP/opus-mt-ru-en",
    "zh-en": "Helsinki-NLP/opus-mt-zh-en",
    "ja-en": "Helsinki-NLP/opus-mt-jap-en",
    "ko-en": "Helsinki-NLP/opus-mt-ko-en",
    "ar-en": "Helsinki-NLP/opus-mt-ar-en",
    "tr-en": "Helsinki-NLP/opus-mt-tr-en",
    # Romance
    "es-fr": "Helsinki-NLP/opus-mt-es-fr",
    "fr-es": "Helsinki-NLP/opus-mt-fr-es",
    "es-it": "Helsinki-NLP/opus-mt-es-it",
    "it-es": "Helsinki-NLP/opus-mt-it-es",
    "es-pt": "Helsinki-NLP/opus-mt-es-pt",
    "pt-es": "Helsinki-NLP/opus-mt-pt-es",
}


class HuggingFaceProvider(BaseTranslationProvider):
    """
    Hugging Face provider implementation.

    Self-hosted mode trusts the service to validate language pairs and
    supports a native batch endpoint. API mode is limited to the model
    catalogue, reports 429 as a rate limit and 503 with ``estimated_time``
    as a cold model, and batches by fanning out 3 requests at a time.
    """

    name = ProviderName.HUGGINGFACE
    default_priority = 2
    backoff_base = 30.0
    backoff_cap = 300.0
    batch_concurrency = 3

    def __init__(self, base_url: str = "", api_key: str = "", timeout: float = 60.0, **kwargs):
        if not base_url:
            base_url = HF_INFERENCE_API_URL
        super().__init__(base_url=base_url, api_key=api_key, timeout=timeout, **kwargs)
        self.self_hosted = "huggingface.co" not in self.base_url

    def is_configured(self) -> bool:
        if self.self_hosted:
            return bool(self.base_url)
        return bool(self.api_key)

    async def supports_language_pair(self, source_lang: str, target_lang: str) -> bool:
        if self.self_hosted:
            return True
        return f"{source_lang}-{target_lang}" in MODEL_CATALOGUE

    async def get_supported_languages(self) -> list[str]:
        # Self-hosted services validate pairs themselves and publish no list
        if self.self_hosted:
            return []
        return sorted({code for pair in MODEL_CATALOGUE for code in pair.split("-")})

    def get_model_for_pair(self, source_lang: str, target_lang: str) -> str | None:
        return MODEL_CATALOGUE.get(f"{source_lang}-{target_lang}")

    async def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        if not self.is_configured():
            raise ProviderNotConfiguredError(self.provider_name)
        if self.self_hosted:
            return await self._translate_self_hosted(text, source_lang, target_lang)
        return await self._translate_api(text, source_lang, target_lang)

    async def translate_batch(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[TranslationResult]:
        if not self.is_configured():
            raise ProviderNotConfiguredError(self.provider_name)
        if not self.self_hosted:
            return await super().translate_batch(texts, source_lang, target_lang)
        if not texts:
            return []

        start = time.perf_counter()
        response = await self._request(
            "POST",
            f"{self.base_url}/translate/batch",
            json={"texts": texts, "source_lang": source_lang, "target_lang": target_lang},
        )
        if response.status_code != 200:
            message = f"batch API error {response.status_code}: {self._error_message(response)}"
            self._mark_unhealthy(message)
            raise ProviderResponseError(self.provider_name, message, response.status_code)

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
        if not self.self_hosted:
            # Probing the hosted API costs quota
            return self._health.is_available()
        try:
            response = await self._request("GET", f"{self.base_url}/health")
        except ProviderError:
            return False
        return response.status_code == 200

    async def _translate_self_hosted(
        self, text: str, source_lang: str, target_lang: str
    ) -> TranslationResult:
        start = time.perf_counter()
        response = await self._request(
            "POST",
            f"{self.base_url}/translate",
            json={"text": text, "source_lang": source_lang, "target_lang": target_lang},
        )

        if response.status_code == 400:
            raise UnsupportedLanguagePairError(
                self.provider_name, source_lang, target_lang, self._error_message(response)
            )
        if response.status_code == 503:
            self._mark_unhealthy("self-hosted service unavailable")
            raise ProviderResponseError(
                self.provider_name, "self-hosted service unavailable", 503
            )
        if response.status_code != 200:
            message = f"API error {response.status_code}: {self._error_message(response)}"
            self._mark_unhealthy(message)
            raise ProviderResponseError(self.provider_name, message, response.status_code)

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

    async def _translate_api(
        self, text: str, source_lang: str, target_lang: str
    ) -> TranslationResult:
        model = self.get_model_for_pair(source_lang, target_lang)
        if model is None:
            raise UnsupportedLanguagePairError(
                self.provider_name, source_lang, target_lang, "no model available"
            )

        start = time.perf_counter()
        response = await self._request(
            "POST",
            f"{self.base_url}/{model}",
            json={"inputs": text, "options": {"wait_for_model": True}},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        if response.status_code == 429:
            raise RateLimitError(self.provider_name)
        if response.status_code == 503:
            estimated = self._estimated_time(response)
            if estimated > 0:
                logger.warning(
                    f"Hugging Face model {model} is loading", extra={"estimated_time": estimated}
                )
                raise ModelLoadingError(self.provider_name, estimated)
            self._mark_unhealthy("service unavailable")
            raise ProviderResponseError(self.provider_name, "service unavailable", 503)
        if response.status_code != 200:
            message = f"API error {response.status_code}: {self._error_message(response)}"
            self._mark_unhealthy(message)
            raise ProviderResponseError(self.provider_name, message, response.status_code)

        data = self._parse_json(response)
        results = data if isinstance(data, list) else [data]
        translated = ""
        if results and isinstance(results[0], dict):
            translated = results[0].get("translation_text", "")
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

    @staticmethod
    def _error_message(response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text
        if isinstance(data, dict):
            return str(data.get("error") or data.get("detail") or "")
        return str(data)

    @staticmethod
    def _estimated_time(response) -> float:
        try:
            data = response.json()
        except ValueError:
            return 0.0
        if not isinstance(data, dict):
            return 0.0
        try:
            return float(data.get("estimated_time") or 0.0)
        except (TypeError, ValueError):
            return 0.0
