"""
Pydantic schemas for translation requests and responses.
"""

from pydantic import BaseModel, Field

from lingomesh.core.config import settings


class TranslationRequest(BaseModel):
    """Single translation request."""

    text: str = Field(..., min_length=1, description="Text to translate")
    source_lang: str = Field(default="", description="Source language, default used when empty")
    target_lang: str = Field(..., min_length=2, description="Target language code")
    context: str = Field(default="", max_length=100, description="Optional context label")


class ProviderAttemptInfo(BaseModel):
    """One step of the provider fallback chain."""

    provider: str
    success: bool
    skipped: bool = False
    skip_reason: str = ""
    latency_ms: float = 0.0
    error: str = ""


class TranslationResponse(BaseModel):
    original_text: str
    translated_text: str
    source_lang: str
    target_lang: str
    cached: bool
    provider: str = Field(default="", description="Provider that produced the translation")
    attempts: list[ProviderAttemptInfo] | None = Field(
        default=None, description="Fallback trail, only when requested with include_attempts"
    )


class TranslationItem(BaseModel):
    """One item of a batch request."""

    id: str = Field(default="", description="Client-provided ID for matching responses")
    text: str = Field(..., min_length=1)
    source_lang: str = Field(default="", description="Overrides the batch source language")
    context: str = Field(default="", max_length=100)


class BatchTranslationRequest(BaseModel):
    items: list[TranslationItem] = Field(
        ..., min_length=1, max_length=settings.max_batch_size, description="Items to translate"
    )
    source_lang: str = Field(default="", description="Default source language for all items")
    target_lang: str = Field(..., min_length=2)


class BatchTranslationItem(BaseModel):
    id: str
    original_text: str
    translated_text: str
    source_lang: str
    cached: bool
    provider: str = ""
    error: str = Field(default="", description="Set when the item could not be translated")


class BatchTranslationResponse(BaseModel):
    items: list[BatchTranslationItem]
    total_count: int
    cached_count: int
    target_lang: str


class DetectLanguageRequest(BaseModel):
    text: str = Field(..., min_length=1)


class DetectLanguageResponse(BaseModel):
    language: str
    confidence: float


class LanguagesResponse(BaseModel):
    """Languages published by the configured providers."""

    languages: list[str] = Field(description="Union of every provider's language codes")
    count: int
    providers: dict[str, list[str]] = Field(description="Language codes per provider")
