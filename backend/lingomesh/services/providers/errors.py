"""
Translation error taxonomy.

Provider errors carry the provider name so the orchestrator can record them
against the right health and metrics entries.
"""


class TranslationError(Exception):
    """Base class for all translation failures."""


class ProviderError(TranslationError):
    """A single provider attempt failed."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ProviderNotConfiguredError(ProviderError):
    """Provider was called without the URL or credentials it needs."""

    def __init__(self, provider: str):
        super().__init__(provider, "not configured")


class ProviderTransportError(ProviderError):
    """Connection failure or transport timeout talking to the backend."""


class ProviderResponseError(ProviderError):
    """Backend answered with an error status or an unusable body."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        super().__init__(provider, message)
        self.status_code = status_code


class UnsupportedLanguagePairError(ProviderError):
    """Backend explicitly rejected the language pair."""

    def __init__(self, provider: str, source_lang: str, target_lang: str, detail: str = ""):
        message = f"unsupported language pair {source_lang}->{target_lang}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(provider, message)
        self.source_lang = source_lang
        self.target_lang = target_lang


class ThrottledError(ProviderError):
    """Backend is overloaded rather than broken."""


class RateLimitError(ThrottledError):
    """Backend reported a rate limit (HTTP 429)."""

    def __init__(self, provider: str, message: str = "rate limit exceeded"):
        super().__init__(provider, message)


class ModelLoadingError(ThrottledError):
    """Hosted model is cold and still loading."""

    def __init__(self, provider: str, estimated_seconds: float):
        super().__init__(
            provider, f"model is loading, estimated time: {estimated_seconds:.1f}s"
        )
        self.estimated_seconds = estimated_seconds


class BatchFailedError(ProviderError):
    """Every item of a fan-out batch failed."""

    def __init__(self, provider: str, count: int, last_error: Exception | None = None):
        super().__init__(provider, f"all {count} translations failed")
        self.count = count
        self.last_error = last_error


class NoProvidersConfiguredError(TranslationError):
    """No provider survived the configuration filter."""

    def __init__(self):
        super().__init__("no translation providers configured")


class AllProvidersFailedError(TranslationError):
    """Every eligible provider was skipped or failed."""

    def __init__(self, attempted: list[str], last_error: Exception | None = None, attempts=None):
        if attempted:
            message = f"all providers failed (attempted: {', '.join(attempted)})"
        else:
            message = "no eligible provider for request"
        if last_error is not None:
            message = f"{message}; last error: {last_error}"
        super().__init__(message)
        self.attempted = list(attempted)
        self.last_error = last_error
        # Populated by translate_with_fallback
        self.attempts = list(attempts or [])
