"""
Translation Provider Factory.

Handles registration of provider classes and building the provider set from
settings.
"""

from lingomesh.core.config import Settings
from lingomesh.core.logging import get_logger
from lingomesh.services.providers.base import BaseTranslationProvider
from lingomesh.services.providers.bergamot_provider import BergamotProvider
from lingomesh.services.providers.google_provider import GoogleTranslateProvider
from lingomesh.services.providers.huggingface_provider import HuggingFaceProvider
from lingomesh.services.providers.libretranslate_provider import LibreTranslateProvider

logger = get_logger(__name__)


class TranslationProviderFactory:
    """
    Factory for creating translation providers.

    Manages registration and instantiation of the provider classes.
    """

    # Registry of available providers
    _providers: dict[str, type[BaseTranslationProvider]] = {
        "libretranslate": LibreTranslateProvider,
        "bergamot": BergamotProvider,
        "huggingface": HuggingFaceProvider,
        "google": GoogleTranslateProvider,
    }

    @classmethod
    def register_provider(cls, name: str, provider_class: type[BaseTranslationProvider]):
        """
        Register a new translation provider.

        Args:
            name: Provider name
            provider_class: Provider class that extends BaseTranslationProvider
        """
        cls._providers[name.lower()] = provider_class
        logger.info(f"Registered translation provider: {name}")

    @classmethod
    def get_available_providers(cls) -> list[str]:
        """Get list of available provider names."""
        return list(cls._providers.keys())

    @classmethod
    def create_provider(cls, provider_name: str, **kwargs) -> BaseTranslationProvider:
        """
        Create a translation provider instance.

        Raises:
            ValueError: If provider is not registered
        """
        provider_name_lower = provider_name.lower()

        if provider_name_lower not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise ValueError(
                f"Unknown translation provider: {provider_name}. "
                f"Available providers: {available}"
            )

        provider = cls._providers[provider_name_lower](**kwargs)
        logger.debug(f"Created {provider_name} provider instance")
        return provider


def build_providers(settings: Settings) -> list[BaseTranslationProvider]:
    """
    Build every known provider from settings.

    Unconfigured providers are included; the orchestrator filters them out.
    """
    timeout = settings.provider_timeout_seconds
    configs = {
        "libretranslate": {
            "base_url": settings.libretranslate_url,
            "api_key": settings.libretranslate_api_key,
            "timeout": timeout,
        },
        "bergamot": {"base_url": settings.bergamot_url, "timeout": timeout},
        "huggingface": {
            "base_url": settings.huggingface_url,
            "api_key": settings.huggingface_api_key,
            "timeout": max(timeout, 60.0),
        },
        "google": {"api_key": settings.google_translate_api_key, "timeout": timeout},
    }

    providers = []
    for name, config in configs.items():
        provider = TranslationProviderFactory.create_provider(name, **config)
        logger.info(
            f"Provider {name}: configured={provider.is_configured()} "
            f"priority={provider.priority}"
        )
        providers.append(provider)
    return providers
