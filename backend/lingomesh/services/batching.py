"""
Bounded-concurrency batch fan-out for providers without a native batch API.
"""

import asyncio

from lingomesh.core.logging import get_logger
from lingomesh.services.providers.base import BaseTranslationProvider, TranslationResult
from lingomesh.services.providers.errors import BatchFailedError

logger = get_logger(__name__)


async def translate_concurrently(
    provider: BaseTranslationProvider,
    texts: list[str],
    source_lang: str,
    target_lang: str,
    max_in_flight: int,
) -> list[TranslationResult]:
    """
    Translate ``texts`` one call per item with at most ``max_in_flight`` calls.

    ``results[i]`` always corresponds to ``texts[i]``. A failed item keeps its
    original text and carries the failure in ``error``; if every item fails a
    BatchFailedError is raised instead.
    """
    if not texts:
        return []

    semaphore = asyncio.Semaphore(max(1, max_in_flight))
    failures: list[Exception] = []

    async def run(index: int, text: str) -> TranslationResult:
        async with semaphore:
            try:
                return await provider.translate(text, source_lang, target_lang)
            except Exception as e:
                logger.debug(
                    f"Batch item {index} failed on {provider.provider_name}: {e}"
                )
                failures.append(e)
                return TranslationResult(
                    translated_text=text,
                    source_lang=source_lang,
                    target_lang=target_lang,
                    provider=provider.provider_name,
                    error=str(e),
                )

    results = await asyncio.gather(*(run(i, text) for i, text in enumerate(texts)))

    if len(failures) == len(texts):
        raise BatchFailedError(provider.provider_name, len(texts), failures[-1])
    if failures:
        logger.warning(
            f"{provider.provider_name} batch: {len(failures)}/{len(texts)} items "
            f"failed, original text substituted"
        )
    return list(results)
