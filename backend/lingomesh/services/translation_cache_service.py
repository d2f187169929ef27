"""
Two-tier translation cache.

Redis in front of the durable SQL tier. Reads fall through fast -> durable;
writes go to both tiers in the background. Invalidation is synchronous.
"""

import asyncio

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from lingomesh.core.db import session_scope
from lingomesh.core.logging import get_logger
from lingomesh.models.translation_cache import TranslationCacheEntry
from lingomesh.services.background import BackgroundWriter
from lingomesh.services.providers.base import TranslationResult
from lingomesh.services.redis_cache import RedisTranslationCache
from lingomesh.services.translation_cache_repository import TranslationCacheRepository

logger = get_logger(__name__)


class TranslationCacheService:
    """
    Cache facade used by the translation service.

    Any tier failure on the read path is logged and treated as a miss.
    A durable-tier hit repopulates Redis and bumps the row's hit counter
    in the background.
    """

    def __init__(
        self,
        fast_tier: RedisTranslationCache | None,
        session_factory: sessionmaker[Session],
        writer: BackgroundWriter,
        ttl_seconds: int = 86400,
    ):
        self.fast_tier = fast_tier
        self.session_factory = session_factory
        self.writer = writer
        self.ttl_seconds = ttl_seconds

    async def get(
        self,
        tenant_id: str,
        source_lang: str,
        target_lang: str,
        text: str,
        context: str = "",
    ) -> TranslationResult | None:
        source_hash = TranslationCacheEntry.compute_hash(source_lang, target_lang, text, context)

        if self.fast_tier is not None:
            cached = await self.fast_tier.get(
                tenant_id, source_lang, target_lang, context, source_hash
            )
            if cached is not None:
                logger.debug(f"Fast-tier HIT for {source_lang}->{target_lang}")
                return TranslationResult(
                    translated_text=cached.translated_text,
                    source_lang=cached.source_lang,
                    target_lang=cached.target_lang,
                    provider=cached.provider,
                    from_cache=True,
                )

        try:
            entry = await asyncio.to_thread(
                self._load, tenant_id, source_lang, target_lang, source_hash
            )
        except SQLAlchemyError as e:
            logger.warning(f"Durable-tier read failed, treating as miss: {e}")
            return None

        if entry is None:
            logger.debug(f"Cache MISS for {source_lang}->{target_lang}")
            return None

        logger.debug(f"Durable-tier HIT for {source_lang}->{target_lang}")
        if self.fast_tier is not None:
            fast_tier = self.fast_tier
            self.writer.submit(
                "repopulate_fast_tier",
                lambda: fast_tier.set(
                    tenant_id, source_lang, target_lang, context, source_hash,
                    entry.translated_text, entry.provider,
                ),
            )
        self.writer.submit(
            "increment_hit_count",
            lambda: asyncio.to_thread(
                self._increment_hits, tenant_id, source_lang, target_lang, source_hash
            ),
        )

        return TranslationResult(
            translated_text=entry.translated_text,
            source_lang=entry.source_lang,
            target_lang=entry.target_lang,
            provider=entry.provider,
            from_cache=True,
        )

    def store(
        self,
        tenant_id: str,
        source_lang: str,
        target_lang: str,
        text: str,
        translated_text: str,
        provider: str,
        context: str = "",
    ) -> None:
        """Write-through to both tiers without waiting for either."""
        if self.fast_tier is not None:
            fast_tier = self.fast_tier
            source_hash = TranslationCacheEntry.compute_hash(
                source_lang, target_lang, text, context
            )
            self.writer.submit(
                "store_fast_tier",
                lambda: fast_tier.set(
                    tenant_id, source_lang, target_lang, context, source_hash,
                    translated_text, provider,
                ),
            )
        self.writer.submit(
            "store_durable_tier",
            lambda: asyncio.to_thread(
                self._save,
                tenant_id, source_lang, target_lang, text, translated_text, provider, context,
            ),
        )

    async def invalidate_tenant(self, tenant_id: str) -> dict[str, int]:
        fast_deleted = 0
        if self.fast_tier is not None:
            fast_deleted = await self.fast_tier.invalidate_tenant(tenant_id)
        durable_deleted = await asyncio.to_thread(self._run, "delete_by_tenant", tenant_id)
        return {"fast_tier": fast_deleted, "durable_tier": durable_deleted}

    async def invalidate_language_pair(
        self, tenant_id: str, source_lang: str, target_lang: str
    ) -> dict[str, int]:
        fast_deleted = 0
        if self.fast_tier is not None:
            fast_deleted = await self.fast_tier.invalidate_language_pair(
                tenant_id, source_lang, target_lang
            )
        durable_deleted = await asyncio.to_thread(
            self._run, "delete_by_language_pair", tenant_id, source_lang, target_lang
        )
        return {"fast_tier": fast_deleted, "durable_tier": durable_deleted}

    async def sweep_expired(self) -> int:
        """Physically delete expired durable rows."""
        return await asyncio.to_thread(self._run, "delete_expired")

    async def get_stats(self, tenant_id: str) -> dict:
        return await asyncio.to_thread(self._run, "get_stats", tenant_id)

    # ------------------------------------------------------------------
    # Blocking helpers, run in worker threads
    # ------------------------------------------------------------------

    def _load(self, tenant_id, source_lang, target_lang, source_hash):
        with session_scope(self.session_factory) as db:
            return TranslationCacheRepository(db).get_cached_translation(
                tenant_id, source_lang, target_lang, source_hash
            )

    def _save(self, tenant_id, source_lang, target_lang, text, translated_text, provider, context):
        with session_scope(self.session_factory) as db:
            TranslationCacheRepository(db).save_translation(
                tenant_id=tenant_id,
                source_lang=source_lang,
                target_lang=target_lang,
                source_text=text,
                translated_text=translated_text,
                provider=provider,
                ttl_seconds=self.ttl_seconds,
                context=context,
            )

    def _increment_hits(self, tenant_id, source_lang, target_lang, source_hash):
        with session_scope(self.session_factory) as db:
            TranslationCacheRepository(db).increment_hit_count(
                tenant_id, source_lang, target_lang, source_hash
            )

    def _run(self, method: str, *args):
        with session_scope(self.session_factory) as db:
            return getattr(TranslationCacheRepository(db), method)(*args)
