"""
Unit tests for the translation cache: content hash, durable repository,
Redis fast tier and the two-tier facade.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from lingomesh.core.db import create_db_engine, create_session_factory
from lingomesh.models.translation_cache import TranslationCacheEntry
from lingomesh.services.redis_cache import (
    CachedTranslation,
    RedisTranslationCache,
    build_cache_key,
    escape_glob,
)
from lingomesh.services.translation_cache_repository import TranslationCacheRepository
from lingomesh.services.translation_cache_service import TranslationCacheService


# =============================================================================
# Content Hash
# =============================================================================


class TestComputeHash:
    def test_deterministic(self):
        first = TranslationCacheEntry.compute_hash("en", "hi", "Hello", "subtitle")
        second = TranslationCacheEntry.compute_hash("en", "hi", "Hello", "subtitle")

        assert first == second
        assert len(first) == 64

    @pytest.mark.parametrize(
        "args",
        [
            ("en", "es", "Hello", "subtitle"),
            ("en", "hi", "Hello!", "subtitle"),
            ("en", "hi", "Hello", "menu"),
            ("fr", "hi", "Hello", "subtitle"),
        ],
    )
    def test_every_component_matters(self, args):
        base = TranslationCacheEntry.compute_hash("en", "hi", "Hello", "subtitle")

        assert TranslationCacheEntry.compute_hash(*args) != base

    def test_redis_key_layout(self):
        assert build_cache_key("acme", "en", "hi", "ui", "abc") == "trans:acme:en:hi:ui:abc"


# =============================================================================
# Durable Tier
# =============================================================================


class TestTranslationCacheRepository:
    def save(self, repo, text="Hello", translated="Hola", tenant="acme", src="en", dst="es", **kw):
        return repo.save_translation(
            tenant_id=tenant,
            source_lang=src,
            target_lang=dst,
            source_text=text,
            translated_text=translated,
            provider=kw.pop("provider", "libretranslate"),
            ttl_seconds=kw.pop("ttl_seconds", 3600),
            **kw,
        )

    def test_save_and_get(self, db_session):
        repo = TranslationCacheRepository(db_session)
        self.save(repo, context="ui")

        source_hash = TranslationCacheEntry.compute_hash("en", "es", "Hello", "ui")
        entry = repo.get_cached_translation("acme", "en", "es", source_hash)

        assert entry is not None
        assert entry.translated_text == "Hola"
        assert entry.provider == "libretranslate"
        assert entry.hit_count == 0

    def test_tenants_are_isolated(self, db_session):
        repo = TranslationCacheRepository(db_session)
        self.save(repo, tenant="acme")

        source_hash = TranslationCacheEntry.compute_hash("en", "es", "Hello")
        assert repo.get_cached_translation("globex", "en", "es", source_hash) is None

    def test_expired_entry_is_a_miss(self, db_session):
        repo = TranslationCacheRepository(db_session)
        entry = self.save(repo, ttl_seconds=60)

        later = datetime.now(timezone.utc) + timedelta(seconds=120)
        assert repo.get_cached_translation("acme", "en", "es", entry.source_hash, now=later) is None
        assert entry.is_expired(later) is True

    def test_save_same_key_updates_in_place(self, db_session):
        repo = TranslationCacheRepository(db_session)
        first = self.save(repo, translated="Hola")
        second = self.save(repo, translated="¡Hola!", provider="google")

        assert first.id == second.id
        stats = repo.get_stats("acme")
        assert stats["total_entries"] == 1
        entry = repo.get_cached_translation("acme", "en", "es", first.source_hash)
        assert entry.translated_text == "¡Hola!"
        assert entry.provider == "google"

    def test_increment_hit_count(self, db_session):
        repo = TranslationCacheRepository(db_session)
        entry = self.save(repo)

        repo.increment_hit_count("acme", "en", "es", entry.source_hash)
        repo.increment_hit_count("acme", "en", "es", entry.source_hash)

        assert repo.get_stats("acme")["total_hits"] == 2

    def test_delete_expired(self, db_session):
        repo = TranslationCacheRepository(db_session)
        self.save(repo, text="short", ttl_seconds=60)
        self.save(repo, text="long", ttl_seconds=86400)

        later = datetime.now(timezone.utc) + timedelta(seconds=120)
        assert repo.delete_expired(now=later) == 1
        assert repo.get_stats("acme")["total_entries"] == 1

    def test_delete_by_tenant(self, db_session):
        repo = TranslationCacheRepository(db_session)
        self.save(repo, tenant="acme")
        self.save(repo, tenant="acme", text="World")
        self.save(repo, tenant="globex")

        assert repo.delete_by_tenant("acme") == 2
        assert repo.get_stats("acme")["total_entries"] == 0
        assert repo.get_stats("globex")["total_entries"] == 1

    def test_delete_by_language_pair(self, db_session):
        repo = TranslationCacheRepository(db_session)
        self.save(repo, dst="es")
        self.save(repo, dst="fr")

        assert repo.delete_by_language_pair("acme", "en", "es") == 1
        assert repo.get_stats("acme")["language_pairs"] == ["en->fr"]

    def test_stats(self, db_session):
        repo = TranslationCacheRepository(db_session)
        self.save(repo, dst="hi")
        self.save(repo, dst="es")
        self.save(repo, dst="es", text="World")

        stats = repo.get_stats("acme")

        assert stats == {
            "total_entries": 3,
            "total_hits": 0,
            "language_pairs": ["en->es", "en->hi"],
        }


# =============================================================================
# Fast Tier
# =============================================================================


class TestRedisTranslationCache:
    async def test_set_and_get(self, fast_tier, fake_redis):
        await fast_tier.set("acme", "en", "es", "", "h1", "Hola", "bergamot")

        cached = await fast_tier.get("acme", "en", "es", "", "h1")

        assert isinstance(cached, CachedTranslation)
        assert cached.translated_text == "Hola"
        assert cached.provider == "bergamot"
        assert fake_redis.ttls["trans:acme:en:es::h1"] == 3600

    async def test_miss(self, fast_tier):
        assert await fast_tier.get("acme", "en", "es", "", "missing") is None

    async def test_redis_error_is_a_miss(self, fast_tier, fake_redis):
        await fast_tier.set("acme", "en", "es", "", "h1", "Hola", "bergamot")
        fake_redis.fail = True

        assert await fast_tier.get("acme", "en", "es", "", "h1") is None
        assert await fast_tier.ping() is False

    async def test_malformed_value_is_a_miss(self, fast_tier, fake_redis):
        fake_redis.store["trans:acme:en:es::h1"] = "not json"

        assert await fast_tier.get("acme", "en", "es", "", "h1") is None

    async def test_close_releases_client(self):
        client = AsyncMock()

        await RedisTranslationCache(client).close()

        client.aclose.assert_awaited_once()

    async def test_invalidate_tenant(self, fast_tier, fake_redis):
        await fast_tier.set("acme", "en", "es", "", "h1", "Hola", "p")
        await fast_tier.set("acme", "en", "fr", "", "h2", "Salut", "p")
        await fast_tier.set("globex", "en", "es", "", "h1", "Hola", "p")

        assert await fast_tier.invalidate_tenant("acme") == 2
        assert list(fake_redis.store) == ["trans:globex:en:es::h1"]

    async def test_invalidate_language_pair(self, fast_tier, fake_redis):
        await fast_tier.set("acme", "en", "es", "", "h1", "Hola", "p")
        await fast_tier.set("acme", "en", "fr", "", "h2", "Salut", "p")

        assert await fast_tier.invalidate_language_pair("acme", "en", "es") == 1
        assert list(fake_redis.store) == ["trans:acme:en:fr::h2"]

    @pytest.mark.parametrize("tenant_id", ["*", "ac?e", "[a]cme", "acm\\e"])
    async def test_glob_characters_match_literally(self, fast_tier, fake_redis, tenant_id):
        await fast_tier.set("acme", "en", "es", "", "h1", "Hola", "p")
        await fast_tier.set("other", "en", "es", "", "h1", "Hola", "p")

        assert await fast_tier.invalidate_tenant(tenant_id) == 0
        assert await fast_tier.invalidate_language_pair(tenant_id, "*", "*") == 0
        assert len(fake_redis.store) == 2

    async def test_invalidate_only_the_literal_tenant(self, fast_tier, fake_redis):
        await fast_tier.set("acme", "en", "es", "", "h1", "Hola", "p")
        await fast_tier.set("*", "en", "es", "", "h1", "Hola", "p")

        assert await fast_tier.invalidate_tenant("*") == 1
        assert list(fake_redis.store) == ["trans:acme:en:es::h1"]

    def test_escape_glob(self):
        assert escape_glob("a*b?c[d]e\\f") == "a\\*b\\?c\\[d\\]e\\\\f"
        assert escape_glob("acme") == "acme"


# =============================================================================
# Two-Tier Facade
# =============================================================================


@pytest.fixture
def cache_service(fast_tier, session_factory, writer):
    return TranslationCacheService(
        fast_tier=fast_tier, session_factory=session_factory, writer=writer, ttl_seconds=3600
    )


class TestTranslationCacheService:
    async def test_store_writes_both_tiers(self, cache_service, writer, fake_redis, session_factory):
        cache_service.store("acme", "en", "hi", "Hello", "नमस्ते", "huggingface", context="ui")
        await writer.drain()

        assert len(fake_redis.store) == 1
        with session_factory() as db:
            assert TranslationCacheRepository(db).get_stats("acme")["total_entries"] == 1

        cached = await cache_service.get("acme", "en", "hi", "Hello", context="ui")
        assert cached.translated_text == "नमस्ते"
        assert cached.provider == "huggingface"
        assert cached.from_cache is True

    async def test_miss(self, cache_service):
        assert await cache_service.get("acme", "en", "hi", "Hello") is None

    async def test_context_is_part_of_key(self, cache_service, writer):
        cache_service.store("acme", "en", "hi", "Hello", "नमस्ते", "p", context="ui")
        await writer.drain()

        assert await cache_service.get("acme", "en", "hi", "Hello", context="legal") is None

    async def test_durable_hit_repopulates_fast_tier(
        self, cache_service, writer, fake_redis, session_factory
    ):
        cache_service.store("acme", "en", "es", "Hello", "Hola", "libretranslate")
        await writer.drain()
        fake_redis.store.clear()

        cached = await cache_service.get("acme", "en", "es", "Hello")
        await writer.drain()

        assert cached.translated_text == "Hola"
        assert len(fake_redis.store) == 1
        with session_factory() as db:
            assert TranslationCacheRepository(db).get_stats("acme")["total_hits"] == 1

    async def test_fast_tier_outage_falls_through(self, cache_service, writer, fake_redis):
        cache_service.store("acme", "en", "es", "Hello", "Hola", "libretranslate")
        await writer.drain()
        fake_redis.fail = True

        cached = await cache_service.get("acme", "en", "es", "Hello")
        await writer.drain()

        assert cached.translated_text == "Hola"
        # The failed repopulate is logged and counted, never raised
        assert writer.failed == 1

    async def test_durable_read_failure_is_a_miss(self, tmp_path, writer):
        broken_engine = create_db_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        service = TranslationCacheService(
            fast_tier=None,
            session_factory=create_session_factory(broken_engine),
            writer=writer,
        )

        assert await service.get("acme", "en", "es", "Hello") is None
        broken_engine.dispose()

    async def test_invalidate_tenant(self, cache_service, writer):
        cache_service.store("acme", "en", "es", "Hello", "Hola", "p")
        cache_service.store("acme", "en", "fr", "Hello", "Bonjour", "p")
        cache_service.store("globex", "en", "es", "Hello", "Hola", "p")
        await writer.drain()

        counts = await cache_service.invalidate_tenant("acme")

        assert counts == {"fast_tier": 2, "durable_tier": 2}
        assert await cache_service.get("acme", "en", "es", "Hello") is None
        assert await cache_service.get("globex", "en", "es", "Hello") is not None

    async def test_invalidate_language_pair(self, cache_service, writer):
        cache_service.store("acme", "en", "es", "Hello", "Hola", "p")
        cache_service.store("acme", "en", "fr", "Hello", "Bonjour", "p")
        await writer.drain()

        counts = await cache_service.invalidate_language_pair("acme", "en", "es")

        assert counts == {"fast_tier": 1, "durable_tier": 1}
        assert await cache_service.get("acme", "en", "fr", "Hello") is not None

    async def test_stats_and_sweep(self, cache_service, writer):
        cache_service.store("acme", "en", "es", "Hello", "Hola", "p")
        await writer.drain()

        stats = await cache_service.get_stats("acme")

        assert stats["total_entries"] == 1
        assert await cache_service.sweep_expired() == 0
