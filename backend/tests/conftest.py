"""
Shared pytest fixtures.

Provides fake providers, an in-memory Redis double, a controllable clock and
a throwaway SQLite durable tier.
"""

import asyncio
import re

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from lingomesh.core.db import Base, create_db_engine, create_session_factory
from lingomesh.models import TranslationCacheEntry  # noqa: F401  (registers table)
from lingomesh.services.background import BackgroundWriter
from lingomesh.services.providers.base import BaseTranslationProvider, TranslationResult
from lingomesh.services.providers.errors import ProviderResponseError
from lingomesh.services.redis_cache import RedisTranslationCache


# =============================================================================
# Test Doubles
# =============================================================================


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider(BaseTranslationProvider):
    """
    Scriptable provider.

    Translates ``text`` to ``"<name>:<target>:<text>"`` unless ``error`` is set
    or the text is listed in ``fail_texts``.
    """

    backoff_base = 30.0
    backoff_cap = 300.0

    def __init__(
        self,
        name: str,
        priority: int = 1,
        configured: bool = True,
        supported_pairs: set[tuple[str, str]] | None = None,
        error: Exception | None = None,
        fail_texts: set[str] | None = None,
        delay: float = 0.0,
        batch_error: Exception | None = None,
    ):
        super().__init__(base_url="http://fake", priority=priority)
        self._fake_name = name
        self.configured = configured
        self.supported_pairs = supported_pairs
        self.error = error
        self.fail_texts = fail_texts or set()
        self.delay = delay
        self.batch_error = batch_error
        self.calls: list[str] = []
        self.batch_calls: list[list[str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def provider_name(self) -> str:
        return self._fake_name

    def is_configured(self) -> bool:
        return self.configured

    async def supports_language_pair(self, source_lang: str, target_lang: str) -> bool:
        return self.supported_pairs is None or (source_lang, target_lang) in self.supported_pairs

    async def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            if text in self.fail_texts:
                raise ProviderResponseError(self.provider_name, f"cannot translate {text!r}", 500)
        finally:
            self.in_flight -= 1

        return TranslationResult(
            translated_text=f"{self.provider_name}:{target_lang}:{text}",
            source_lang=source_lang,
            target_lang=target_lang,
            provider=self.provider_name,
            latency=0.001,
        )

    async def translate_batch(self, texts, source_lang, target_lang):
        self.batch_calls.append(list(texts))
        if self.batch_error is not None:
            raise self.batch_error
        return await super().translate_batch(texts, source_lang, target_lang)


def redis_glob_to_regex(pattern: str) -> re.Pattern:
    """Compile a Redis MATCH pattern: ``*``, ``?``, ``[...]`` and backslash escapes."""
    parts = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            i += 1
            parts.append(re.escape(pattern[i]))
        elif char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                parts.append("[" + re.escape(pattern[i + 1 : end]) + "]")
                i = end
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts), re.DOTALL)


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` (string values, no TTL expiry)."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise RedisConnectionError("redis unavailable")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def scan(self, cursor=0, match=None, count=None):
        self._check()
        regex = None if match is None else redis_glob_to_regex(match)
        keys = [k for k in self.store if regex is None or regex.fullmatch(k)]
        return 0, keys

    async def delete(self, *keys):
        self._check()
        deleted = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                deleted += 1
                self.ttls.pop(key, None)
        return deleted

    async def ping(self):
        self._check()
        return True

    async def aclose(self):
        return None


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fast_tier(fake_redis) -> RedisTranslationCache:
    return RedisTranslationCache(fake_redis, ttl_seconds=3600)


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite engine with the schema created."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'cache.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
async def writer():
    background = BackgroundWriter(max_queue_size=100, workers=1)
    await background.start()
    yield background
    await background.stop(drain=True)
