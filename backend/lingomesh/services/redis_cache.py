"""
Redis fast cache tier.

A pure accelerator in front of the durable tier: entries expire with Redis
TTLs and any Redis error on read is treated as a miss.
"""

import json
import re
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from lingomesh.core.logging import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "trans"
SCAN_COUNT = 100

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


@dataclass(frozen=True)
class CachedTranslation:
    translated_text: str
    source_lang: str
    target_lang: str
    provider: str
    cached_at: str

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CachedTranslation":
        data = json.loads(raw)
        return cls(
            translated_text=data["translated_text"],
            source_lang=data["source_lang"],
            target_lang=data["target_lang"],
            provider=data.get("provider", ""),
            cached_at=data.get("cached_at", ""),
        )


def escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters so ``value`` only matches itself."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


def build_cache_key(
    tenant_id: str, source_lang: str, target_lang: str, context: str, source_hash: str
) -> str:
    return f"{KEY_PREFIX}:{tenant_id}:{source_lang}:{target_lang}:{context}:{source_hash}"


class RedisTranslationCache:
    """Tenant-namespaced translation cache on Redis."""

    def __init__(self, client: aioredis.Redis, ttl_seconds: int = 86400):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(
        cls,
        url: str,
        ttl_seconds: int = 86400,
        max_connections: int = 100,
        socket_timeout: float = 3.0,
    ) -> "RedisTranslationCache":
        client = aioredis.from_url(
            url,
            decode_responses=True,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
        )
        return cls(client, ttl_seconds)

    async def get(
        self, tenant_id: str, source_lang: str, target_lang: str, context: str, source_hash: str
    ) -> CachedTranslation | None:
        key = build_cache_key(tenant_id, source_lang, target_lang, context, source_hash)
        try:
            raw = await self.client.get(key)
        except RedisError as e:
            logger.warning(f"Redis read failed, treating as miss: {e}")
            return None
        if raw is None:
            return None
        try:
            return CachedTranslation.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding malformed cache value at {key}: {e}")
            return None

    async def set(
        self,
        tenant_id: str,
        source_lang: str,
        target_lang: str,
        context: str,
        source_hash: str,
        translated_text: str,
        provider: str,
    ) -> None:
        """Store a translation with the configured TTL. Errors propagate."""
        key = build_cache_key(tenant_id, source_lang, target_lang, context, source_hash)
        value = CachedTranslation(
            translated_text=translated_text,
            source_lang=source_lang,
            target_lang=target_lang,
            provider=provider,
            cached_at=datetime.now(timezone.utc).isoformat(),
        )
        await self.client.set(key, value.to_json(), ex=self.ttl_seconds)

    async def invalidate_tenant(self, tenant_id: str) -> int:
        return await self._delete_matching(f"{KEY_PREFIX}:{escape_glob(tenant_id)}:*")

    async def invalidate_language_pair(
        self, tenant_id: str, source_lang: str, target_lang: str
    ) -> int:
        pattern = ":".join(escape_glob(part) for part in (tenant_id, source_lang, target_lang))
        return await self._delete_matching(f"{KEY_PREFIX}:{pattern}:*")

    async def _delete_matching(self, pattern: str) -> int:
        deleted = 0
        cursor = 0
        while True:
            cursor, keys = await self.client.scan(cursor=cursor, match=pattern, count=SCAN_COUNT)
            if keys:
                deleted += await self.client.delete(*keys)
            if cursor == 0:
                break
        logger.info(f"Invalidated {deleted} cache keys matching {pattern}")
        return deleted

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()
