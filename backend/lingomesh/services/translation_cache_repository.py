"""
Translation Cache Repository

Durable cache tier on SQLAlchemy. Rows are unique per tenant, language pair
and content hash, and expire lazily.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lingomesh.core.logging import get_logger
from lingomesh.models.translation_cache import TranslationCacheEntry

logger = get_logger(__name__)


class TranslationCacheRepository:
    """
    Repository for persisted translations.

    Provides methods to:
    - Look up a non-expired translation
    - Save (insert or refresh) a translation
    - Update hit statistics
    - Delete expired, per-tenant or per-language-pair rows
    """

    def __init__(self, db: Session):
        self.db = db

    def get_cached_translation(
        self,
        tenant_id: str,
        source_lang: str,
        target_lang: str,
        source_hash: str,
        now: datetime | None = None,
    ) -> TranslationCacheEntry | None:
        """
        Get a cached translation if it exists and has not expired.

        Args:
            tenant_id: Tenant identifier
            source_lang: Source language code
            target_lang: Target language code
            source_hash: Content hash from TranslationCacheEntry.compute_hash

        Returns:
            The matching entry, or None on miss or expiry
        """
        stmt = select(TranslationCacheEntry).where(
            TranslationCacheEntry.tenant_id == tenant_id,
            TranslationCacheEntry.source_lang == source_lang,
            TranslationCacheEntry.target_lang == target_lang,
            TranslationCacheEntry.source_hash == source_hash,
            TranslationCacheEntry.expires_at > (now or datetime.now(timezone.utc)),
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def save_translation(
        self,
        tenant_id: str,
        source_lang: str,
        target_lang: str,
        source_text: str,
        translated_text: str,
        provider: str,
        ttl_seconds: int,
        context: str = "",
    ) -> TranslationCacheEntry:
        """
        Insert a translation, or refresh the existing row for the same key.

        Concurrent writers of the same key converge on one row: a lost insert
        race falls back to updating the winner's row.
        """
        source_hash = TranslationCacheEntry.compute_hash(
            source_lang, target_lang, source_text, context
        )
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl_seconds)

        existing = self._find(tenant_id, source_lang, target_lang, source_hash)
        if existing is None:
            entry = TranslationCacheEntry(
                tenant_id=tenant_id,
                source_lang=source_lang,
                target_lang=target_lang,
                source_hash=source_hash,
                source_text=source_text,
                translated_text=translated_text,
                context=context,
                provider=provider,
                hit_count=0,
                created_at=now,
                updated_at=now,
                expires_at=expires_at,
            )
            self.db.add(entry)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.debug(f"Concurrent insert for {source_lang}->{target_lang}, updating")
                existing = self._find(tenant_id, source_lang, target_lang, source_hash)
                if existing is None:
                    raise
            else:
                logger.info(
                    f"Saved translation to cache: {source_lang}->{target_lang} "
                    f"(provider={provider}, text_len={len(source_text)})"
                )
                return entry

        existing.translated_text = translated_text
        existing.provider = provider
        existing.context = context
        existing.updated_at = now
        existing.expires_at = expires_at
        self.db.commit()
        logger.debug(f"Refreshed cached translation {existing!r}")
        return existing

    def increment_hit_count(
        self, tenant_id: str, source_lang: str, target_lang: str, source_hash: str
    ) -> None:
        stmt = (
            update(TranslationCacheEntry)
            .where(
                TranslationCacheEntry.tenant_id == tenant_id,
                TranslationCacheEntry.source_lang == source_lang,
                TranslationCacheEntry.target_lang == target_lang,
                TranslationCacheEntry.source_hash == source_hash,
            )
            .values(hit_count=TranslationCacheEntry.hit_count + 1)
        )
        self.db.execute(stmt)
        self.db.commit()

    def delete_expired(self, now: datetime | None = None) -> int:
        """
        Delete rows past their expiry.

        Returns:
            Number of rows deleted
        """
        stmt = delete(TranslationCacheEntry).where(
            TranslationCacheEntry.expires_at <= (now or datetime.now(timezone.utc))
        )
        count = self.db.execute(stmt).rowcount
        self.db.commit()
        logger.info(f"Deleted {count} expired cache entries")
        return count

    def delete_by_tenant(self, tenant_id: str) -> int:
        stmt = delete(TranslationCacheEntry).where(TranslationCacheEntry.tenant_id == tenant_id)
        count = self.db.execute(stmt).rowcount
        self.db.commit()
        logger.warning(f"Cleared {count} cache entries for tenant {tenant_id}")
        return count

    def delete_by_language_pair(self, tenant_id: str, source_lang: str, target_lang: str) -> int:
        stmt = delete(TranslationCacheEntry).where(
            TranslationCacheEntry.tenant_id == tenant_id,
            TranslationCacheEntry.source_lang == source_lang,
            TranslationCacheEntry.target_lang == target_lang,
        )
        count = self.db.execute(stmt).rowcount
        self.db.commit()
        logger.info(
            f"Cleared {count} cache entries for tenant {tenant_id} {source_lang}->{target_lang}"
        )
        return count

    def get_stats(self, tenant_id: str) -> dict:
        """
        Get cache statistics for a tenant.

        Returns:
            Dictionary with total_entries, total_hits and language_pairs
        """
        base = select(TranslationCacheEntry).where(TranslationCacheEntry.tenant_id == tenant_id)
        total_entries = self.db.execute(
            select(func.count()).select_from(base.subquery())
        ).scalar_one()
        total_hits = (
            self.db.execute(
                select(func.sum(TranslationCacheEntry.hit_count)).where(
                    TranslationCacheEntry.tenant_id == tenant_id
                )
            ).scalar()
            or 0
        )
        pairs = self.db.execute(
            select(TranslationCacheEntry.source_lang, TranslationCacheEntry.target_lang)
            .where(TranslationCacheEntry.tenant_id == tenant_id)
            .distinct()
            .order_by(TranslationCacheEntry.source_lang, TranslationCacheEntry.target_lang)
        ).all()

        return {
            "total_entries": total_entries,
            "total_hits": int(total_hits),
            "language_pairs": [f"{src}->{dst}" for src, dst in pairs],
        }

    def _find(
        self, tenant_id: str, source_lang: str, target_lang: str, source_hash: str
    ) -> TranslationCacheEntry | None:
        stmt = select(TranslationCacheEntry).where(
            TranslationCacheEntry.tenant_id == tenant_id,
            TranslationCacheEntry.source_lang == source_lang,
            TranslationCacheEntry.target_lang == target_lang,
            TranslationCacheEntry.source_hash == source_hash,
        )
        return self.db.execute(stmt).scalar_one_or_none()
