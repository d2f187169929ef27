"""
Translation cache ORM model (durable cache tier).
"""

import hashlib
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lingomesh.core.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TranslationCacheEntry(Base):
    """
    A persisted translation, unique per tenant, language pair and content hash.

    Rows expire lazily: readers compare ``expires_at`` with the current time and
    a periodic sweep deletes rows past expiry.
    """

    __tablename__ = "translation_caches"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "source_lang", "target_lang", "source_hash",
            name="uq_translation_cache_tenant_pair_hash",
        ),
        Index("ix_translation_cache_tenant", "tenant_id"),
        Index("ix_translation_cache_languages", "source_lang", "target_lang"),
        Index("ix_translation_cache_expires", "expires_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    tenant_id: Mapped[str] = mapped_column(String(50), nullable=False)
    source_lang: Mapped[str] = mapped_column(String(10), nullable=False)
    target_lang: Mapped[str] = mapped_column(String(10), nullable=False)
    source_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    source_text: Mapped[str] = mapped_column(Text, nullable=False)
    translated_text: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    hit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    provider: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @staticmethod
    def compute_hash(
        source_lang: str,
        target_lang: str,
        source_text: str,
        context: str = "",
    ) -> str:
        """
        Compute the content hash used as the cache lookup key.

        SHA-256 over ``source_lang|target_lang|source_text|context``, hex encoded.
        """
        data = f"{source_lang}|{target_lang}|{source_text}|{context}"
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    def is_expired(self, now: datetime | None = None) -> bool:
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            # SQLite drops tzinfo on the way back
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= (now or utcnow())

    def __repr__(self) -> str:
        return (
            f"<TranslationCacheEntry {self.tenant_id}:{self.source_lang}->{self.target_lang} "
            f"{self.source_hash[:12]}>"
        )
