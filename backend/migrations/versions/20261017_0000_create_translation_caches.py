"""Create translation caches

Revision ID: create_translation_caches
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_translation_caches'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'translation_caches',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=50), nullable=False, comment='Tenant that owns the entry'),
        sa.Column('source_lang', sa.String(length=10), nullable=False, comment='Source language code'),
        sa.Column('target_lang', sa.String(length=10), nullable=False, comment='Target language code'),
        sa.Column('source_hash', sa.String(length=64), nullable=False, comment='SHA256 of languages, source text and context'),
        sa.Column('source_text', sa.Text(), nullable=False, comment='Original text'),
        sa.Column('translated_text', sa.Text(), nullable=False, comment='Translated text'),
        sa.Column('context', sa.String(length=100), nullable=False, server_default='', comment='Optional context label'),
        sa.Column('hit_count', sa.Integer(), nullable=False, server_default='0', comment='Number of durable-tier hits'),
        sa.Column('provider', sa.String(length=50), nullable=False, server_default='', comment='Provider that produced the translation'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False, comment='Entry is a miss after this time'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'tenant_id', 'source_lang', 'target_lang', 'source_hash',
            name='uq_translation_cache_tenant_pair_hash',
        ),
    )

    op.create_index('ix_translation_cache_tenant', 'translation_caches', ['tenant_id'], unique=False)
    op.create_index('ix_translation_cache_languages', 'translation_caches', ['source_lang', 'target_lang'], unique=False)
    op.create_index('ix_translation_cache_expires', 'translation_caches', ['expires_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_translation_cache_expires', table_name='translation_caches')
    op.drop_index('ix_translation_cache_languages', table_name='translation_caches')
    op.drop_index('ix_translation_cache_tenant', table_name='translation_caches')

    op.drop_table('translation_caches')
