"""Create users, media catalog and collections

Revision ID: 001_initial_catalog
Revises:
Create Date: 2026-10-18

Tables:
1. users
2. media (canonical titles, indexed by kind + title for resolution)
3. media_sources (unique provider identity -> media)
4. collections (unique per user + media)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_catalog'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    """Create catalog schema."""
    op.create_table('users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('media',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('media_type', sa.String(length=20), nullable=False),
        sa.Column('title_zh', sa.String(length=500), nullable=False),
        sa.Column('title_original', sa.String(length=500), nullable=True),
        sa.Column('release_date', sa.String(length=50), nullable=True),
        sa.Column('duration', sa.String(length=100), nullable=True),
        sa.Column('year', sa.String(length=10), nullable=True),
        sa.Column('poster_url', sa.String(length=1000), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('staff', sa.JSON(), nullable=True),
        sa.Column('directors', sa.JSON(), nullable=True),
        sa.Column('actors', sa.JSON(), nullable=True),
        sa.Column('networks', sa.JSON(), nullable=True),
        sa.Column('rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('rating_douban', sa.Float(), nullable=True),
        sa.Column('rating_imdb', sa.Float(), nullable=True),
        sa.Column('rating_bangumi', sa.Float(), nullable=True),
        sa.Column('rating_maoyan', sa.Float(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_media_type_title_zh', 'media', ['media_type', 'title_zh'], unique=False)
    op.create_index('idx_media_type_title_original', 'media', ['media_type', 'title_original'], unique=False)

    op.create_table('media_sources',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('media_id', sa.String(length=36), nullable=False),
        sa.Column('source_type', sa.String(length=20), nullable=False),
        sa.Column('source_id', sa.String(length=255), nullable=False),
        sa.Column('source_url', sa.String(length=1000), nullable=False, server_default=''),
        *_timestamps(),
        sa.ForeignKeyConstraint(['media_id'], ['media.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_type', 'source_id', name='uq_media_source'),
    )
    op.create_index('idx_media_sources_media', 'media_sources', ['media_id'], unique=False)

    op.create_table('collections',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('media_id', sa.String(length=36), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='wish'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['media_id'], ['media.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'media_id', name='uq_user_media'),
    )
    op.create_index('idx_collections_user_created', 'collections', ['user_id', 'created_at'], unique=False)


def downgrade() -> None:
    """Drop catalog schema."""
    op.drop_index('idx_collections_user_created', table_name='collections')
    op.drop_table('collections')
    op.drop_index('idx_media_sources_media', table_name='media_sources')
    op.drop_table('media_sources')
    op.drop_index('idx_media_type_title_original', table_name='media')
    op.drop_index('idx_media_type_title_zh', table_name='media')
    op.drop_table('media')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
