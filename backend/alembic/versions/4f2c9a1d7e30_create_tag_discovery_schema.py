"""create_tag_discovery_schema

Revision ID: 4f2c9a1d7e30
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f2c9a1d7e30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


VISIBLE_NOVELS = sa.text('is_published = 1 AND is_banned = 0')


def upgrade() -> None:
    """Upgrade schema."""
    conn = op.get_bind()

    # Tables may already exist on databases created with create_all()
    tables = [row[0] for row in conn.execute(sa.text(
        "SELECT name FROM sqlite_master WHERE type='table'"
    ))]

    if 'categories' not in tables:
        op.create_table(
            'categories',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.Text(), nullable=False),
            sa.Column('slug', sa.String(100), nullable=False, unique=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )

    if 'tags' not in tables:
        op.create_table(
            'tags',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(30), nullable=False, unique=True),
            sa.Column('slug', sa.String(30), nullable=False, unique=True),
            sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.CheckConstraint('count >= 0', name='tag_count_non_negative'),
        )
        op.create_index('idx_tags_count', 'tags', [sa.text('count DESC')], unique=False)

    if 'novels' not in tables:
        op.create_table(
            'novels',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('title', sa.Text(), nullable=False),
            sa.Column('slug', sa.String(200), nullable=False, unique=True),
            sa.Column('author_name', sa.Text(), nullable=True),
            sa.Column('blurb', sa.Text(), nullable=True),
            sa.Column('status', sa.String(20), nullable=True),
            sa.Column('category_id', sa.Integer(),
                      sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
            sa.Column('is_published', sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('is_banned', sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('bookmark_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_chapters', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('hot_score', sa.Float(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
        )

        # Sort-mode indexes, partial on visible novels
        op.create_index('idx_novels_hot', 'novels', [sa.text('hot_score DESC'), 'id'],
                        unique=False, sqlite_where=VISIBLE_NOVELS)
        op.create_index('idx_novels_bookmarks', 'novels', [sa.text('bookmark_count DESC'), 'id'],
                        unique=False, sqlite_where=VISIBLE_NOVELS)
        op.create_index('idx_novels_views', 'novels', [sa.text('view_count DESC'), 'id'],
                        unique=False, sqlite_where=VISIBLE_NOVELS)
        op.create_index('idx_novels_category', 'novels', ['category_id'], unique=False)

    if 'novel_tags' not in tables:
        op.create_table(
            'novel_tags',
            sa.Column('novel_id', sa.Integer(),
                      sa.ForeignKey('novels.id', ondelete='CASCADE'), primary_key=True),
            sa.Column('tag_id', sa.Integer(),
                      sa.ForeignKey('tags.id', ondelete='CASCADE'), primary_key=True),
        )
        op.create_index('idx_novel_tags_tag', 'novel_tags', ['tag_id', 'novel_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_novel_tags_tag', table_name='novel_tags')
    op.drop_table('novel_tags')

    op.drop_index('idx_novels_category', table_name='novels')
    op.drop_index('idx_novels_views', table_name='novels')
    op.drop_index('idx_novels_bookmarks', table_name='novels')
    op.drop_index('idx_novels_hot', table_name='novels')
    op.drop_table('novels')

    op.drop_index('idx_tags_count', table_name='tags')
    op.drop_table('tags')

    op.drop_table('categories')
