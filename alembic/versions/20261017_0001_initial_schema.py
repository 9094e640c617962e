"""Initial schema - observation and image revisions, user roles

Revision ID: 0001
Revises: 
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _revision_columns() -> list:
    """Columns shared by every revisioned entity table."""
    return [
        sa.Column('item_id', sa.String(36), primary_key=True),
        sa.Column('revision_id', sa.Integer(), primary_key=True),
        sa.Column('owner', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('submitted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revision_created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
    ]


def _revision_indexes(table: str) -> None:
    op.create_index(f'ix_{table}_owner', table, ['owner'])
    op.create_index(f'ix_{table}_location', table, ['latitude', 'longitude'])
    # At most one published revision per item
    op.create_index(
        f'uq_{table}_published_item',
        table,
        ['item_id'],
        unique=True,
        sqlite_where=sa.text('published = 1'),
        postgresql_where=sa.text('published'),
    )


def upgrade() -> None:
    # Observation revisions
    op.create_table(
        'observation_revisions',
        *_revision_columns(),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_refs', sa.JSON(), nullable=False),
    )
    _revision_indexes('observation_revisions')
    op.create_index(
        'ix_observation_revisions_moderation',
        'observation_revisions',
        ['submitted', 'published'],
    )

    # Image revisions
    op.create_table(
        'image_revisions',
        *_revision_columns(),
        sa.Column('storage_key', sa.String(512), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('metadata_created_at', sa.DateTime(timezone=True), nullable=True),
    )
    _revision_indexes('image_revisions')
    op.create_index('ix_image_revisions_storage_key', 'image_revisions', ['storage_key'])

    # Explicit role assignments
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.String(255), primary_key=True),
        sa.Column('role', sa.String(50), primary_key=True),
        sa.Column('assigned_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('user_roles')
    op.drop_table('image_revisions')
    op.drop_table('observation_revisions')
