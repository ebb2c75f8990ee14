"""create_bug_tables

Revision ID: 3f8a2c1d9e47
Revises:
Create Date: 2026-10-17 21:14:02.418530

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f8a2c1d9e47'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - Add bug and comment tables."""
    # Create bugs table
    op.create_table(
        'bugs',
        sa.Column('id', sa.String(32), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('reporter', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='open'),
        sa.Column('priority', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('severity', sa.String(20), nullable=False, server_default='medium'),
        sa.Column('assigned_to', sa.Text()),
        sa.Column('steps_to_reproduce', sa.Text()),
        sa.Column('expected_behavior', sa.Text()),
        sa.Column('actual_behavior', sa.Text()),
        sa.Column('environment', sa.String(200)),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('attachments', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_bug_status_priority_created', 'bugs', ['status', 'priority', 'created_at'])
    op.create_index('idx_bug_status', 'bugs', ['status'])
    op.create_index('idx_bug_priority', 'bugs', ['priority'])
    op.create_index('idx_bug_severity', 'bugs', ['severity'])
    op.create_index('idx_bug_created', 'bugs', ['created_at'])

    # Create bug_comments table
    op.create_table(
        'bug_comments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bug_id', sa.String(32), nullable=False),
        sa.Column('author', sa.Text(), nullable=False),
        sa.Column('content', sa.String(500), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['bug_id'], ['bugs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_comment_bug', 'bug_comments', ['bug_id'])


def downgrade() -> None:
    """
    Downgrade schema - Remove bug and comment tables.

    ⚠️ WARNING: This will permanently delete all bugs and comments!
    Ensure you have a database backup before downgrading.
    """
    op.drop_index('idx_comment_bug', 'bug_comments')
    op.drop_table('bug_comments')

    op.drop_index('idx_bug_created', 'bugs')
    op.drop_index('idx_bug_severity', 'bugs')
    op.drop_index('idx_bug_priority', 'bugs')
    op.drop_index('idx_bug_status', 'bugs')
    op.drop_index('idx_bug_status_priority_created', 'bugs')
    op.drop_table('bugs')
