"""Initial schema: users, topics, tasks, research_data

Learn: Topics and tasks carry a deleted_at tombstone from the start;
default queries filter on it, so both get an index on user_id for the
per-user listings. research_data.user_id is intentionally not a foreign
key; research rows outlive the accounts they describe.

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(70), nullable=False, server_default=''),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('send_notifications', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('research_participant', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'topics',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(70), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'user_id', sa.Integer(),
            sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_topics_user_id', 'topics', ['user_id'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('state', sa.String(20), nullable=False, server_default='incomplete'),
        sa.Column('coord_x', sa.Float(), nullable=True),
        sa.Column('coord_y', sa.Float(), nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'user_id', sa.Integer(),
            sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'topic_id', sa.Integer(),
            sa.ForeignKey('topics.id', ondelete='CASCADE'), nullable=True,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_tasks_user_id', 'tasks', ['user_id'])
    op.create_index('ix_tasks_topic_id', 'tasks', ['topic_id'])

    op.create_table(
        'research_data',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('study', sa.String(255), nullable=False),
        sa.Column('source_model', sa.String(50), nullable=True),
        sa.Column('action', sa.String(50), nullable=True),
        sa.Column('data', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(50), nullable=False, server_default='database hook'),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('research_data')
    op.drop_index('ix_tasks_topic_id', table_name='tasks')
    op.drop_index('ix_tasks_user_id', table_name='tasks')
    op.drop_table('tasks')
    op.drop_index('ix_topics_user_id', table_name='topics')
    op.drop_table('topics')
    op.drop_table('users')
