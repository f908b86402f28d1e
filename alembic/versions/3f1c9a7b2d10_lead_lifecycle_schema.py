"""Lead lifecycle schema: leads, interactions, tasks

Revision ID: 3f1c9a7b2d10
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7b2d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -- Lead aggregate root --
    op.create_table(
        'leads',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('phone', sa.Text()),
        sa.Column('course', sa.Text()),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('segment', sa.Text(), nullable=False),
        sa.Column('traits', sa.JSON()),
        sa.Column('insights', sa.JSON()),
        sa.Column('note', sa.Text()),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('last_interaction_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('score >= 0 AND score <= 100', name='ck_leads_score_range'),
    )

    # -- Append-only interaction log --
    op.create_table(
        'interactions',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('lead_id', sa.Text(), sa.ForeignKey('leads.id'), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('interest', sa.Text(), nullable=True),
        sa.Column('intent', sa.Text(), nullable=True),
        sa.Column('engagement', sa.Text(), nullable=True),
        sa.Column('outcome', sa.Text(), nullable=True),
        sa.Column('outcome_detail', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text()),
        sa.Column('follow_up_day', sa.Integer(), nullable=True),
        sa.Column('interaction_score', sa.Integer(), nullable=False),
        sa.Column('previous_score', sa.Integer(), nullable=False),
        sa.Column('new_score', sa.Integer(), nullable=False),
        sa.UniqueConstraint('lead_id', 'seq', name='uq_interactions_lead_seq'),
    )
    op.create_index('ix_interactions_lead_id_date', 'interactions', ['lead_id', 'date'])

    # -- Tasks: at most one open per lead --
    op.create_table(
        'tasks',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('lead_id', sa.Text(), sa.ForeignKey('leads.id'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('segment', sa.Text(), nullable=False),
        sa.Column('follow_up_day', sa.Integer(), nullable=True),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_tasks_lead_id', 'tasks', ['lead_id'])
    op.create_index(
        'uq_tasks_one_open_per_lead', 'tasks', ['lead_id'],
        unique=True,
        sqlite_where=sa.text('completed = 0'),
        postgresql_where=sa.text('completed = false'),
    )


def downgrade() -> None:
    op.drop_index('uq_tasks_one_open_per_lead', 'tasks')
    op.drop_index('ix_tasks_lead_id', 'tasks')
    op.drop_table('tasks')

    op.drop_index('ix_interactions_lead_id_date', 'interactions')
    op.drop_table('interactions')

    op.drop_table('leads')
