"""add_outreach_tables

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-18 00:01:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create outreach_attempts table
    op.create_table(
        'outreach_attempts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('customer_id', sa.String(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('channel', sa.String(), nullable=False),
        sa.Column('response_time_hours', sa.Float(), nullable=False),
        sa.Column('sentiment', sa.Float(), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('engagement_score', sa.Float(), nullable=False),
        sa.Column('follow_up_required', sa.Boolean(), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('attempted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_outreach_attempts_customer_sequence', 'outreach_attempts', ['customer_id', 'sequence'])

    # Create channel_effectiveness table
    op.create_table(
        'channel_effectiveness',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('customer_id', sa.String(), nullable=False),
        sa.Column('channel', sa.String(), nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('customer_id', 'channel', name='uq_channel_effectiveness_customer_channel')
    )

    # Create outreach_escalations table
    op.create_table(
        'outreach_escalations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('customer_id', sa.String(), nullable=False),
        sa.Column('document_id', sa.String(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('rule_priority', sa.Integer(), nullable=False),
        sa.Column('requires_approval', sa.Boolean(), nullable=False),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_outreach_escalations_customer_id', 'outreach_escalations', ['customer_id'])


def downgrade() -> None:
    op.drop_index('ix_outreach_escalations_customer_id', table_name='outreach_escalations')
    op.drop_table('outreach_escalations')
    op.drop_table('channel_effectiveness')
    op.drop_index('ix_outreach_attempts_customer_sequence', table_name='outreach_attempts')
    op.drop_table('outreach_attempts')
