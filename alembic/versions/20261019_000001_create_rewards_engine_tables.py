"""Create rewards engine tables

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

Creates the tables the engine writes: referral_tracking, trust_history,
user_rewards_summary and activity_transactions. profiles, spam_detection and
user_daily_stats are owned by the platform and only read here.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Referral relationships with materialized earnings
    op.create_table(
        'referral_tracking',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('referrer_id', sa.String(36), nullable=False),
        sa.Column('referred_user_id', sa.String(36), nullable=False),
        sa.Column('referral_code', sa.String(32), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('referral_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('verification_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('first_purchase_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('earnings_total', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('earnings_this_month', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('earnings_last_month', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('tier', sa.String(20), nullable=False, server_default='bronze'),
        sa.Column('commission_percentage', sa.DECIMAL(10, 4), nullable=False, server_default='0.05'),
        sa.Column('auto_share_total', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('auto_share_percentage', sa.DECIMAL(10, 4), nullable=False, server_default='0.5'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('earnings_total >= 0', name='check_referral_earnings_total_non_negative'),
        sa.CheckConstraint('earnings_this_month >= 0', name='check_referral_earnings_this_month_non_negative'),
        sa.CheckConstraint('earnings_last_month >= 0', name='check_referral_earnings_last_month_non_negative'),
        sa.CheckConstraint('earnings_this_month <= earnings_total', name='check_referral_month_within_total'),
        sa.CheckConstraint('auto_share_total >= 0', name='check_referral_auto_share_total_non_negative'),
        sa.CheckConstraint(
            'auto_share_percentage >= 0 AND auto_share_percentage <= 1',
            name='check_referral_auto_share_percentage_range',
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'verified', 'active', 'inactive')",
            name='check_referral_status_values',
        ),
        sa.CheckConstraint(
            "tier IN ('bronze', 'silver', 'gold', 'platinum')",
            name='check_referral_tier_values',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_referral_tracking_referral_code', 'referral_tracking', ['referral_code'], unique=True)
    op.create_index('ix_referral_tracking_referrer_id', 'referral_tracking', ['referrer_id'])
    op.create_index('ix_referral_tracking_referred_user_id', 'referral_tracking', ['referred_user_id'])
    op.create_index('idx_referral_tracking_referrer_status', 'referral_tracking', ['referrer_id', 'status'])
    op.create_index('idx_referral_tracking_referred_status', 'referral_tracking', ['referred_user_id', 'status'])

    # Trust score audit trail
    op.create_table(
        'trust_history',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('old_score', sa.Integer(), nullable=False),
        sa.Column('new_score', sa.Integer(), nullable=False),
        sa.Column('change_amount', sa.Integer(), nullable=False),
        sa.Column('change_percentage', sa.DECIMAL(12, 4), nullable=False, server_default='0'),
        sa.Column('change_reason', sa.Text(), nullable=False),
        sa.Column('factor_type', sa.String(50), nullable=False, server_default='manual'),
        sa.Column('metadata', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('idempotency_key', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', name='uq_trust_history_idempotency_key'),
    )
    op.create_index('ix_trust_history_user_id', 'trust_history', ['user_id'])
    op.create_index('idx_trust_history_user_created', 'trust_history', ['user_id', 'created_at'])

    # Per-user summary
    op.create_table(
        'user_rewards_summary',
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('trust_score', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('total_earned', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('available_balance', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('trust_score >= 0 AND trust_score <= 100', name='check_summary_trust_score_range'),
        sa.CheckConstraint('total_earned >= 0', name='check_summary_total_earned_non_negative'),
        sa.PrimaryKeyConstraint('user_id'),
    )

    # Append-only activity ledger
    op.create_table(
        'activity_transactions',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('activity_type', sa.String(50), nullable=False),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('amount_eloits', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('source_id', sa.String(36), nullable=True),
        sa.Column('source_type', sa.String(50), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_activity_transactions_user_id', 'activity_transactions', ['user_id'])
    op.create_index(
        'idx_activity_transactions_user_type_created',
        'activity_transactions',
        ['user_id', 'activity_type', 'created_at'],
    )
    op.create_index('idx_activity_transactions_source', 'activity_transactions', ['source_type', 'source_id'])


def downgrade() -> None:
    op.drop_index('idx_activity_transactions_source', 'activity_transactions')
    op.drop_index('idx_activity_transactions_user_type_created', 'activity_transactions')
    op.drop_index('ix_activity_transactions_user_id', 'activity_transactions')
    op.drop_table('activity_transactions')

    op.drop_table('user_rewards_summary')

    op.drop_index('idx_trust_history_user_created', 'trust_history')
    op.drop_index('ix_trust_history_user_id', 'trust_history')
    op.drop_table('trust_history')

    op.drop_index('idx_referral_tracking_referred_status', 'referral_tracking')
    op.drop_index('idx_referral_tracking_referrer_status', 'referral_tracking')
    op.drop_index('ix_referral_tracking_referred_user_id', 'referral_tracking')
    op.drop_index('ix_referral_tracking_referrer_id', 'referral_tracking')
    op.drop_index('ix_referral_tracking_referral_code', 'referral_tracking')
    op.drop_table('referral_tracking')
