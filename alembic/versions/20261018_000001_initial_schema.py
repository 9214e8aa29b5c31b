"""Initial schema.

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

Members and the ternary tree, referrals, payments and subscriptions,
commissions, payout batches, the USDC ledger, treasury settings, the
crypto audit log, the notification outbox and monthly volume history.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '20261018_000001'
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.DECIMAL(precision=18, scale=8)
RATE = sa.DECIMAL(precision=5, scale=4)


def _created_at() -> sa.Column:
    return sa.Column(
        'created_at',
        sa.DateTime(timezone=True),
        server_default=sa.text('now()'),
        nullable=False,
    )


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='member'),
        sa.Column('referral_code', sa.String(length=20), nullable=True),
        sa.Column('referred_by', sa.Integer(), nullable=True),
        sa.Column(
            'membership_status', sa.String(length=20),
            nullable=False, server_default='locked'
        ),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            'initial_payment_completed', sa.Boolean(),
            nullable=False, server_default=sa.false()
        ),
        sa.Column('initial_payment_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'bypass_initial_payment', sa.Boolean(),
            nullable=False, server_default=sa.false()
        ),
        sa.Column(
            'bypass_subscription', sa.Boolean(),
            nullable=False, server_default=sa.false()
        ),
        sa.Column(
            'payment_schedule', sa.String(length=20),
            nullable=False, server_default='monthly'
        ),
        sa.Column('last_payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('qualified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('qualified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'direct_referrals_count', sa.Integer(), nullable=False, server_default='0'
        ),
        sa.Column(
            'accumulated_residual', MONEY, nullable=False, server_default='0',
            comment='Residual earned while not yet qualified'
        ),
        sa.Column('network_position_id', sa.String(length=20), nullable=True),
        sa.Column('network_level', sa.Integer(), nullable=True),
        sa.Column('network_position', sa.BigInteger(), nullable=True),
        sa.Column('tree_parent_network_position_id', sa.String(length=20), nullable=True),
        sa.Column(
            'last_referral_branch', sa.Integer(), nullable=True,
            comment="Branch (1-3) that received this user's last referral"
        ),
        sa.Column('total_network_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('active_network_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column(
            'current_commission_rate', RATE, nullable=False, server_default='0.10'
        ),
        sa.Column(
            'current_structure_number', sa.Integer(), nullable=False, server_default='1'
        ),
        sa.Column(
            'sniper_volume_current_month', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'sniper_volume_previous_month', MONEY, nullable=False, server_default='0'
        ),
        sa.Column('deposit_address', sa.String(length=42), nullable=True),
        sa.Column('deposit_derivation_index', sa.Integer(), nullable=True),
        sa.Column('payout_wallet_address', sa.String(length=42), nullable=True),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_connect_account_id', sa.String(length=255), nullable=True),
        sa.Column('sweep_status', sa.String(length=20), nullable=False, server_default='idle'),
        sa.Column('sweep_usdc_balance', MONEY, nullable=True),
        sa.Column('sweep_identified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sweep_funding_tx', sa.String(length=66), nullable=True),
        sa.Column('sweep_funded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sweep_tx', sa.String(length=66), nullable=True),
        sa.Column('sweep_executed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sweep_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sweep_error', sa.Text(), nullable=True),
        _created_at(),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True),
            server_default=sa.text('now()'), nullable=False
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['referred_by'], ['users.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('referral_code'),
        sa.UniqueConstraint('network_position_id'),
        sa.UniqueConstraint('deposit_address'),
        sa.UniqueConstraint('deposit_derivation_index'),
        sa.UniqueConstraint('stripe_customer_id'),
        sa.UniqueConstraint(
            'network_level', 'network_position', name='uq_users_network_slot'
        ),
        sa.CheckConstraint(
            'last_referral_branch IS NULL OR last_referral_branch BETWEEN 1 AND 3',
            name='check_user_last_referral_branch'
        ),
        sa.CheckConstraint(
            'sniper_volume_current_month >= 0',
            name='check_user_volume_non_negative'
        ),
        sa.CheckConstraint(
            'total_network_count >= 0 AND active_network_count >= 0',
            name='check_user_network_counts_non_negative'
        ),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_referred_by', 'users', ['referred_by'])
    op.create_index('ix_users_last_payment_date', 'users', ['last_payment_date'])
    op.create_index(
        'ix_users_tree_parent_network_position_id',
        'users', ['tree_parent_network_position_id']
    )
    op.create_index('idx_users_sweep_status', 'users', ['sweep_status'])

    op.create_table(
        'payout_batches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('batch_name', sa.String(length=100), nullable=False),
        sa.Column('batch_type', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('total_amount_usdc', MONEY, nullable=False, server_default='0'),
        sa.Column('total_payouts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('estimated_gas_matic', MONEY, nullable=False, server_default='0'),
        sa.Column(
            'commission_ids', postgresql.JSONB(), nullable=False,
            server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('successful_payouts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failed_payouts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_gas_spent_matic', MONEY, nullable=False, server_default='0'),
        sa.Column(
            'error_log', postgresql.JSONB(), nullable=False,
            server_default=sa.text("'[]'::jsonb")
        ),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_payout_batches_status', 'payout_batches', ['status'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('payment_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='succeeded'),
        sa.Column('payment_method', sa.String(length=20), nullable=False, server_default='usdc'),
        sa.Column('stripe_payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_invoice_id', sa.String(length=255), nullable=True),
        sa.Column('polygon_tx_hash', sa.String(length=66), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_payments_user_id', 'payments', ['user_id'])

    op.create_table(
        'usdc_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_type', sa.String(length=20), nullable=False),
        sa.Column('from_address', sa.String(length=42), nullable=True),
        sa.Column('to_address', sa.String(length=42), nullable=True),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('polygon_tx_hash', sa.String(length=66), nullable=True),
        sa.Column('block_number', sa.BigInteger(), nullable=True),
        sa.Column('gas_fee_matic', MONEY, nullable=True),
        sa.Column('related_payment_id', sa.Integer(), nullable=True),
        sa.Column('related_commission_id', sa.Integer(), nullable=True),
        sa.Column('payout_batch_id', sa.Integer(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(
            ['related_payment_id'], ['payments.id'], ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(
            ['payout_batch_id'], ['payout_batches.id'], ondelete='SET NULL'
        ),
        sa.UniqueConstraint('polygon_tx_hash'),
    )
    op.create_index('ix_usdc_transactions_user_id', 'usdc_transactions', ['user_id'])
    op.create_index(
        'idx_usdc_tx_type_status', 'usdc_transactions', ['transaction_type', 'status']
    )

    op.create_table(
        'commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_id', sa.Integer(), nullable=True),
        sa.Column('commission_type', sa.String(length=30), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column(
            'net_amount_usdc', MONEY, nullable=True,
            comment='Amount after fees, when it differs from amount'
        ),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('payout_batch_id', sa.Integer(), nullable=True),
        sa.Column('usdc_transaction_id', sa.Integer(), nullable=True),
        sa.Column('stripe_transfer_id', sa.String(length=255), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(
            ['payout_batch_id'], ['payout_batches.id'], ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(
            ['usdc_transaction_id'], ['usdc_transactions.id'], ondelete='SET NULL'
        ),
        sa.CheckConstraint('amount >= 0', name='check_commission_amount_non_negative'),
        sa.CheckConstraint(
            'retry_count >= 0', name='check_commission_retry_non_negative'
        ),
    )
    op.create_index('ix_commissions_referrer_id', 'commissions', ['referrer_id'])
    op.create_index('ix_commissions_created_at', 'commissions', ['created_at'])
    op.create_index(
        'idx_commissions_status_type', 'commissions', ['status', 'commission_type']
    )
    op.create_index('idx_commissions_batch', 'commissions', ['payout_batch_id'])

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column(
            'initial_payment_status', sa.String(length=20),
            nullable=False, server_default='pending'
        ),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('referrer_id', 'referred_id', name='uq_referral_pair'),
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_referred_id', 'referrals', ['referred_id'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('stripe_subscription_id', sa.String(length=255), nullable=False),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'cancel_at_period_end', sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        _created_at(),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True),
            server_default=sa.text('now()'), nullable=False
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('stripe_subscription_id'),
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])

    op.create_table(
        'treasury_settings',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True),
            server_default=sa.text('now()'), nullable=False
        ),
        sa.PrimaryKeyConstraint('key'),
    )

    op.create_table(
        'crypto_audit_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('admin_id', sa.Integer(), nullable=True),
        sa.Column('entity_type', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column(
            'details', postgresql.JSONB(), nullable=False,
            server_default=sa.text("'{}'::jsonb")
        ),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['admin_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_crypto_audit_log_user_id', 'crypto_audit_log', ['user_id'])
    op.create_index(
        'idx_crypto_audit_event_created', 'crypto_audit_log', ['event_type', 'created_at']
    )

    op.create_table(
        'notification_outbox',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('notification_type', sa.String(length=50), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False, server_default='email'),
        sa.Column(
            'data', postgresql.JSONB(), nullable=False,
            server_default=sa.text("'{}'::jsonb")
        ),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_retries', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('last_error', sa.Text(), nullable=True),
        _created_at(),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('idempotency_key'),
    )
    op.create_index('ix_notification_outbox_user_id', 'notification_outbox', ['user_id'])
    op.create_index('ix_notification_outbox_status', 'notification_outbox', ['status'])

    op.create_table(
        'volume_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('period', sa.String(length=7), nullable=False),
        sa.Column('personal_volume', MONEY, nullable=False, server_default='0'),
        sa.Column('total_network_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('active_network_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column(
            'direct_referrals_count', sa.Integer(), nullable=False, server_default='0'
        ),
        sa.Column('commission_rate', RATE, nullable=False),
        sa.Column('structure_number', sa.Integer(), nullable=False),
        sa.Column('gross_earnings', MONEY, nullable=False),
        sa.Column('capped_earnings', MONEY, nullable=False),
        sa.Column('can_withdraw', sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'period', name='uq_volume_history_user_period'),
    )
    op.create_index('ix_volume_history_user_id', 'volume_history', ['user_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('volume_history')
    op.drop_table('notification_outbox')
    op.drop_table('crypto_audit_log')
    op.drop_table('treasury_settings')
    op.drop_table('subscriptions')
    op.drop_table('referrals')
    op.drop_table('commissions')
    op.drop_table('usdc_transactions')
    op.drop_table('payments')
    op.drop_table('payout_batches')
    op.drop_table('users')
