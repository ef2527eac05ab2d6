"""Create seller commission and payout tables

Revision ID: 001_seller_commissions
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB


# revision identifiers, used by Alembic.
revision: str = '001_seller_commissions'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create commission tiers, seller settings, ledger, payouts and sequences."""

    # ====================
    # COMMISSION TIERS
    # ====================
    op.create_table(
        'commission_tiers',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('min_sales', sa.Numeric(14, 2), nullable=False),
        sa.Column('max_sales', sa.Numeric(14, 2), nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False, comment='Commission %'),
        sa.Column('platform_fee_rate', sa.Numeric(5, 2), nullable=False, server_default='0', comment='Platform fee %'),
        sa.Column('priority', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('min_sales <= max_sales', name='ck_commission_tiers_range'),
    )
    op.create_index('ix_commission_tiers_active_priority', 'commission_tiers', ['is_active', 'priority'])

    # ====================
    # SELLER SETTINGS
    # ====================
    op.create_table(
        'seller_commission_settings',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('seller_id', UUID(as_uuid=True), nullable=False, unique=True),
        sa.Column('custom_commission_rate', sa.Numeric(5, 2), nullable=True),
        sa.Column('use_custom_rate', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('minimum_payout_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('payment_method', sa.String(30), nullable=True, comment='BANK_TRANSFER, UPI, PAYPAL'),
        sa.Column('payment_details', JSONB, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_seller_commission_settings_seller_id', 'seller_commission_settings', ['seller_id'])

    # ====================
    # COMMISSION LEDGER
    # ====================
    op.create_table(
        'seller_commissions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('seller_id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_item_id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_amount', sa.Numeric(14, 2), nullable=False, comment='Order item line total'),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('platform_fee_rate', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('commission_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('platform_fee', sa.Numeric(14, 2), nullable=False),
        sa.Column('net_amount', sa.Numeric(14, 2), nullable=False, comment='commission_amount - platform_fee'),
        sa.Column('rate_source', sa.String(20), nullable=False),
        sa.Column('tier_id', UUID(as_uuid=True),
                  sa.ForeignKey('commission_tiers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='PENDING'),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_reference', sa.String(30), nullable=True, comment='Owning payout number'),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.String(500), nullable=True),
        sa.Column('version', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_seller_commissions_order_id', 'seller_commissions', ['order_id'])
    op.create_index('ix_seller_commissions_seller_status', 'seller_commissions', ['seller_id', 'status'])
    # One live commission per order item; cancelled rows are kept for audit
    op.create_index(
        'uq_seller_commissions_active_order_item',
        'seller_commissions',
        ['order_item_id'],
        unique=True,
        postgresql_where=sa.text("status <> 'CANCELLED'"),
    )

    # ====================
    # PAYOUTS
    # ====================
    op.create_table(
        'commission_payouts',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('seller_id', UUID(as_uuid=True), nullable=False),
        sa.Column('payout_number', sa.String(30), nullable=False, comment='PAY-000001'),
        sa.Column('total_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('transaction_fee', sa.Numeric(14, 2), nullable=False),
        sa.Column('net_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='PENDING'),
        sa.Column('payment_method', sa.String(30), nullable=False),
        sa.Column('payment_details', JSONB, nullable=True),
        sa.Column('transaction_reference', sa.String(100), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failure_reason', sa.String(500), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('version', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_commission_payouts_payout_number', 'commission_payouts', ['payout_number'], unique=True)
    op.create_index('ix_commission_payouts_seller_status', 'commission_payouts', ['seller_id', 'status'])

    op.create_table(
        'commission_payout_items',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('payout_id', UUID(as_uuid=True),
                  sa.ForeignKey('commission_payouts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('commission_id', UUID(as_uuid=True),
                  sa.ForeignKey('seller_commissions.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.UniqueConstraint('payout_id', 'commission_id', name='uq_payout_commission'),
    )
    op.create_index('ix_commission_payout_items_payout_id', 'commission_payout_items', ['payout_id'])
    op.create_index('ix_commission_payout_items_commission_id', 'commission_payout_items', ['commission_id'])

    # ====================
    # DOCUMENT SEQUENCES
    # ====================
    op.create_table(
        'document_sequences',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('document_type', sa.String(10), nullable=False, unique=True),
        sa.Column('document_name', sa.String(100), nullable=False),
        sa.Column('current_number', sa.Integer, nullable=False, server_default='0'),
        sa.Column('padding_length', sa.Integer, nullable=False, server_default='6'),
        sa.Column('separator', sa.String(5), nullable=False, server_default='-'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    )


def downgrade() -> None:
    """Drop all seller commission tables"""
    op.drop_table('document_sequences')
    op.drop_table('commission_payout_items')
    op.drop_table('commission_payouts')
    op.drop_table('seller_commissions')
    op.drop_table('seller_commission_settings')
    op.drop_table('commission_tiers')
