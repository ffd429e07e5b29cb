"""create_shop_tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


order_status = sa.Enum(
    'pending', 'paid', 'shipped', 'completed', 'cancelled',
    name='shop_order_status_enum',
)
payment_method = sa.Enum('card', 'cod', name='shop_payment_method_enum')
discount_type = sa.Enum('percentage', 'fixed', name='shop_discount_type_enum')
gift_card_status = sa.Enum(
    'pending', 'active', 'redeemed', 'expired', name='shop_gift_card_status_enum'
)
inventory_reason = sa.Enum(
    'ORDER_PLACED', 'ORDER_CANCELLED', 'MANUAL_ADJUSTMENT', 'RESTOCK',
    name='shop_inventory_reason_enum',
)
audit_entity_type = sa.Enum(
    'product', 'variant', 'coupon', 'order', 'setting',
    name='shop_audit_entity_type_enum',
)


def _timestamps(updated: bool = True) -> list:
    cols = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)]
    if updated:
        cols.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False))
    return cols


def upgrade() -> None:
    """Upgrade schema - Create webshop tables."""

    # Catalog
    op.create_table(
        'shop_categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    op.create_table(
        'shop_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(512), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('sale_price', sa.Integer(), nullable=True),
        sa.Column('sale_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sale_end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('stock', sa.Integer(), server_default='0', nullable=False),
        sa.Column('reserved', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_archived', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('rating', sa.Numeric(3, 2), server_default='0', nullable=False),
        *_timestamps(),
        sa.CheckConstraint('price >= 0', name='product_price_non_negative'),
        sa.CheckConstraint('reserved >= 0', name='product_reserved_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['shop_categories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    op.create_table(
        'shop_product_variants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('options', JSONB(), nullable=False),
        sa.Column('price_override', sa.Integer(), nullable=True),
        sa.Column('sale_price', sa.Integer(), nullable=True),
        sa.Column('sale_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sale_end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('stock', sa.Integer(), server_default='0', nullable=False),
        sa.Column('reserved', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.CheckConstraint('reserved >= 0', name='variant_reserved_non_negative'),
        sa.ForeignKeyConstraint(['product_id'], ['shop_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
    )
    op.create_index('ix_shop_product_variants_product_id', 'shop_product_variants', ['product_id'])

    # Customers + orders
    op.create_table(
        'shop_customers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('auth_id', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('total_spent', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('auth_id'),
    )

    op.create_table(
        'shop_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(20), nullable=False),
        sa.Column('customer_auth_id', sa.String(255), nullable=True),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=False),
        sa.Column('customer_phone', sa.String(50), nullable=False),
        sa.Column('customer_address', sa.Text(), nullable=False),
        sa.Column('billing_name', sa.String(255), nullable=True),
        sa.Column('billing_address', sa.Text(), nullable=True),
        sa.Column('tax_number', sa.String(50), nullable=True),
        sa.Column('subtotal', sa.Integer(), nullable=False),
        sa.Column('coupon_discount', sa.Integer(), server_default='0', nullable=False),
        sa.Column('loyalty_discount', sa.Integer(), server_default='0', nullable=False),
        sa.Column('shipping_cost', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_price', sa.Integer(), nullable=False),
        sa.Column('coupon_code', sa.String(50), nullable=True),
        sa.Column('status', order_status, server_default='pending', nullable=False),
        sa.Column('payment_method', payment_method, nullable=False),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        sa.Column('cancel_reason', sa.String(50), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('total_price >= 0', name='order_total_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shop_orders_order_number', 'shop_orders', ['order_number'], unique=True)
    op.create_index('ix_shop_orders_customer_auth_id', 'shop_orders', ['customer_auth_id'])
    op.create_index('ix_shop_orders_status', 'shop_orders', ['status'])
    op.create_index('ix_shop_orders_payment_reference', 'shop_orders', ['payment_reference'])
    op.create_index('ix_shop_orders_created_at', 'shop_orders', ['created_at'])

    op.create_table(
        'shop_order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('variant_id', sa.Uuid(), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('line_total', sa.Integer(), nullable=False),
        sa.Column('selected_options', JSONB(), nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint('quantity > 0', name='order_item_positive_qty'),
        sa.ForeignKeyConstraint(['order_id'], ['shop_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['shop_products.id']),
        sa.ForeignKeyConstraint(['variant_id'], ['shop_product_variants.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shop_order_items_order_id', 'shop_order_items', ['order_id'])

    # Inventory ledger
    op.create_table(
        'shop_inventory_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('variant_id', sa.Uuid(), nullable=True),
        sa.Column('change', sa.Integer(), nullable=False),
        sa.Column('reason', inventory_reason, nullable=False),
        sa.Column('reference_id', sa.String(100), nullable=True),
        sa.Column('user_id', sa.String(255), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['product_id'], ['shop_products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['variant_id'], ['shop_product_variants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shop_inventory_logs_product', 'shop_inventory_logs', ['product_id', 'variant_id'])

    # Promotions
    op.create_table(
        'shop_coupons',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount_type', discount_type, nullable=False),
        sa.Column('value', sa.Numeric(12, 2), nullable=False),
        sa.Column('minimum_cart_total', sa.Integer(), nullable=True),
        sa.Column('maximum_discount', sa.Integer(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('usage_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('value > 0', name='coupon_value_positive'),
        sa.CheckConstraint('usage_count >= 0', name='coupon_usage_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['shop_categories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )

    op.create_table(
        'shop_coupon_products',
        sa.Column('coupon_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['coupon_id'], ['shop_coupons.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['shop_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('coupon_id', 'product_id'),
    )

    op.create_table(
        'shop_gift_cards',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('balance', sa.Integer(), nullable=False),
        sa.Column('status', gift_card_status, server_default='pending', nullable=False),
        sa.Column('purchaser_auth_id', sa.String(255), nullable=True),
        sa.Column('purchaser_email', sa.String(255), nullable=True),
        sa.Column('sender_name', sa.String(255), nullable=True),
        sa.Column('recipient_name', sa.String(255), nullable=True),
        sa.Column('recipient_email', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='gift_card_amount_positive'),
        sa.CheckConstraint('balance >= 0 AND balance <= amount', name='gift_card_balance_range'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shop_gift_cards_code', 'shop_gift_cards', ['code'], unique=True)

    op.create_table(
        'shop_gift_card_redemptions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('gift_card_id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('balance_before', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint('amount > 0', name='gift_card_redemption_positive'),
        sa.ForeignKeyConstraint(['gift_card_id'], ['shop_gift_cards.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_id'], ['shop_orders.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shop_gift_card_redemptions_gift_card_id', 'shop_gift_card_redemptions', ['gift_card_id'])

    op.create_table(
        'shop_price_alerts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('user_auth_id', sa.String(255), nullable=True),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('target_price', sa.Integer(), nullable=False),
        sa.Column('triggered', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('notified_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['product_id'], ['shop_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', 'product_id', name='uq_price_alert_email_product'),
    )
    op.create_index('ix_shop_price_alerts_email', 'shop_price_alerts', ['email'])

    # Webhooks, settings, audit
    op.create_table(
        'shop_webhook_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('provider', sa.String(30), nullable=False),
        sa.Column('event_id', sa.String(255), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('payload', JSONB(), nullable=True),
        sa.Column('processed', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('retry_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id'),
    )

    op.create_table(
        'shop_settings',
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )

    op.create_table(
        'shop_setting_audits',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=False),
        sa.Column('changed_by', sa.String(255), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shop_setting_audits_key', 'shop_setting_audits', ['key'])

    op.create_table(
        'shop_audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('entity_type', audit_entity_type, nullable=False),
        sa.Column('entity_id', sa.String(255), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('old_value', JSONB(), nullable=True),
        sa.Column('new_value', JSONB(), nullable=True),
        sa.Column('performed_by', sa.String(255), nullable=False),
        sa.Column('performed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shop_audit_logs_entity', 'shop_audit_logs', ['entity_type', 'entity_id'])


def downgrade() -> None:
    """Downgrade schema - Drop webshop tables."""
    for table in (
        'shop_audit_logs',
        'shop_setting_audits',
        'shop_settings',
        'shop_webhook_events',
        'shop_price_alerts',
        'shop_gift_card_redemptions',
        'shop_gift_cards',
        'shop_coupon_products',
        'shop_coupons',
        'shop_inventory_logs',
        'shop_order_items',
        'shop_orders',
        'shop_customers',
        'shop_product_variants',
        'shop_products',
        'shop_categories',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (
        audit_entity_type,
        inventory_reason,
        gift_card_status,
        discount_type,
        payment_method,
        order_status,
    ):
        enum.drop(bind, checkfirst=True)
