"""initial order core tables

Revision ID: 7b1e2c4d9a10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7b1e2c4d9a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(10, 2), nullable=nullable)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone_no', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('license', sa.String(), nullable=True),
        sa.Column('can_login', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_user_email', 'user', ['email'])

    op.create_table(
        'product',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('sku_code', sa.String(), nullable=True),
        _money('price'),
        _money('selling_price', nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('held_quantity', sa.Integer(), nullable=False),
        sa.Column('status', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('held_quantity >= 0 AND held_quantity <= stock', name='ck_product_held_within_stock'),
    )

    op.create_table(
        'product_variation',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        _money('price'),
    )
    op.create_index('ix_product_variation_product_id', 'product_variation', ['product_id'])

    op.create_table(
        'vehicle',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('vehicle_type', sa.String(), nullable=False),
        sa.Column('base_charge', sa.Numeric(8, 2), nullable=False),
        sa.Column('max_distance_km', sa.Integer(), nullable=False),
        sa.Column('additional_charge_per_km', sa.Numeric(8, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'user_vehicle',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('vehicle_id', sa.Integer(), sa.ForeignKey('vehicle.id'), nullable=False),
        sa.Column('vehicle_number', sa.String(), nullable=True),
    )
    op.create_index('ix_user_vehicle_user_id', 'user_vehicle', ['user_id'])

    op.create_table(
        'cart',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False, unique=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'cart_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cart_id', sa.Integer(), sa.ForeignKey('cart.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('variation_id', sa.Integer(), sa.ForeignKey('product_variation.id'), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('price'),
        _money('total_price'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_cart_item_cart_id', 'cart_item', ['cart_id'])

    op.create_table(
        'order',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        _money('subtotal'),
        _money('tax_amount'),
        _money('discount_amount'),
        _money('shipping_amount'),
        _money('delivery_charges', nullable=True),
        _money('total_amount'),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('payment_status', sa.String(), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=True),
        sa.Column('shipping_address', sa.JSON(), nullable=True),
        sa.Column('billing_address', sa.JSON(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('delivery_distance', sa.Float(), nullable=True),
        sa.Column('delivery_person_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('delivery_driver', sa.String(), nullable=True),
        sa.Column('vehicle_id', sa.Integer(), sa.ForeignKey('vehicle.id'), nullable=True),
        sa.Column('delivery_vehicle', sa.String(), nullable=True),
        sa.Column('rejection_reason', sa.String(), nullable=True),
        sa.Column('cancellation_reason', sa.String(), nullable=True),
        sa.Column('status_updated_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_order_order_number', 'order', ['order_number'], unique=True)
    op.create_index('ix_order_user_id', 'order', ['user_id'])
    op.create_index('ix_order_status', 'order', ['status'])

    op.create_table(
        'order_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('order.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('variation_id', sa.Integer(), sa.ForeignKey('product_variation.id'), nullable=True),
        sa.Column('product_name', sa.String(), nullable=False),
        _money('price'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('total_price'),
    )
    op.create_index('ix_order_item_order_id', 'order_item', ['order_id'])

    op.create_table(
        'order_sequence',
        sa.Column('financial_year', sa.String(), primary_key=True),
        sa.Column('last_value', sa.Integer(), nullable=False),
    )

    op.create_table(
        'order_event',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('order.id'), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('label', sa.String(), nullable=False),
        sa.Column('order_status', sa.String(), nullable=True),
        sa.Column('payment_status', sa.String(), nullable=True),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.String(), nullable=False),
    )
    op.create_index('ix_order_event_order_created', 'order_event', ['order_id', 'created_at'])
    op.create_index('ix_order_event_event_type', 'order_event', ['event_type'])

    op.create_table(
        'payment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('order.id'), nullable=False),
        sa.Column('payment_gateway', sa.String(), nullable=False),
        sa.Column('gateway_order_id', sa.String(), nullable=False),
        sa.Column('txn_id', sa.String(), nullable=True),
        _money('amount'),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('payment_url', sa.String(), nullable=True),
        sa.Column('error_message', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_payment_order_id', 'payment', ['order_id'])
    op.create_index('ix_payment_payment_gateway', 'payment', ['payment_gateway'])
    op.create_index('ix_payment_gateway_order_id', 'payment', ['gateway_order_id'], unique=True)
    op.create_index('ix_payment_txn_id', 'payment', ['txn_id'])

    op.create_table(
        'payment_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('payment_id', sa.Integer(), sa.ForeignKey('payment.id'), nullable=False),
        sa.Column('source', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('response', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_payment_log_payment_id', 'payment_log', ['payment_id'])

    op.create_table(
        'payment_refund',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('payment_id', sa.Integer(), sa.ForeignKey('payment.id'), nullable=False),
        sa.Column('refund_id', sa.String(), nullable=False),
        _money('amount'),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('gateway_response', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_payment_refund_payment_id', 'payment_refund', ['payment_id'])
    op.create_index('ix_payment_refund_refund_id', 'payment_refund', ['refund_id'])

    op.create_table(
        'tax_configuration',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tax_name', sa.String(), nullable=False),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('tax_type', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'notification',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('recipient_role', sa.Enum('admin', 'customer', 'delivery_person', name='recipientrole'), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('trigger_source', sa.String(), nullable=False),
        sa.Column('related_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('content', sa.String(), nullable=False),
        sa.Column('channel', sa.Enum('email', 'sms', 'system', name='notificationchannel'), nullable=False),
        sa.Column('status', sa.Enum('sent', 'failed', name='notificationstatus'), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'notification',
        'tax_configuration',
        'payment_refund',
        'payment_log',
        'payment',
        'order_event',
        'order_sequence',
        'order_item',
        'order',
        'cart_item',
        'cart',
        'user_vehicle',
        'vehicle',
        'product_variation',
        'product',
        'user',
    ):
        op.drop_table(table)
    sa.Enum(name='recipientrole').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='notificationchannel').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='notificationstatus').drop(op.get_bind(), checkfirst=True)
