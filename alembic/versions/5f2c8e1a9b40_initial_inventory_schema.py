"""initial inventory schema

Revision ID: 5f2c8e1a9b40
Revises:
Create Date: 2026-02-02 10:12:44.516208

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5f2c8e1a9b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

change_type_enum = sa.Enum('RECEIVE', 'CONSUME', 'SALE', 'ADJUST', 'WASTE', name='inventory_change_type_enum')
sale_source_enum = sa.Enum('MANUAL', 'SQUARE', 'OTHER', name='sale_source_enum')
payment_method_enum = sa.Enum('CASH', 'CARD', 'OTHER', name='sale_payment_method_enum')


def upgrade():
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=False),
        sa.Column('unit_of_measure', sa.String(length=50), nullable=False),
        sa.Column('cost_per_unit', sa.Numeric(12, 2), nullable=False),
        sa.Column('alert_threshold', sa.Numeric(12, 2), nullable=False),
        sa.Column('barcode', sa.String(length=120), nullable=True),
        sa.Column('barcode_number', sa.String(length=64), nullable=True),
        sa.Column('stock_quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('is_auto_deduct', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_items_stock_non_negative'),
    )
    op.create_index('ix_items_barcode', 'items', ['barcode'])
    op.create_index('ix_items_barcode_number', 'items', ['barcode_number'], unique=True)

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False, unique=True),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        'uq_locations_single_default',
        'locations',
        ['is_default'],
        unique=True,
        postgresql_where=sa.text('is_default'),
        sqlite_where=sa.text('is_default = 1'),
    )

    op.create_table(
        'item_locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('item_id', 'location_id', name='uq_item_location'),
        sa.CheckConstraint('quantity >= 0', name='ck_item_locations_non_negative'),
    )

    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='SET NULL'), nullable=True),
        sa.Column('quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('source', sale_source_enum, nullable=False),
        sa.Column('payment_method', payment_method_enum, nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('sale_date', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'inventory_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('change_type', change_type_enum, nullable=False),
        sa.Column('quantity_change', sa.Numeric(12, 2), nullable=False),
        sa.Column('unit_cost_at_time', sa.Numeric(12, 2), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('sale_id', sa.Integer(), sa.ForeignKey('sales.id', ondelete='SET NULL'), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_inventory_log_user_id', 'inventory_log', ['user_id'])
    op.create_index('idx_inventory_log_item_ts', 'inventory_log', ['item_id', 'timestamp'])
    op.create_index('idx_inventory_log_ts', 'inventory_log', ['timestamp'])

    op.create_table(
        'webhook_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.String(length=255), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_webhook_events_event_id', 'webhook_events', ['event_id'], unique=True)

    op.create_table(
        'item_dates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('target_date', sa.Date(), nullable=False),
        sa.Column('notify_manager', sa.Boolean(), nullable=False),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'general_dates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('target_date', sa.Date(), nullable=False),
        sa.Column('notify_manager', sa.Boolean(), nullable=False),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table('general_dates')
    op.drop_table('item_dates')
    op.drop_index('ix_webhook_events_event_id', table_name='webhook_events')
    op.drop_table('webhook_events')
    op.drop_index('idx_inventory_log_ts', table_name='inventory_log')
    op.drop_index('idx_inventory_log_item_ts', table_name='inventory_log')
    op.drop_index('ix_inventory_log_user_id', table_name='inventory_log')
    op.drop_table('inventory_log')
    op.drop_table('sales')
    op.drop_table('item_locations')
    op.drop_index('uq_locations_single_default', table_name='locations')
    op.drop_table('locations')
    op.drop_index('ix_items_barcode_number', table_name='items')
    op.drop_index('ix_items_barcode', table_name='items')
    op.drop_table('items')
    op.drop_table('profiles')

    bind = op.get_bind()
    change_type_enum.drop(bind, checkfirst=True)
    sale_source_enum.drop(bind, checkfirst=True)
    payment_method_enum.drop(bind, checkfirst=True)
