"""Initial schema: shops, stock ledger, allocations, exchanges, repairs, payments

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. Shops and suppliers
2. Inventory rows (pool + per shop), stock movements, purchases
3. Pool allocations and inter-shop exchanges (versioned documents)
4. Repair tickets and parts
5. Payments, supplier debts, sales
6. Activity feed
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=nullable)


def upgrade():
    # ==========================================================================
    # 1. SHOPS / SUPPLIERS
    # ==========================================================================
    op.create_table('shops',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('shops', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_shops_code'), ['code'], unique=False)

    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 2. INVENTORY
    # ==========================================================================
    op.create_table('inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=16), nullable=False, server_default='Spare'),
        sa.Column('shop_id', sa.Integer(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('initial_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reorder_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cost_price_cents', sa.Integer(), nullable=True),
        sa.Column('admin_cost_price_cents', sa.Integer(), nullable=True),
        sa.Column('pending_allocation', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.CheckConstraint('stock >= 0', name='ck_inventory_items_stock_non_negative'),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop_id', 'name', name='uq_inventory_items_shop_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_items_name'), ['name'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_items_shop_id'), ['shop_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_items_supplier_id'), ['supplier_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_items_pending_allocation'), ['pending_allocation'], unique=False)
    op.create_index(
        'uq_inventory_items_pool_name',
        'inventory_items',
        ['name'],
        unique=True,
        sqlite_where=sa.text('shop_id IS NULL'),
        postgresql_where=sa.text('shop_id IS NULL'),
    )

    op.create_table('stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=True),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('stock_after', sa.Integer(), nullable=False),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        _timestamp('occurred_at'),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_movements', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_movements_item_id'), ['item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_shop_id'), ['shop_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_reason'), ['reason'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_movements_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_stock_movements_item_occurred', ['item_id', 'occurred_at'], unique=False)
        batch_op.create_index('ix_stock_movements_reference', ['reference_type', 'reference_id'], unique=False)

    op.create_table('purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=True),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchases', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchases_supplier_id'), ['supplier_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchases_shop_id'), ['shop_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchases_created_at'), ['created_at'], unique=False)

    op.create_table('purchase_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_lines_purchase_id'), ['purchase_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchase_lines_item_id'), ['item_id'], unique=False)

    # ==========================================================================
    # 3. ALLOCATIONS / EXCHANGES
    # ==========================================================================
    op.create_table('stock_allocations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('total_qty', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('requested_by_user_id', sa.Integer(), nullable=False),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('rejected_by_user_id', sa.Integer(), nullable=True),
        sa.Column('rejection_reason', sa.String(length=255), nullable=True),
        _timestamp('created_at'),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_allocations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_allocations_item_id'), ['item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_allocations_status'), ['status'], unique=False)

    op.create_table('allocation_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('allocation_id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['allocation_id'], ['stock_allocations.id'], ),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('allocation_id', 'shop_id', name='uq_allocation_lines_shop'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('allocation_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_allocation_lines_allocation_id'), ['allocation_id'], unique=False)

    op.create_table('exchanges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('from_shop_id', sa.Integer(), nullable=False),
        sa.Column('to_shop_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('requested_by_user_id', sa.Integer(), nullable=False),
        sa.Column('confirmed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('completed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('rejected_by_user_id', sa.Integer(), nullable=True),
        sa.Column('rejection_reason', sa.String(length=255), nullable=True),
        _timestamp('created_at'),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('from_shop_id <> to_shop_id', name='ck_exchanges_distinct_shops'),
        sa.ForeignKeyConstraint(['from_shop_id'], ['shops.id'], ),
        sa.ForeignKeyConstraint(['to_shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('exchanges', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_exchanges_from_shop_id'), ['from_shop_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_exchanges_to_shop_id'), ['to_shop_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_exchanges_status'), ['status'], unique=False)

    op.create_table('exchange_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('exchange_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['exchange_id'], ['exchanges.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('exchange_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_exchange_lines_exchange_id'), ['exchange_id'], unique=False)

    # ==========================================================================
    # 4. REPAIRS
    # ==========================================================================
    op.create_table('repairs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ticket_number', sa.String(length=32), nullable=True),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=False),
        sa.Column('imei', sa.String(length=64), nullable=True),
        sa.Column('phone_model', sa.String(length=120), nullable=True),
        sa.Column('issue', sa.Text(), nullable=True),
        sa.Column('technician', sa.String(length=120), nullable=True),
        sa.Column('outsourced_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('labor_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_agreed_amount_cents', sa.Integer(), nullable=True),
        sa.Column('payment_timing', sa.String(length=16), nullable=False, server_default='after'),
        sa.Column('deposit_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='RECEIVED'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_approved', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('pending_payment_method', sa.String(length=16), nullable=True),
        sa.Column('pending_payment_reference', sa.String(length=128), nullable=True),
        sa.Column('pending_payment_amount_cents', sa.Integer(), nullable=True),
        sa.Column('pending_payment_submitted_by_user_id', sa.Integer(), nullable=True),
        sa.Column('pending_payment_submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('customer_status', sa.String(length=16), nullable=False, server_default='waiting'),
        sa.Column('collected', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('collected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('collected_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ticket_number', name='uq_repairs_ticket_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('repairs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_repairs_shop_id'), ['shop_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_repairs_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_repairs_payment_status'), ['payment_status'], unique=False)
        batch_op.create_index(batch_op.f('ix_repairs_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_repairs_shop_status', ['shop_id', 'status'], unique=False)

    op.create_table('repair_parts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('repair_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=True),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('source', sa.String(length=16), nullable=False, server_default='in-house'),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['repair_id'], ['repairs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('repair_parts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_repair_parts_repair_id'), ['repair_id'], unique=False)

    # ==========================================================================
    # 5. PAYMENTS / SUPPLIER DEBTS / SALES
    # ==========================================================================
    op.create_table('payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('state', sa.String(length=16), nullable=False),
        sa.Column('reference', sa.String(length=128), nullable=True),
        sa.Column('bank', sa.String(length=64), nullable=True),
        sa.Column('deposited', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('deposit_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deposit_reference', sa.String(length=128), nullable=True),
        sa.Column('shop_id', sa.Integer(), nullable=True),
        sa.Column('related_to', sa.String(length=16), nullable=False),
        sa.Column('related_id', sa.Integer(), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_payments_type'), ['type'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_deposited'), ['deposited'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_shop_id'), ['shop_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_payments_related', ['related_to', 'related_id'], unique=False)
        batch_op.create_index('ix_payments_type_created', ['type', 'created_at'], unique=False)

    op.create_table('supplier_debts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('cost_per_unit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('paid', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_by_user_id', sa.Integer(), nullable=True),
        sa.Column('repair_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('supplier_debts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_supplier_debts_supplier_id'), ['supplier_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_supplier_debts_repair_id'), ['repair_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_supplier_debts_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_supplier_debts_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_supplier_debts_supplier_paid', ['supplier_id', 'paid'], unique=False)

    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('sale_type', sa.String(length=16), nullable=False, server_default='in-shop'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_shop_id'), ['shop_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_created_at'), ['created_at'], unique=False)

    op.create_table('sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=True),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=16), nullable=False, server_default='in-house'),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_lines_sale_id'), ['sale_id'], unique=False)

    # ==========================================================================
    # 6. ACTIVITY FEED
    # ==========================================================================
    op.create_table('activity_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        _timestamp('occurred_at'),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('activity_events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_activity_events_event_type'), ['event_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_activity_events_shop_id'), ['shop_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_activity_events_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_activity_entity', ['entity_type', 'entity_id'], unique=False)


def downgrade():
    for table in (
        'activity_events',
        'sale_lines',
        'sales',
        'supplier_debts',
        'payments',
        'repair_parts',
        'repairs',
        'exchange_lines',
        'exchanges',
        'allocation_lines',
        'stock_allocations',
        'purchase_lines',
        'purchases',
        'stock_movements',
    ):
        op.drop_table(table)
    op.drop_index('uq_inventory_items_pool_name', table_name='inventory_items')
    op.drop_table('inventory_items')
    op.drop_table('suppliers')
    op.drop_table('shops')
