"""Initial ledger schema: business units, treasury, inventory, documents, payroll

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. Business units and cash safes
2. Cash ledger and master transaction log (append-only)
3. Products, bills of materials and mixes
4. Customers, suppliers, sales, purchase orders and payments
5. Scrap buying/selling, stock takes, stock transfers and tasks
6. Employees, staff loans and payroll
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False, **kw):
    return sa.Column(name, sa.Numeric(precision=14, scale=2), nullable=nullable, **kw)


def _cost(name, nullable=False):
    return sa.Column(name, sa.Numeric(precision=14, scale=4), nullable=nullable)


def _qty(name, nullable=False, **kw):
    return sa.Column(name, sa.Numeric(precision=14, scale=3), nullable=nullable, **kw)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)


def upgrade():
    # ==========================================================================
    # 1. BUSINESS UNITS AND SAFES
    # ==========================================================================
    op.create_table('business_units',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('business_type', sa.String(length=32), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_business_units_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('business_units', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_business_units_business_type'), ['business_type'], unique=False)

    op.create_table('cash_safes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        _money('opening_balance'),
        _money('current_balance'),
        sa.Column('is_physical_cash', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_cash_safes_name'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 2. COUNTERPARTIES AND PRODUCTS
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        _money('account_balance'),
        _created_at(),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_customers_business_unit_id'), ['business_unit_id'], unique=False)
        batch_op.create_index('ix_customers_unit_name', ['business_unit_id', 'name'], unique=False)

    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('contact_person', sa.String(length=128), nullable=True),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        _money('account_balance'),
        _created_at(),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('suppliers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_suppliers_business_unit_id'), ['business_unit_id'], unique=False)

    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('unit_type', sa.String(length=16), nullable=False),
        _qty('quantity_on_hand'),
        _cost('cost_price'),
        _money('selling_price'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_unit_id', 'sku', name='uq_products_unit_sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_business_unit_id'), ['business_unit_id'], unique=False)
        batch_op.create_index('ix_products_unit_name', ['business_unit_id', 'name'], unique=False)

    op.create_table('bill_of_materials',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('finished_good_product_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_product_id', sa.Integer(), nullable=False),
        _qty('quantity_required'),
        sa.ForeignKeyConstraint(['finished_good_product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['ingredient_product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('finished_good_product_id', 'ingredient_product_id', name='uq_bom_finished_ingredient'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('bill_of_materials', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_bill_of_materials_finished_good_product_id'), ['finished_good_product_id'], unique=False)

    op.create_table('material_mixes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('finished_good_product_id', sa.Integer(), nullable=False),
        _qty('quantity_mixed'),
        _money('total_cost'),
        _cost('wac_after'),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['finished_good_product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('material_mixes', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_material_mixes_business_unit_id'), ['business_unit_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_material_mixes_finished_good_product_id'), ['finished_good_product_id'], unique=False)

    # ==========================================================================
    # 3. MASTER TRANSACTION LOG
    # ==========================================================================
    op.create_table('transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        _money('amount'),
        sa.Column('type', sa.String(length=24), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('source_reference', sa.String(length=128), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('transactions', schema=None) as batch_op:
        batch_op.create_index('ix_transactions_unit_date', ['business_unit_id', 'transaction_date'], unique=False)
        batch_op.create_index('ix_transactions_unit_type', ['business_unit_id', 'type'], unique=False)
        batch_op.create_index(batch_op.f('ix_transactions_source_reference'), ['source_reference'], unique=False)

    # ==========================================================================
    # 4. SALES AND CUSTOMER PAYMENTS
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('safe_id', sa.Integer(), nullable=True),
        _money('total_amount'),
        _money('total_vat_amount'),
        _money('amount_paid'),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('sale_date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['safe_id'], ['cash_safes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_business_unit_id'), ['business_unit_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_payment_status'), ['payment_status'], unique=False)
        batch_op.create_index('ix_sales_unit_date', ['business_unit_id', 'sale_date'], unique=False)
        batch_op.create_index('ix_sales_customer_status', ['customer_id', 'payment_status'], unique=False)

    op.create_table('sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        _qty('quantity_sold'),
        _money('price_at_sale'),
        _cost('cost_at_sale'),
        _money('vat_amount'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_items_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_items_product_id'), ['product_id'], unique=False)

    op.create_table('customer_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('safe_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _money('total_amount'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['safe_id'], ['cash_safes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customer_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_customer_payments_customer_id'), ['customer_id'], unique=False)

    op.create_table('sale_payment_allocations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('payment_id', sa.Integer(), nullable=False),
        _money('amount_applied'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['payment_id'], ['customer_payments.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_payment_allocations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_payment_allocations_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_payment_allocations_payment_id'), ['payment_id'], unique=False)

    # ==========================================================================
    # 5. CASH LEDGER (append-only)
    # ==========================================================================
    op.create_table('cash_ledger',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('safe_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        _money('amount'),
        _money('balance_after'),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('expense_id', sa.Integer(), nullable=True),
        sa.Column('payment_id', sa.Integer(), nullable=True),
        sa.Column('source_reference', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['safe_id'], ['cash_safes.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['expense_id'], ['transactions.id'], ),
        sa.ForeignKeyConstraint(['payment_id'], ['customer_payments.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cash_ledger', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cash_ledger_safe_id'), ['safe_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_ledger_type'), ['type'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_ledger_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index('ix_cash_ledger_safe_created', ['safe_id', 'created_at'], unique=False)

    # ==========================================================================
    # 6. PURCHASING AND SUPPLIER PAYMENTS
    # ==========================================================================
    op.create_table('purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _money('total_amount'),
        _money('received_value'),
        _money('amount_paid'),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('order_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_orders_supplier_id'), ['supplier_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchase_orders_business_unit_id'), ['business_unit_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchase_orders_status'), ['status'], unique=False)

    op.create_table('purchase_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        _qty('quantity'),
        _cost('cost_at_order'),
        _qty('quantity_received'),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_order_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_order_items_purchase_order_id'), ['purchase_order_id'], unique=False)

    op.create_table('purchase_receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_item_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        _qty('quantity_received'),
        _cost('unit_cost'),
        _cost('wac_after'),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.ForeignKeyConstraint(['purchase_order_item_id'], ['purchase_order_items.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_receipts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_receipts_purchase_order_id'), ['purchase_order_id'], unique=False)

    op.create_table('supplier_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('safe_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _money('total_amount'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['safe_id'], ['cash_safes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('supplier_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_supplier_payments_supplier_id'), ['supplier_id'], unique=False)

    op.create_table('supplier_payment_allocations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('payment_id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        _money('amount_applied'),
        sa.ForeignKeyConstraint(['payment_id'], ['supplier_payments.id'], ),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('supplier_payment_allocations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_supplier_payment_allocations_payment_id'), ['payment_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_supplier_payment_allocations_purchase_order_id'), ['purchase_order_id'], unique=False)

    # ==========================================================================
    # 7. SCRAPYARD
    # ==========================================================================
    op.create_table('scrap_purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('safe_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _qty('weight_kg'),
        _cost('price_per_kg'),
        _money('payout_amount'),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.ForeignKeyConstraint(['safe_id'], ['cash_safes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('scrap_purchases', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_scrap_purchases_business_unit_id'), ['business_unit_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_scrap_purchases_supplier_id'), ['supplier_id'], unique=False)

    op.create_table('scrap_sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=True),
        sa.Column('safe_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        _qty('weight_kg'),
        _money('revenue_amount'),
        _cost('cost_at_sale'),
        sa.Column('invoice_number', sa.String(length=64), nullable=True),
        sa.Column('sale_date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['buyer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['safe_id'], ['cash_safes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('scrap_sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_scrap_sales_business_unit_id'), ['business_unit_id'], unique=False)

    # ==========================================================================
    # 8. STOCK TAKES, TRANSFERS AND TASKS
    # ==========================================================================
    op.create_table('stock_takes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _money('total_variance_value'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_takes', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_takes_business_unit_id'), ['business_unit_id'], unique=False)

    op.create_table('stock_take_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('stock_take_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        _qty('system_qty'),
        _qty('counted_qty'),
        _qty('variance_qty'),
        _cost('cost_at_time'),
        _money('variance_value'),
        sa.ForeignKeyConstraint(['stock_take_id'], ['stock_takes.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_take_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_take_items_stock_take_id'), ['stock_take_id'], unique=False)

    op.create_table('stock_transfers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('requesting_unit_id', sa.Integer(), nullable=False),
        sa.Column('providing_unit_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('destination_product_id', sa.Integer(), nullable=True),
        _qty('quantity_requested'),
        sa.Column('status', sa.String(length=16), nullable=False),
        _cost('unit_cost', nullable=True),
        _money('total_value', nullable=True),
        sa.Column('requesting_user_id', sa.Integer(), nullable=True),
        sa.Column('approving_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['requesting_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['providing_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['destination_product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_transfers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_transfers_requesting_unit_id'), ['requesting_unit_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_transfers_providing_unit_id'), ['providing_unit_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_transfers_status'), ['status'], unique=False)

    op.create_table('tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('task_type', sa.String(length=16), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('assigned_to_user_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('source_type', sa.String(length=32), nullable=True),
        sa.Column('source_id', sa.Integer(), nullable=True),
        sa.Column('parent_task_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.ForeignKeyConstraint(['parent_task_id'], ['tasks.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('tasks', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_tasks_business_unit_id'), ['business_unit_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_tasks_status'), ['status'], unique=False)
        batch_op.create_index('ix_tasks_assignee_status', ['assigned_to_user_id', 'status'], unique=False)

    # ==========================================================================
    # 9. PAYROLL
    # ==========================================================================
    op.create_table('employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_unit_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('pay_type', sa.String(length=16), nullable=False),
        _money('pay_rate'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.ForeignKeyConstraint(['business_unit_id'], ['business_units.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('employees', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_employees_business_unit_id'), ['business_unit_id'], unique=False)

    op.create_table('staff_loans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        _money('principal_amount'),
        _money('amount_repaid'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('repaid_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('staff_loans', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_staff_loans_employee_id'), ['employee_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_staff_loans_is_active'), ['is_active'], unique=False)

    op.create_table('payroll_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pay_period_start', sa.Date(), nullable=False),
        sa.Column('pay_period_end', sa.Date(), nullable=False),
        _money('total_paid'),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table('payslips',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('payroll_run_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('hours_worked', sa.Numeric(precision=8, scale=2), nullable=True),
        _money('gross_pay'),
        _money('loan_deduction'),
        _money('net_pay'),
        sa.ForeignKeyConstraint(['payroll_run_id'], ['payroll_runs.id'], ),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payroll_run_id', 'employee_id', name='uq_payslips_run_employee'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payslips', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_payslips_payroll_run_id'), ['payroll_run_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_payslips_employee_id'), ['employee_id'], unique=False)


def downgrade():
    for table in (
        'payslips', 'payroll_runs', 'staff_loans', 'employees',
        'tasks', 'stock_transfers', 'stock_take_items', 'stock_takes',
        'scrap_sales', 'scrap_purchases',
        'supplier_payment_allocations', 'supplier_payments', 'purchase_receipts',
        'purchase_order_items', 'purchase_orders',
        'cash_ledger', 'sale_payment_allocations', 'customer_payments', 'sale_items', 'sales',
        'transactions', 'material_mixes', 'bill_of_materials', 'products',
        'suppliers', 'customers', 'cash_safes', 'business_units',
    ):
        op.drop_table(table)
