"""Initial custody schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Creates:
1. products (central warehouse stock, optimistic version)
2. employees (holdings buckets, custody revision, optimistic version)
3. employee_assignments (custody map keyed by employee + product)
4. sales and sale_items (insert-only, snapshots)
5. stock_requests and money_requests (approval workflow)
6. custody_events (append-only audit log)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. PRODUCTS
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lowest_selling_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Active'),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_nonnegative'),
        sa.CheckConstraint('base_price_cents >= 0', name='ck_products_base_price_nonnegative'),
        sa.CheckConstraint('lowest_selling_price_cents >= 0', name='ck_products_floor_nonnegative'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_status'), ['status'], unique=False)
        batch_op.create_index('ix_products_status_title', ['status', 'title'], unique=False)

    # ==========================================================================
    # 2. EMPLOYEES
    # ==========================================================================
    op.create_table('employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Active'),
        sa.Column('cash_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('online_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('custody_revision', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_custody_change_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('cash_cents >= 0', name='ck_employees_cash_nonnegative'),
        sa.CheckConstraint('online_cents >= 0', name='ck_employees_online_nonnegative'),
        sa.CheckConstraint('total_cents = cash_cents + online_cents', name='ck_employees_total_matches'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('employees', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_employees_status'), ['status'], unique=False)

    # ==========================================================================
    # 3. EMPLOYEE ASSIGNMENTS
    # ==========================================================================
    op.create_table('employee_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('assigned_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_assignments_quantity_positive'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'product_id', name='uq_assignments_employee_product'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('employee_assignments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_employee_assignments_employee_id'), ['employee_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_employee_assignments_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 4. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=32), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_address', sa.Text(), nullable=True),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('total_amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('total_amount_cents >= 0', name='ck_sales_total_nonnegative'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_employee_id'), ['employee_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_sales_employee_created', ['employee_id', 'created_at'], unique=False)
        batch_op.create_index('ix_sales_method_created', ['payment_method', 'created_at'], unique=False)

    op.create_table('sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_title', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_per_unit_cents', sa.Integer(), nullable=False),
        sa.Column('total_price_cents', sa.BigInteger(), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='ck_sale_items_quantity_positive'),
        sa.CheckConstraint('price_per_unit_cents >= 0', name='ck_sale_items_price_nonnegative'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_items_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_items_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 5. REQUESTS
    # ==========================================================================
    op.create_table('stock_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('processed_by', sa.String(length=64), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('quantity >= 1', name='ck_stock_requests_quantity_positive'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_requests', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_requests_employee_id'), ['employee_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_requests_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_requests_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_requests_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_stock_requests_employee_status', ['employee_id', 'status'], unique=False)

    op.create_table('money_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('reference_number', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('processed_by', sa.String(length=64), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('amount_cents > 0', name='ck_money_requests_amount_positive'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('money_requests', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_money_requests_employee_id'), ['employee_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_money_requests_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_money_requests_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_money_requests_employee_status', ['employee_id', 'status'], unique=False)

    # ==========================================================================
    # 6. CUSTODY EVENTS
    # ==========================================================================
    op.create_table('custody_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('stock_request_id', sa.Integer(), nullable=True),
        sa.Column('money_request_id', sa.Integer(), nullable=True),
        sa.Column('quantity_delta', sa.Integer(), nullable=True),
        sa.Column('amount_cents', sa.BigInteger(), nullable=True),
        sa.Column('payment_method', sa.String(length=16), nullable=True),
        sa.Column('actor', sa.String(length=64), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['stock_request_id'], ['stock_requests.id'], ),
        sa.ForeignKeyConstraint(['money_request_id'], ['money_requests.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('custody_events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_custody_events_event_type'), ['event_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_custody_events_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_custody_events_stock_request_id'), ['stock_request_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_custody_events_money_request_id'), ['money_request_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_custody_events_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_custody_events_employee_occurred', ['employee_id', 'occurred_at'], unique=False)
        batch_op.create_index('ix_custody_events_product_occurred', ['product_id', 'occurred_at'], unique=False)


def downgrade():
    op.drop_table('custody_events')
    op.drop_table('money_requests')
    op.drop_table('stock_requests')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('employee_assignments')
    op.drop_table('employees')
    op.drop_table('products')
