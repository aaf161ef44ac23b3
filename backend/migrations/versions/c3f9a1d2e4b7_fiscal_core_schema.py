"""fiscal core schema

Revision ID: c3f9a1d2e4b7
Revises:
Create Date: 2026-10-16 00:00:00.000000

Creates the complete fiscalpos schema:
- products / stock_movements: stock-tracked catalog and its append-only journal
- customers: NATURAL / JURIDICAL customers keyed by identity document
- sales / sale_lines: sale documents and their numbered lines
- invoices / invoice_sequences: fiscal invoices and per emission point counters

Invariants enforced here, not only in services:
- products.stock_quantity >= 0
- one invoice per sale (invoices.sale_id UNIQUE), invoice numbers unique
- (sale_id, line_number) unique
- one counter row per (establishment_code, emission_point_code)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c3f9a1d2e4b7'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('kind', sa.String(length=16), nullable=False, server_default='PHYSICAL'),
        sa.Column('attributes', sa.JSON(), nullable=True),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('unit_price >= 0', name='ck_products_price_non_negative'),
        sa.CheckConstraint("kind IN ('PHYSICAL', 'DIGITAL')", name='ck_products_kind'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_kind_active', 'products', ['kind', 'is_active'])

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('document_number', sa.String(length=13), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=True),
        sa.Column('last_name', sa.String(length=128), nullable=True),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('legal_representative', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint("kind IN ('NATURAL', 'JURIDICAL')", name='ck_customers_kind'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_number', name='uq_customers_document_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_customers_is_active', 'customers', ['is_active'])
    op.create_index('ix_customers_kind_active', 'customers', ['kind', 'is_active'])

    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='DRAFT'),
        sa.Column('total', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('emitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint("status IN ('DRAFT', 'EMITTED', 'CANCELLED')", name='ck_sales_status'),
        sa.CheckConstraint('total >= 0', name='ck_sales_total_non_negative'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_sales_customer_id', 'sales', ['customer_id'])
    op.create_index('ix_sales_status', 'sales', ['status'])
    op.create_index('ix_sales_status_created', 'sales', ['status', 'created_at'])
    op.create_index('ix_sales_customer_created', 'sales', ['customer_id', 'created_at'])

    op.create_table(
        'sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sale_lines_quantity_positive'),
        sa.CheckConstraint('unit_price >= 0', name='ck_sale_lines_price_non_negative'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', 'line_number', name='uq_sale_lines_sale_line_number'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_sale_lines_sale_id', 'sale_lines', ['sale_id'])
    op.create_index('ix_sale_lines_product_id', 'sale_lines', ['product_id'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity_delta <> 0', name='ck_stock_movements_delta_non_zero'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_sale_id', 'stock_movements', ['sale_id'])
    op.create_index('ix_stock_movements_product_occurred', 'stock_movements', ['product_id', 'occurred_at'])

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('establishment_code', sa.String(length=3), nullable=False),
        sa.Column('emission_point_code', sa.String(length=3), nullable=False),
        sa.Column('sequential', sa.Integer(), nullable=False),
        sa.Column('number', sa.String(length=17), nullable=False),
        sa.Column('access_key', sa.String(length=49), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('emission_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('authorization_payload', sa.Text(), nullable=True),
        sa.Column('authorized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint(
            "status IN ('PENDING', 'EMITTED', 'AUTHORIZED', 'CANCELLED')",
            name='ck_invoices_status',
        ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', name='uq_invoices_sale_id'),
        sa.UniqueConstraint('number', name='uq_invoices_number'),
        sa.UniqueConstraint('access_key', name='uq_invoices_access_key'),
        sa.UniqueConstraint(
            'establishment_code', 'emission_point_code', 'sequential',
            name='uq_invoices_point_sequential',
        ),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    op.create_index('ix_invoices_status_emission', 'invoices', ['status', 'emission_date'])

    op.create_table(
        'invoice_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('establishment_code', sa.String(length=3), nullable=False),
        sa.Column('emission_point_code', sa.String(length=3), nullable=False),
        sa.Column('last_sequential', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('last_sequential >= 0', name='ck_invoice_sequences_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('establishment_code', 'emission_point_code', name='uq_invoice_sequences_point'),
        sqlite_autoincrement=True,
    )


def downgrade():
    op.drop_table('invoice_sequences')
    op.drop_index('ix_invoices_status_emission', table_name='invoices')
    op.drop_index('ix_invoices_status', table_name='invoices')
    op.drop_table('invoices')
    op.drop_index('ix_stock_movements_product_occurred', table_name='stock_movements')
    op.drop_index('ix_stock_movements_sale_id', table_name='stock_movements')
    op.drop_index('ix_stock_movements_product_id', table_name='stock_movements')
    op.drop_table('stock_movements')
    op.drop_index('ix_sale_lines_product_id', table_name='sale_lines')
    op.drop_index('ix_sale_lines_sale_id', table_name='sale_lines')
    op.drop_table('sale_lines')
    op.drop_index('ix_sales_customer_created', table_name='sales')
    op.drop_index('ix_sales_status_created', table_name='sales')
    op.drop_index('ix_sales_status', table_name='sales')
    op.drop_index('ix_sales_customer_id', table_name='sales')
    op.drop_table('sales')
    op.drop_index('ix_customers_kind_active', table_name='customers')
    op.drop_index('ix_customers_is_active', table_name='customers')
    op.drop_table('customers')
    op.drop_index('ix_products_kind_active', table_name='products')
    op.drop_table('products')
