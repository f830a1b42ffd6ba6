"""create_store_catalog_tables

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-10-19 09:12:41.508112

"""
from alembic import op
import sqlalchemy as sa


revision = '3f1a9c2d7b10'
down_revision = None
branch_labels = None
depends_on = None


product_type = sa.Enum('SIMPLE', 'VARIABLE', 'VARIATION', name='producttype')
product_status = sa.Enum('PUBLISH', 'DRAFT', 'PRIVATE', 'PENDING', name='productstatus')
currency = sa.Enum('IDR', 'CNY', 'USD', name='currency')


def upgrade() -> None:
    op.create_table(
        'store_products',
        sa.Column('external_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('type', product_type, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=True),
        sa.Column('sku', sa.String(length=100), nullable=True),
        sa.Column('status', product_status, nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(14, 2), nullable=False),
        sa.Column('regular_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('sale_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('weight', sa.Numeric(10, 3), nullable=True),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('categories', sa.JSON(), nullable=False),
        sa.Column('attributes', sa.JSON(), nullable=False),
        sa.Column('is_missing_from_source', sa.Boolean(), nullable=False),
        sa.Column('synced_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('external_id'),
    )
    op.create_index('ix_store_products_parent_id', 'store_products', ['parent_id'])
    op.create_index('ix_store_products_sku', 'store_products', ['sku'])
    op.create_index('ix_store_products_is_missing_from_source', 'store_products', ['is_missing_from_source'])

    op.create_table(
        'purchase_extensions',
        sa.Column('external_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('supplier_names', sa.JSON(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('backup_location', sa.String(length=50), nullable=True),
        sa.Column('purchased', sa.Boolean(), nullable=False),
        sa.Column('purchased_at', sa.DateTime(), nullable=True),
        sa.Column('purchase_package_count', sa.Integer(), nullable=False),
        sa.Column('purchase_units_per_package', sa.Integer(), nullable=True),
        sa.Column('purchase_price', sa.Numeric(14, 2), nullable=True),
        sa.Column('purchase_currency', currency, nullable=True),
        sa.Column('order_batch_id', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('external_id'),
    )
    op.create_index('ix_purchase_extensions_purchased', 'purchase_extensions', ['purchased'])
    op.create_index('ix_purchase_extensions_order_batch_id', 'purchase_extensions', ['order_batch_id'])

    op.create_table(
        'store_suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_index('ix_store_suppliers_id', 'store_suppliers', ['id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('audit_data', sa.JSON(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('store_suppliers')
    op.drop_table('purchase_extensions')
    op.drop_table('store_products')
    currency.drop(op.get_bind(), checkfirst=True)
    product_status.drop(op.get_bind(), checkfirst=True)
    product_type.drop(op.get_bind(), checkfirst=True)
