"""Initial schema: businesses, products, contacts, transactions

MULTI-TENANT: every business-owned table carries business_id.

1. Creates 'businesses' as the tenant root
2. Creates products (stock never negative) and contacts with custom prices
3. Creates transactions with line and payment tables; invoice numbers are
   unique per business

Revision ID: gst001_initial
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'gst001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False, server_default='0'):
    return sa.Column(name, sa.Numeric(precision=12, scale=2), nullable=nullable, server_default=server_default)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    # ==========================================================================
    # STEP 1: Tenant root
    # ==========================================================================
    op.create_table('businesses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('gstin', sa.String(length=15), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('street', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('state', sa.String(length=128), nullable=True),
        sa.Column('zip_code', sa.String(length=16), nullable=True),
        sa.Column('country', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_businesses_code', 'businesses', ['code'], unique=True)
    op.create_index('ix_businesses_is_active', 'businesses', ['is_active'])

    # ==========================================================================
    # STEP 2: Products
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _money('price'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_stock_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('hsn', sa.String(length=16), nullable=True),
        sa.Column('cgst', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('sgst', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_business_id', 'products', ['business_id'])
    op.create_index('ix_products_category', 'products', ['category'])
    op.create_index('ix_products_business_name', 'products', ['business_id', 'name'])
    op.create_index('ix_products_business_active', 'products', ['business_id', 'is_active'])

    # ==========================================================================
    # STEP 3: Contacts and their custom prices
    # ==========================================================================
    op.create_table('contacts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code_name', sa.String(length=64), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('gstin', sa.String(length=15), nullable=True),
        sa.Column('street', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('state', sa.String(length=128), nullable=True),
        sa.Column('zip_code', sa.String(length=16), nullable=True),
        sa.Column('country', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _money('current_balance'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_contacts_business_id', 'contacts', ['business_id'])
    op.create_index('ix_contacts_business_type', 'contacts', ['business_id', 'type'])
    op.create_index('ix_contacts_business_active', 'contacts', ['business_id', 'is_active'])

    op.create_table('contact_product_prices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('contact_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        _money('inclusive_price', server_default=None),
        sa.ForeignKeyConstraint(['contact_id'], ['contacts.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.UniqueConstraint('contact_id', 'product_id', name='uq_contact_product_price'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_contact_product_prices_contact_id', 'contact_product_prices', ['contact_id'])
    op.create_index('ix_contact_product_prices_product_id', 'contact_product_prices', ['product_id'])

    # ==========================================================================
    # STEP 4: Transactions, lines, payments
    # ==========================================================================
    op.create_table('transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('vendor_name', sa.String(length=255), nullable=True),
        _money('subtotal'),
        _money('cgst'),
        _money('sgst'),
        _money('discount'),
        _money('total_amount'),
        _money('paid_amount'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('payment_method', sa.String(length=32), nullable=False, server_default='cash'),
        sa.Column('invoice_number', sa.String(length=32), nullable=False),
        sa.Column('is_printed', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['contacts.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['contacts.id']),
        sa.UniqueConstraint('business_id', 'invoice_number', name='uq_transactions_business_invoice'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_transactions_business_id', 'transactions', ['business_id'])
    op.create_index('ix_transactions_customer_id', 'transactions', ['customer_id'])
    op.create_index('ix_transactions_vendor_id', 'transactions', ['vendor_id'])
    op.create_index('ix_transactions_date', 'transactions', ['date'])
    op.create_index('ix_transactions_business_type_date', 'transactions', ['business_id', 'type', 'date'])
    op.create_index('ix_transactions_business_status', 'transactions', ['business_id', 'status'])

    op.create_table('transaction_lines',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('hsn', sa.String(length=16), nullable=True),
        sa.Column('unit_type', sa.String(length=16), nullable=False, server_default='single'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('price', server_default=None),
        _money('total', server_default=None),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_transaction_lines_transaction_id', 'transaction_lines', ['transaction_id'])
    op.create_index('ix_transaction_lines_product_id', 'transaction_lines', ['product_id'])

    op.create_table('transaction_payments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        _money('amount', server_default=None),
        sa.Column('method', sa.String(length=32), nullable=False, server_default='cash'),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_transaction_payments_transaction_id', 'transaction_payments', ['transaction_id'])


def downgrade():
    op.drop_index('ix_transaction_payments_transaction_id', table_name='transaction_payments')
    op.drop_table('transaction_payments')

    op.drop_index('ix_transaction_lines_product_id', table_name='transaction_lines')
    op.drop_index('ix_transaction_lines_transaction_id', table_name='transaction_lines')
    op.drop_table('transaction_lines')

    for name in (
        'ix_transactions_business_status',
        'ix_transactions_business_type_date',
        'ix_transactions_date',
        'ix_transactions_vendor_id',
        'ix_transactions_customer_id',
        'ix_transactions_business_id',
    ):
        op.drop_index(name, table_name='transactions')
    op.drop_table('transactions')

    op.drop_index('ix_contact_product_prices_product_id', table_name='contact_product_prices')
    op.drop_index('ix_contact_product_prices_contact_id', table_name='contact_product_prices')
    op.drop_table('contact_product_prices')

    op.drop_index('ix_contacts_business_active', table_name='contacts')
    op.drop_index('ix_contacts_business_type', table_name='contacts')
    op.drop_index('ix_contacts_business_id', table_name='contacts')
    op.drop_table('contacts')

    op.drop_index('ix_products_business_active', table_name='products')
    op.drop_index('ix_products_business_name', table_name='products')
    op.drop_index('ix_products_category', table_name='products')
    op.drop_index('ix_products_business_id', table_name='products')
    op.drop_table('products')

    op.drop_index('ix_businesses_is_active', table_name='businesses')
    op.drop_index('ix_businesses_code', table_name='businesses')
    op.drop_table('businesses')
