"""create users, lots, transactions and sales tables

Revision ID: 3f2a9c1e7b44
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f2a9c1e7b44'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    # Active lots; a lot is deleted once fully sold
    op.create_table(
        'lots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('purchase_price', sa.Numeric(precision=15, scale=4), nullable=False),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_lots_quantity_positive'),
        sa.CheckConstraint('purchase_price > 0', name='ck_lots_purchase_price_positive'),
        sa.ForeignKeyConstraint(
            ['owner_id'], ['users.id'], name='fk_lots_owner_id_users', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_lots'),
    )
    op.create_index('ix_lots_id', 'lots', ['id'])
    op.create_index('ix_lots_owner_id', 'lots', ['owner_id'])
    op.create_index(
        'ix_lots_owner_symbol_fifo', 'lots', ['owner_id', 'symbol', 'purchase_date', 'id']
    )

    # Append-only transaction log
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=15, scale=4), nullable=False),
        sa.Column(
            'kind',
            sa.Enum('BUY', 'SELL', name='transaction_kind', native_enum=False, length=4),
            nullable=False,
        ),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_transactions_quantity_positive'),
        sa.CheckConstraint('price > 0', name='ck_transactions_price_positive'),
        sa.ForeignKeyConstraint(
            ['owner_id'], ['users.id'], name='fk_transactions_owner_id_users', ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name='pk_transactions'),
    )
    op.create_index('ix_transactions_id', 'transactions', ['id'])
    op.create_index('ix_transactions_owner_id', 'transactions', ['owner_id'])
    op.create_index('ix_transactions_symbol', 'transactions', ['symbol'])
    op.create_index(
        'ix_transactions_owner_date', 'transactions', ['owner_id', 'transaction_date']
    )

    # Realized profit/loss, one row per SELL transaction
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('sell_price', sa.Numeric(precision=15, scale=4), nullable=False),
        sa.Column('cost_basis', sa.Numeric(precision=15, scale=4), nullable=False),
        sa.Column('profit_loss', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('sell_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sales_quantity_positive'),
        sa.ForeignKeyConstraint(
            ['owner_id'], ['users.id'], name='fk_sales_owner_id_users', ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['transaction_id'],
            ['transactions.id'],
            name='fk_sales_transaction_id_transactions',
            ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_sales'),
        sa.UniqueConstraint('transaction_id', name='uq_sales_transaction_id'),
    )
    op.create_index('ix_sales_id', 'sales', ['id'])
    op.create_index('ix_sales_owner_id', 'sales', ['owner_id'])
    op.create_index('ix_sales_symbol', 'sales', ['symbol'])


def downgrade() -> None:
    op.drop_index('ix_sales_symbol', table_name='sales')
    op.drop_index('ix_sales_owner_id', table_name='sales')
    op.drop_index('ix_sales_id', table_name='sales')
    op.drop_table('sales')

    op.drop_index('ix_transactions_owner_date', table_name='transactions')
    op.drop_index('ix_transactions_symbol', table_name='transactions')
    op.drop_index('ix_transactions_owner_id', table_name='transactions')
    op.drop_index('ix_transactions_id', table_name='transactions')
    op.drop_table('transactions')

    op.drop_index('ix_lots_owner_symbol_fifo', table_name='lots')
    op.drop_index('ix_lots_owner_id', table_name='lots')
    op.drop_index('ix_lots_id', table_name='lots')
    op.drop_table('lots')

    op.drop_index('ix_users_username', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
