"""Initial schema: users, transactions, holdings

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


transaction_type = postgresql.ENUM('fund', 'withdraw', 'buy', 'sell', name='transaction_type', create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    postgresql.ENUM('fund', 'withdraw', 'buy', 'sell', name='transaction_type').create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('balance', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0.00'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('balance >= 0', name='users_balance_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_name'), 'users', ['name'], unique=False)

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('type', transaction_type, nullable=False),
        sa.Column('term', sa.String(length=10), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('yield_at_transaction', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('balance_after', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('holding_id', sa.Integer(), nullable=True),
        sa.CheckConstraint('amount > 0', name='transactions_amount_positive'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_transactions_user_id'), 'transactions', ['user_id'], unique=False)
    op.create_index('ix_transactions_timestamp', 'transactions', ['timestamp'], unique=False)
    op.create_index('ix_transactions_type', 'transactions', ['type'], unique=False)

    op.create_table(
        'holdings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('term', sa.String(length=10), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('yield_at_purchase', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('purchase_date', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('remaining_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('face_value', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('purchase_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('security_type', sa.String(length=10), nullable=True),
        sa.CheckConstraint('amount > 0', name='holdings_amount_positive'),
        sa.CheckConstraint('remaining_amount >= 0', name='holdings_remaining_non_negative'),
        sa.CheckConstraint('remaining_amount <= amount', name='holdings_remaining_lte_amount'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_holdings_user_id'), 'holdings', ['user_id'], unique=False)
    op.create_index('ix_holdings_purchase_date', 'holdings', ['purchase_date'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_holdings_purchase_date', table_name='holdings')
    op.drop_index(op.f('ix_holdings_user_id'), table_name='holdings')
    op.drop_table('holdings')

    op.drop_index('ix_transactions_type', table_name='transactions')
    op.drop_index('ix_transactions_timestamp', table_name='transactions')
    op.drop_index(op.f('ix_transactions_user_id'), table_name='transactions')
    op.drop_table('transactions')

    op.drop_index(op.f('ix_users_name'), table_name='users')
    op.drop_table('users')

    postgresql.ENUM(name='transaction_type').drop(op.get_bind(), checkfirst=True)
