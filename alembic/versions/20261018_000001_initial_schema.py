"""initial schema

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create customer, deposit and withdrawal tables."""
    op.create_table(
        'customer_accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('correlation_id', sa.String(64), nullable=False),
        sa.Column('balance', sa.DECIMAL(20, 7), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('balance >= 0', name='check_customer_balance_non_negative'),
    )
    op.create_index('ix_customer_accounts_correlation_id', 'customer_accounts', ['correlation_id'], unique=True)

    op.create_table(
        'deposit_cursors',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('stream_name', sa.String(64), nullable=False),
        sa.Column('token', sa.String(64), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('error_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_deposit_cursors_stream_name', 'deposit_cursors', ['stream_name'], unique=True)

    op.create_table(
        'credited_deposits',
        sa.Column('event_id', sa.String(64), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.DECIMAL(20, 7), nullable=False),
        sa.Column('transaction_hash', sa.String(64), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('event_id'),
        sa.ForeignKeyConstraint(['customer_id'], ['customer_accounts.id']),
        sa.CheckConstraint('amount > 0', name='check_credited_deposit_amount_positive'),
    )
    op.create_index('ix_credited_deposits_customer_id', 'credited_deposits', ['customer_id'])

    op.create_table(
        'unresolved_deposits',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.String(64), nullable=False),
        sa.Column('reason', sa.String(32), nullable=False),
        sa.Column('memo', sa.String(64), nullable=True),
        sa.Column('amount', sa.DECIMAL(20, 7), nullable=True),
        sa.Column('asset_type', sa.String(32), nullable=True),
        sa.Column('from_address', sa.String(64), nullable=True),
        sa.Column('transaction_hash', sa.String(64), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_customer_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['resolved_customer_id'], ['customer_accounts.id']),
    )
    op.create_index('ix_unresolved_deposits_event_id', 'unresolved_deposits', ['event_id'], unique=True)
    op.create_index('ix_unresolved_deposits_reason', 'unresolved_deposits', ['reason'])

    op.create_table(
        'withdrawal_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('destination_address', sa.String(64), nullable=False),
        sa.Column('amount', sa.DECIMAL(20, 7), nullable=False),
        sa.Column('state', sa.String(16), nullable=False),
        sa.Column('tx_hash', sa.String(64), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('ambiguous', sa.Boolean(), nullable=False),
        sa.Column('used_create_account', sa.Boolean(), nullable=False),
        sa.Column('attempted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['customer_id'], ['customer_accounts.id']),
        sa.CheckConstraint('amount > 0', name='check_withdrawal_amount_positive'),
        sa.CheckConstraint(
            "state IN ('pending', 'sending', 'done', 'error')",
            name='check_withdrawal_state',
        ),
    )
    op.create_index('ix_withdrawal_requests_customer_id', 'withdrawal_requests', ['customer_id'])
    op.create_index('idx_withdrawal_state_id', 'withdrawal_requests', ['state', 'id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('idx_withdrawal_state_id', table_name='withdrawal_requests')
    op.drop_index('ix_withdrawal_requests_customer_id', table_name='withdrawal_requests')
    op.drop_table('withdrawal_requests')

    op.drop_index('ix_unresolved_deposits_reason', table_name='unresolved_deposits')
    op.drop_index('ix_unresolved_deposits_event_id', table_name='unresolved_deposits')
    op.drop_table('unresolved_deposits')

    op.drop_index('ix_credited_deposits_customer_id', table_name='credited_deposits')
    op.drop_table('credited_deposits')

    op.drop_index('ix_deposit_cursors_stream_name', table_name='deposit_cursors')
    op.drop_table('deposit_cursors')

    op.drop_index('ix_customer_accounts_correlation_id', table_name='customer_accounts')
    op.drop_table('customer_accounts')
