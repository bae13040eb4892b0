"""Initial migration - create the payment table

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create payment table
    op.create_table(
        'payment',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('txn_id', sa.String(100), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('ref', sa.String(50), nullable=False),
        sa.Column('content', sa.String(20), nullable=False),
        sa.Column('status', sa.Boolean(), nullable=False, server_default=sa.false()),
        # Set by the application in naive UTC; no server clock default
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('txn_id', name='payment_txn_id_unique'),
        sa.UniqueConstraint('ref', name='payment_ref_unique'),
        sa.UniqueConstraint('content', name='payment_content_unique'),
    )

    # Create indexes for payment
    op.create_index('ix_payment_created_at', 'payment', ['created_at'])
    op.create_index('ix_payment_amount_status', 'payment', ['amount', 'status'])


def downgrade() -> None:
    op.drop_index('ix_payment_amount_status', table_name='payment')
    op.drop_index('ix_payment_created_at', table_name='payment')
    op.drop_table('payment')
