"""initial_schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates users, auctions, auction_items, bids and phone_verifications.
auction_items.current_price stays NULL until the first accepted bid and is
only ever moved by a compare-and-set UPDATE from the bid ledger.

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('phone_number', sa.String(16), nullable=True, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(100), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_users_status', 'users', ['status'])

    op.create_table(
        'auctions',
        sa.Column('auction_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.user_id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('end_time > start_time', name='chk_auction_time'),
    )
    op.create_index('idx_auctions_time', 'auctions', ['start_time', 'end_time'])

    op.create_table(
        'auction_items',
        sa.Column('item_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('auction_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('auctions.auction_id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('starting_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('current_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('starting_price > 0', name='chk_item_starting_price_positive'),
        sa.CheckConstraint(
            'current_price IS NULL OR current_price > starting_price',
            name='chk_item_current_price_above_start',
        ),
    )
    op.create_index('idx_auction_items_auction', 'auction_items', ['auction_id'])

    op.create_table(
        'bids',
        sa.Column('bid_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('item_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('auction_items.item_id'), nullable=False),
        sa.Column('bidder_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.user_id'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('amount > 0', name='chk_bid_amount_positive'),
    )
    op.create_index('idx_bids_item_amount', 'bids', ['item_id', 'amount'])
    op.create_index('idx_bids_bidder', 'bids', ['bidder_id'])

    op.create_table(
        'phone_verifications',
        sa.Column('phone_number', sa.String(16), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.user_id'), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('phone_verifications')
    op.drop_index('idx_bids_bidder', table_name='bids')
    op.drop_index('idx_bids_item_amount', table_name='bids')
    op.drop_table('bids')
    op.drop_index('idx_auction_items_auction', table_name='auction_items')
    op.drop_table('auction_items')
    op.drop_index('idx_auctions_time', table_name='auctions')
    op.drop_table('auctions')
    op.drop_index('idx_users_status', table_name='users')
    op.drop_table('users')
