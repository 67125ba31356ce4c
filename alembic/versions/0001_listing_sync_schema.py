"""Listing sync schema - listings, marketplace_sync_status, listing_logs

Revision ID: 0001_listing_sync_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001_listing_sync_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'listings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=False), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=False), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('marketplace_id', sa.String(length=64), nullable=False),
        sa.Column('external_id', sa.String(), nullable=False),
        sa.Column('sku', sa.String(), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('status', sa.String(), nullable=True),
        sa.Column('upc', sa.String(), nullable=True),
        sa.Column('external_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sync_status', sa.String(), nullable=True),
        sa.Column('current_stock_level', sa.Integer(), nullable=True),
        sa.Column('is_available', sa.Boolean(), nullable=True),
        sa.Column('marketplace_fee_percentage', sa.Float(), nullable=True),
        sa.Column('minimum_resell_price', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'marketplace_id', 'external_id', name='uq_listings_identity'),
    )
    op.create_index('ix_listings_user_id', 'listings', ['user_id'])
    op.create_index('ix_listings_marketplace_id', 'listings', ['marketplace_id'])
    op.create_index('ix_listings_external_id', 'listings', ['external_id'])
    op.create_index('ix_listings_sku', 'listings', ['sku'])
    op.create_index('ix_listings_product_id', 'listings', ['product_id'])
    op.create_index('ix_listings_status', 'listings', ['status'])
    op.create_index('ix_listings_sync_status', 'listings', ['sync_status'])

    op.create_table(
        'marketplace_sync_status',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('marketplace_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('last_full_sync', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_listings', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'marketplace_id', name='uq_sync_status_user_marketplace'),
    )
    op.create_index('ix_marketplace_sync_status_id', 'marketplace_sync_status', ['id'])
    op.create_index('ix_marketplace_sync_status_user_id', 'marketplace_sync_status', ['user_id'])
    op.create_index('ix_marketplace_sync_status_marketplace_id', 'marketplace_sync_status', ['marketplace_id'])

    op.create_table(
        'listing_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('event_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('listing_id', sa.Integer(), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_listing_logs_event_type', 'listing_logs', ['event_type'])
    op.create_index('ix_listing_logs_user_id', 'listing_logs', ['user_id'])
    op.create_index('ix_listing_logs_listing_id', 'listing_logs', ['listing_id'])
    op.create_index('ix_listing_logs_product_id', 'listing_logs', ['product_id'])
    op.create_index('ix_listing_logs_created_at', 'listing_logs', ['created_at'])


def downgrade() -> None:
    op.drop_table('listing_logs')
    op.drop_table('marketplace_sync_status')
    op.drop_table('listings')
