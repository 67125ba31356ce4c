# marketsync/models/listing.py
from sqlalchemy import (
    Boolean, Column, DateTime, Float, Integer, String, UniqueConstraint, text, TIMESTAMP
)
from sqlalchemy.dialects.postgresql import JSONB

from marketsync.database import Base
from marketsync.core.enums import ListingStatus, ListingSyncStatus


class Listing(Base):
    """
    One externally sold item for a (user, marketplace) pair.

    Columns are partitioned by the subsystem that owns them:
    - reconciler: title, price, status, sku, upc, external_data, last_synced_at, sync_status
    - inventory sync worker: current_stock_level, is_available (reconciler sets them on insert only)
    - user configuration: marketplace_fee_percentage
    - repricing engine: minimum_resell_price
    """
    __tablename__ = "listings"
    __table_args__ = (
        UniqueConstraint("user_id", "marketplace_id", "external_id", name="uq_listings_identity"),
    )

    id = Column(Integer, primary_key=True)
    created_at = Column(
        TIMESTAMP(timezone=False),
        server_default=text("timezone('utc', now())"),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP(timezone=False),
        server_default=text("timezone('utc', now())"),
        onupdate=text("timezone('utc', now())"),
        nullable=False
    )

    # --- Identity ---
    user_id = Column(String(64), nullable=False, index=True)
    marketplace_id = Column(String(64), nullable=False, index=True)
    external_id = Column(String, nullable=False, index=True)
    sku = Column(String, index=True)

    # Weak reference to a sourced product; null for marketplace-only listings
    product_id = Column(Integer, nullable=True, index=True)

    # --- Reconciler owned ---
    title = Column(String)
    price = Column(Float)
    status = Column(String, default=ListingStatus.ACTIVE.value, index=True)
    upc = Column(String, nullable=True)
    external_data = Column(JSONB, default={})
    last_synced_at = Column(DateTime(timezone=True))
    sync_status = Column(String, default=ListingSyncStatus.SYNCED.value, index=True)

    # --- Inventory sync owned ---
    current_stock_level = Column(Integer, default=0)
    is_available = Column(Boolean, default=False)

    # --- User / repricing owned ---
    marketplace_fee_percentage = Column(Float, nullable=True)
    minimum_resell_price = Column(Float, nullable=True)

    def __repr__(self):
        return (f"<Listing(id={self.id}, user='{self.user_id}', marketplace='{self.marketplace_id}', "
                f"external_id='{self.external_id}', sync_status='{self.sync_status}')>")
