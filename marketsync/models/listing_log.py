# marketsync/models/listing_log.py
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import JSONB
from marketsync.database import Base

class ListingLog(Base):
    """
    Append-only audit trail for listing activity.

    This includes:
    - Reconciliation events (listing_created, listing_synced)
    - Background stock verification (stock_updated)
    - Repricing outcomes and errors
    - Bulk operation summaries
    """
    __tablename__ = "listing_logs"

    id = Column(Integer, primary_key=True)
    event_type = Column(String(50), nullable=False, index=True)
    event_data = Column(JSONB, nullable=True)

    user_id = Column(String(64), nullable=False, index=True)
    # No foreign keys: the log must outlive the rows it mentions
    listing_id = Column(Integer, nullable=True, index=True)
    product_id = Column(Integer, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<ListingLog {self.event_type} listing={self.listing_id} user={self.user_id}>"
