"""
Marketplace Sync Status Model

One row per (user, marketplace) tracking the reconciliation state machine.
"""

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from marketsync.database import Base
from marketsync.core.enums import SyncRunStatus


class MarketplaceSyncStatus(Base):
    """
    Lifecycle: created on the first sync attempt, updated at every phase
    transition (idle -> syncing -> completed | error), never deleted.
    """
    __tablename__ = "marketplace_sync_status"
    __table_args__ = (
        UniqueConstraint("user_id", "marketplace_id", name="uq_sync_status_user_marketplace"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    marketplace_id = Column(String(64), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=SyncRunStatus.IDLE.value)
    last_full_sync = Column(DateTime(timezone=True), nullable=True)
    total_listings = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<MarketplaceSyncStatus(user={self.user_id}, marketplace={self.marketplace_id}, status={self.status})>"
