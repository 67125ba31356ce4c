"""
Sync Status Service

Tracks the reconciliation state machine per (user, marketplace):
idle -> syncing -> completed | error. Status writes are bookkeeping and
never interrupt the sync they describe.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert

from marketsync.core.enums import SyncRunStatus
from marketsync.database import get_session
from marketsync.models.sync_status import MarketplaceSyncStatus
from marketsync.schemas.sync import SyncStatusRead

logger = logging.getLogger(__name__)


class SyncStatusTracker(ABC):

    @abstractmethod
    async def update_status(
        self,
        user_id: str,
        marketplace_id: str,
        status: SyncRunStatus,
        total_listings: Optional[int] = None,
        last_full_sync: Optional[datetime] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        pass

    @abstractmethod
    async def get_status(self, user_id: str, marketplace_id: str) -> SyncStatusRead:
        pass


def status_values(
    status: SyncRunStatus,
    total_listings: Optional[int] = None,
    last_full_sync: Optional[datetime] = None,
    error_message: Optional[str] = None,
) -> Dict[str, Any]:
    """Columns to upsert for a status transition. error_message is cleared unless in error."""
    status = SyncRunStatus(status)
    values: Dict[str, Any] = {
        "status": status.value,
        "error_message": error_message if status == SyncRunStatus.ERROR else None,
        "updated_at": datetime.now(timezone.utc),
    }
    if total_listings is not None:
        values["total_listings"] = total_listings
    if last_full_sync is not None:
        values["last_full_sync"] = last_full_sync
    return values


class SyncStatusService(SyncStatusTracker):
    """Service for the marketplace_sync_status table."""

    def __init__(self, session_factory: Callable = get_session):
        self.session_factory = session_factory

    async def update_status(
        self,
        user_id: str,
        marketplace_id: str,
        status: SyncRunStatus,
        total_listings: Optional[int] = None,
        last_full_sync: Optional[datetime] = None,
        error_message: Optional[str] = None,
    ) -> bool:
        values = status_values(status, total_listings, last_full_sync, error_message)
        stmt = insert(MarketplaceSyncStatus).values(
            user_id=user_id,
            marketplace_id=marketplace_id,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "marketplace_id"],
            set_=values,
        )

        try:
            async with self.session_factory() as session:
                await session.execute(stmt)
                await session.commit()
            logger.debug(f"Sync status for {user_id}/{marketplace_id} -> {values['status']}")
            return True

        except Exception as e:
            logger.error(f"Error updating sync status for {user_id}/{marketplace_id}: {str(e)}", exc_info=True)
            # Don't raise - status tracking failures shouldn't break the sync
            return False

    async def get_status(self, user_id: str, marketplace_id: str) -> SyncStatusRead:
        stmt = select(MarketplaceSyncStatus).where(
            MarketplaceSyncStatus.user_id == user_id,
            MarketplaceSyncStatus.marketplace_id == marketplace_id,
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            record = result.scalar_one_or_none()

        if record is None:
            return SyncStatusRead(
                user_id=user_id,
                marketplace_id=marketplace_id,
                status=SyncRunStatus.IDLE.value,
            )
        return SyncStatusRead.from_orm_model(record)
