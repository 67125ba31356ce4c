# marketsync/services/audit_service.py
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from marketsync.core.enums import AuditEventType
from marketsync.database import get_session
from marketsync.models.listing_log import ListingLog

logger = logging.getLogger(__name__)


class AuditSink(ABC):
    """
    Append-only event log.

    append() must never raise: logging failures are swallowed so they can
    not change the outcome of the operation being logged.
    """

    @abstractmethod
    async def append(
        self,
        event_type: str,
        event_data: Dict[str, Any],
        user_id: str,
        listing_id: Optional[int] = None,
        product_id: Optional[int] = None,
    ) -> bool:
        pass

    async def log_repricing(
        self,
        listing_id: int,
        product_id: Optional[int],
        user_id: str,
        old_price: float,
        new_price: float,
        marketplace: str,
        reason: str,
        event_type: str = AuditEventType.REPRICING_APPLIED.value,
    ) -> bool:
        """
        Log a price change pushed to a marketplace.

        Args:
            listing_id: The repriced listing
            product_id: Source product, if any
            user_id: Owner of the listing
            old_price: Price before the change
            new_price: Price after the change
            marketplace: Marketplace the price was written to
            reason: Why the price moved (e.g. minimum_profit_threshold)
            event_type: Overrides the event name for the daily check
        """
        old_price = old_price or 0.0
        price_difference = round(new_price - old_price, 2)
        percentage_change = round(price_difference / old_price * 100, 2) if old_price else None
        return await self.append(
            event_type,
            {
                "old_price": old_price,
                "new_price": new_price,
                "marketplace": marketplace,
                "reason": reason,
                "price_difference": price_difference,
                "percentage_change": percentage_change,
            },
            user_id,
            listing_id=listing_id,
            product_id=product_id,
        )

    async def log_price_update_error(
        self,
        listing_id: int,
        product_id: Optional[int],
        user_id: str,
        attempted_price: float,
        marketplace: str,
        error: str,
        error_code: Optional[str] = None,
    ) -> bool:
        return await self.append(
            AuditEventType.PRICE_UPDATE_ERROR.value,
            {
                "attempted_price": attempted_price,
                "marketplace": marketplace,
                "error": error or "Unknown error",
                "error_code": error_code,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            user_id,
            listing_id=listing_id,
            product_id=product_id,
        )

    async def log_inventory_sync(
        self,
        listing_id: int,
        product_id: Optional[int],
        user_id: str,
        old_stock: int,
        new_stock: int,
        marketplace: str,
        reason: str,
    ) -> bool:
        """Log a source stock change pushed to a marketplace listing."""
        return await self.append(
            AuditEventType.INVENTORY_SYNC.value,
            {
                "old_stock": old_stock,
                "new_stock": new_stock,
                "stock_difference": new_stock - (old_stock or 0),
                "marketplace": marketplace,
                "reason": reason,
            },
            user_id,
            listing_id=listing_id,
            product_id=product_id,
        )

    async def log_inventory_update_error(
        self,
        listing_id: int,
        product_id: Optional[int],
        user_id: str,
        attempted_quantity: int,
        marketplace: str,
        error: str,
        error_code: Optional[str] = None,
    ) -> bool:
        return await self.append(
            AuditEventType.INVENTORY_UPDATE_ERROR.value,
            {
                "attempted_quantity": attempted_quantity,
                "marketplace": marketplace,
                "error": error or "Unknown error",
                "error_code": error_code,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            user_id,
            listing_id=listing_id,
            product_id=product_id,
        )

    async def log_bulk_operation(
        self,
        user_id: str,
        operation: str,
        affected_count: int,
        details: Dict[str, Any],
    ) -> bool:
        return await self.append(
            f"bulk_{operation}",
            {
                "affected_count": affected_count,
                **details,
                "executed_at": datetime.now(timezone.utc).isoformat(),
            },
            user_id,
        )


class AuditService(AuditSink):
    """
    Audit sink backed by the listing_logs table.

    Each event is written in its own short session so a failed log write can
    never roll back, or be rolled back by, the business write it describes.
    """

    def __init__(self, session_factory: Callable = get_session):
        self.session_factory = session_factory

    async def append(
        self,
        event_type: str,
        event_data: Dict[str, Any],
        user_id: str,
        listing_id: Optional[int] = None,
        product_id: Optional[int] = None,
    ) -> bool:
        try:
            async with self.session_factory() as session:
                session.add(ListingLog(
                    event_type=event_type,
                    event_data=event_data,
                    user_id=str(user_id),
                    listing_id=listing_id,
                    product_id=product_id,
                    created_at=datetime.now(timezone.utc),
                ))
                await session.commit()

            logger.debug(f"Audit event logged: {event_type} listing={listing_id or 'N/A'} user={user_id}")
            return True

        except Exception as e:
            logger.error(f"Error logging audit event {event_type}: {str(e)}")
            # Don't raise, as logging should not interrupt the main flow
            return False

