# marketsync/services/listing_store.py
"""
Record-level persistence for listings.

The write methods each take one ownership-specific payload type from
marketsync.schemas.listing and translate exactly that type's fields into the
UPDATE. Callers therefore can only write the columns they own.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from marketsync.core.enums import ListingStatus, ListingSyncStatus
from marketsync.core.exceptions import DatabaseError
from marketsync.database import get_session
from marketsync.models.listing import Listing
from marketsync.schemas.listing import (
    ExistingListing,
    InventoryFields,
    InventoryListing,
    NewListing,
    PricingFields,
    ReconciledFields,
    RepricingListing,
)

logger = logging.getLogger(__name__)


def reconciled_values(fields: ReconciledFields) -> Dict[str, Any]:
    """Column values for a reconciler update. Always marks the row synced."""
    values = fields.model_dump(mode="json")
    values["sync_status"] = ListingSyncStatus.SYNCED.value
    values["last_synced_at"] = datetime.now(timezone.utc)
    return values


def inventory_values(fields: InventoryFields) -> Dict[str, Any]:
    return fields.model_dump()


def pricing_values(fields: PricingFields) -> Dict[str, Any]:
    return fields.model_dump(exclude_none=True)


def new_listing_values(new: NewListing) -> Dict[str, Any]:
    values = reconciled_values(new.fields)
    values.update(
        user_id=new.user_id,
        marketplace_id=new.marketplace_id,
        external_id=new.external_id,
        product_id=new.product_id,
        current_stock_level=new.current_stock_level,
        is_available=new.is_available,
    )
    return values


class ListingStore(ABC):
    """Listing persistence as the sync engine consumes it."""

    @abstractmethod
    async def get_existing_listings(self, user_id: str, marketplace_id: str) -> List[ExistingListing]:
        pass

    @abstractmethod
    async def create_listing(self, new: NewListing) -> ExistingListing:
        pass

    @abstractmethod
    async def update_reconciled_fields(self, listing_id: int, fields: ReconciledFields) -> None:
        pass

    @abstractmethod
    async def update_inventory_fields(
        self,
        user_id: str,
        marketplace_id: str,
        external_id: str,
        fields: InventoryFields,
    ) -> Optional[ExistingListing]:
        """Write stock fields; returns the updated listing or None when no row matched."""
        pass

    @abstractmethod
    async def update_pricing_fields(self, listing_id: int, fields: PricingFields) -> None:
        pass

    @abstractmethod
    async def mark_status(self, listing_id: int, sync_status: ListingSyncStatus) -> None:
        pass

    @abstractmethod
    async def get_active_listings_for_product(self, user_id: str, product_id: int) -> List[RepricingListing]:
        pass

    @abstractmethod
    async def get_listings_below_minimum(self, user_id: str, threshold: float) -> List[RepricingListing]:
        """Active listings whose minimum_resell_price exceeds price by more than threshold."""
        pass

    @abstractmethod
    async def get_inventory_listings_for_product(self, user_id: str, product_id: int) -> List[InventoryListing]:
        """Active listings sourced from one product, with their stored stock."""
        pass


class SqlListingStore(ListingStore):
    """
    ListingStore over the listings table.

    Every operation opens its own short session and commits it, so each record
    write is its own transaction and a store instance can be shared with the
    detached inventory worker after the request that created it has finished.
    """

    def __init__(self, session_factory: Callable = get_session):
        self.session_factory = session_factory

    async def _execute_write(self, stmt, description: str):
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
                return result
        except SQLAlchemyError as e:
            logger.error(f"Database error during {description}: {str(e)}")
            raise DatabaseError(f"{description} failed: {str(e)}") from e

    async def get_existing_listings(self, user_id: str, marketplace_id: str) -> List[ExistingListing]:
        stmt = select(Listing.id, Listing.external_id, Listing.product_id).where(
            Listing.user_id == user_id,
            Listing.marketplace_id == marketplace_id,
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as e:
            logger.error(f"Database error loading listings for {user_id}/{marketplace_id}: {str(e)}")
            raise DatabaseError(f"Loading existing listings failed: {str(e)}") from e

        return [ExistingListing(id=row.id, external_id=row.external_id, product_id=row.product_id) for row in rows]

    async def create_listing(self, new: NewListing) -> ExistingListing:
        listing = Listing(**new_listing_values(new))
        try:
            async with self.session_factory() as session:
                session.add(listing)
                await session.flush()  # Get the ID before commit
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Database error creating listing {new.external_id}: {str(e)}")
            raise DatabaseError(f"Creating listing {new.external_id} failed: {str(e)}") from e

        return ExistingListing(id=listing.id, external_id=new.external_id, product_id=new.product_id)

    async def update_reconciled_fields(self, listing_id: int, fields: ReconciledFields) -> None:
        stmt = (
            update(Listing)
            .where(Listing.id == listing_id)
            .values(**reconciled_values(fields))
        )
        await self._execute_write(stmt, f"update of listing #{listing_id}")

    async def update_inventory_fields(
        self,
        user_id: str,
        marketplace_id: str,
        external_id: str,
        fields: InventoryFields,
    ) -> Optional[ExistingListing]:
        stmt = (
            update(Listing)
            .where(
                Listing.user_id == user_id,
                Listing.marketplace_id == marketplace_id,
                Listing.external_id == external_id,
            )
            .values(**inventory_values(fields))
            .returning(Listing.id, Listing.product_id)
        )
        result = await self._execute_write(stmt, f"stock update of {external_id}")
        row = result.first()
        if row is None:
            return None
        return ExistingListing(id=row.id, external_id=external_id, product_id=row.product_id)

    async def update_pricing_fields(self, listing_id: int, fields: PricingFields) -> None:
        stmt = (
            update(Listing)
            .where(Listing.id == listing_id)
            .values(**pricing_values(fields))
        )
        await self._execute_write(stmt, f"pricing update of listing #{listing_id}")

    async def mark_status(self, listing_id: int, sync_status: ListingSyncStatus) -> None:
        stmt = (
            update(Listing)
            .where(Listing.id == listing_id)
            .values(
                sync_status=ListingSyncStatus(sync_status).value,
                last_synced_at=datetime.now(timezone.utc),
            )
        )
        await self._execute_write(stmt, f"status update of listing #{listing_id}")

    async def _select_repricing_listings(self, stmt) -> List[RepricingListing]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                listings = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Database error loading listings for repricing: {str(e)}")
            raise DatabaseError(f"Loading listings for repricing failed: {str(e)}") from e
        return [RepricingListing.from_orm_model(listing) for listing in listings]

    async def get_active_listings_for_product(self, user_id: str, product_id: int) -> List[RepricingListing]:
        stmt = select(Listing).where(
            Listing.user_id == user_id,
            Listing.product_id == product_id,
            Listing.status == ListingStatus.ACTIVE.value,
        )
        return await self._select_repricing_listings(stmt)

    async def get_listings_below_minimum(self, user_id: str, threshold: float) -> List[RepricingListing]:
        stmt = select(Listing).where(
            Listing.user_id == user_id,
            Listing.status == ListingStatus.ACTIVE.value,
            Listing.minimum_resell_price.is_not(None),
            (Listing.minimum_resell_price - Listing.price) > threshold,
        )
        return await self._select_repricing_listings(stmt)

    async def get_inventory_listings_for_product(self, user_id: str, product_id: int) -> List[InventoryListing]:
        stmt = select(Listing).where(
            Listing.user_id == user_id,
            Listing.product_id == product_id,
            Listing.status == ListingStatus.ACTIVE.value,
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                listings = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Database error loading listings of product {product_id}: {str(e)}")
            raise DatabaseError(f"Loading listings for inventory sync failed: {str(e)}") from e
        return [InventoryListing.from_orm_model(listing) for listing in listings]
