# marketsync/services/inventory_sync.py
"""
Background verification of authoritative stock levels.

Runs after a reconciliation pass, one listing at a time with a fixed pause
between marketplace calls so the per-item stock endpoint stays under its
rate limit. This worker is the only writer of current_stock_level and
is_available on existing listings.

It also propagates source stock changes out to the marketplaces: a new
stock level for a product is written to every active listing sourced from
it, and stored only once the marketplace accepted it.
"""

import asyncio
import logging
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from marketsync.core.config import get_settings
from marketsync.core.enums import AuditEventType
from marketsync.integrations.base import CatalogSource
from marketsync.integrations.registry import CatalogSourceRegistry
from marketsync.schemas.listing import InventoryFields, InventoryListing
from marketsync.schemas.sync import InventorySyncSettings, ProductStockChange
from marketsync.services.audit_service import AuditSink
from marketsync.services.listing_store import ListingStore

logger = logging.getLogger(__name__)


@dataclass
class InventorySyncSummary:
    processed: int = 0
    updated: int = 0
    errors: int = 0


@dataclass
class InventoryPropagationSummary:
    processed: int = 0
    updated: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def merge(self, other: "InventoryPropagationSummary") -> None:
        self.updated += other.updated
        self.failed += other.failed
        self.skipped += other.skipped
        self.errors.extend(other.errors)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class InventorySyncWorker:

    def __init__(
        self,
        store: ListingStore,
        audit: AuditSink,
        delay_seconds: Optional[float] = None,
    ):
        self.store = store
        self.audit = audit
        self.delay_seconds = (
            delay_seconds if delay_seconds is not None else get_settings().INVENTORY_SYNC_DELAY_SECONDS
        )
        self._background_tasks: Set[asyncio.Task] = set()

    async def sync_inventory(
        self,
        source: CatalogSource,
        user_id: str,
        marketplace_id: str,
        external_ids: Sequence[str],
    ) -> InventorySyncSummary:
        """
        Re-read stock for each external id and store it.

        Failures are logged per item and skipped; nothing is raised for a
        single listing. A stock_updated audit event is emitted only after a
        successful store write.
        """
        run_id = uuid.uuid4().hex[:8]
        summary = InventorySyncSummary()
        total = len(external_ids)
        logger.info(f"[INVENTORY_SYNC:{run_id}] Processing {total} listings for {user_id}/{marketplace_id}")

        for index, external_id in enumerate(external_ids, start=1):
            summary.processed += 1
            try:
                logger.debug(f"[INVENTORY_SYNC:{run_id}] {index}/{total}: {external_id}")
                stock_level = await source.fetch_stock(external_id)
                fields = InventoryFields.from_stock(stock_level)

                listing = await self.store.update_inventory_fields(user_id, marketplace_id, external_id, fields)
                if listing is None:
                    logger.warning(f"[INVENTORY_SYNC:{run_id}] No stored listing for {external_id}; stock not written")
                    summary.errors += 1
                else:
                    summary.updated += 1
                    await self.audit.append(
                        AuditEventType.STOCK_UPDATED.value,
                        {
                            "sku": external_id,
                            "new_stock": fields.current_stock_level,
                            "is_available": fields.is_available,
                            "marketplace": marketplace_id,
                            "source": "background_sync",
                        },
                        user_id,
                        listing_id=listing.id,
                        product_id=listing.product_id,
                    )
            except Exception as e:
                logger.error(f"[INVENTORY_SYNC:{run_id}] Error processing {external_id}: {str(e)}")
                summary.errors += 1

            if index < total and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

        logger.info(
            f"[INVENTORY_SYNC:{run_id}] Completed: {summary.updated} updated, "
            f"{summary.errors} errors out of {summary.processed}"
        )
        return summary

    def spawn(
        self,
        source: CatalogSource,
        user_id: str,
        marketplace_id: str,
        external_ids: Sequence[str],
    ) -> asyncio.Task:
        """
        Start sync_inventory as a detached task and return immediately.

        The caller never awaits the task; its outcome is only observable
        through the audit log and later store reads. The task is kept in
        a set until done so it is not garbage collected mid-run.
        """
        task = asyncio.create_task(
            self._run_detached(source, user_id, marketplace_id, list(external_ids)),
            name=f"inventory-sync-{user_id}-{marketplace_id}",
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _run_detached(
        self,
        source: CatalogSource,
        user_id: str,
        marketplace_id: str,
        external_ids: List[str],
    ) -> Optional[InventorySyncSummary]:
        try:
            return await self.sync_inventory(source, user_id, marketplace_id, external_ids)
        except Exception as exc:
            logger.error(
                "Background inventory sync for %s/%s failed: %s",
                user_id,
                marketplace_id,
                exc,
                exc_info=True,
            )
            return None

    @property
    def pending_tasks(self) -> Set[asyncio.Task]:
        return set(self._background_tasks)

    async def sync_product_inventory(
        self,
        sources: CatalogSourceRegistry,
        user_id: str,
        product_id: int,
        new_stock_level: int,
        settings: InventorySyncSettings,
    ) -> InventoryPropagationSummary:
        """
        Push a product's new source stock level to each of its active listings.

        Listings whose stored stock already matches are skipped. A listing's
        stock columns are written only after its marketplace accepted the new
        quantity; rejected writes are audited as inventory_update_error.

        Raises:
            DatabaseError: the product's listings could not be loaded
        """
        summary = InventoryPropagationSummary()
        if not settings.automated_inventory_sync_enabled:
            logger.info(f"Automated inventory sync disabled for {user_id}; product {product_id} not propagated")
            return summary

        target = max(int(new_stock_level or 0), 0)
        listings = await self.store.get_inventory_listings_for_product(user_id, product_id)
        logger.info(f"Propagating stock {target} of product {product_id} to {len(listings)} listings")

        for listing in listings:
            summary.processed += 1
            current = listing.current_stock_level or 0
            if abs(current - target) < 1:
                summary.skipped += 1
                continue

            try:
                error = await self._push_inventory(sources, listing, target)
            except Exception as e:
                logger.error(f"Inventory propagation to listing {listing.id} failed: {str(e)}", exc_info=True)
                error = str(e)

            if error is None:
                summary.updated += 1
            else:
                summary.failed += 1
                summary.errors.append({"listing_id": listing.id, "error": error})

        return summary

    async def _push_inventory(
        self,
        sources: CatalogSourceRegistry,
        listing: InventoryListing,
        quantity: int,
    ) -> Optional[str]:
        """Write one listing's quantity to its marketplace, then to the store. Returns the error, if any."""
        source = sources.get(listing.marketplace_id)
        write = await source.write_inventory(listing.external_id, quantity)
        if not write.ok:
            error = write.error or "Inventory update rejected"
            logger.warning(f"Inventory update for listing {listing.id} on {listing.marketplace_id} failed: {error}")
            await self.audit.log_inventory_update_error(
                listing.id,
                listing.product_id,
                listing.user_id,
                quantity,
                listing.marketplace_id,
                error,
                write.error_code,
            )
            return error

        fields = InventoryFields.from_stock(quantity)
        stored = await self.store.update_inventory_fields(
            listing.user_id, listing.marketplace_id, listing.external_id, fields
        )
        if stored is None:
            return f"Listing {listing.external_id} disappeared before its stock could be stored"

        await self.audit.log_inventory_sync(
            listing.id,
            listing.product_id,
            listing.user_id,
            listing.current_stock_level or 0,
            fields.current_stock_level,
            listing.marketplace_id,
            "source_stock_changed",
        )
        return None

    async def batch_sync_inventory(
        self,
        sources: CatalogSourceRegistry,
        user_id: str,
        products: Sequence[ProductStockChange],
        settings: InventorySyncSettings,
    ) -> InventoryPropagationSummary:
        """Propagate several products' stock changes; processed counts products, the rest count listings."""
        summary = InventoryPropagationSummary()
        if not settings.automated_inventory_sync_enabled:
            logger.info(f"Automated inventory sync disabled for {user_id}; {len(products)} products not propagated")
            return summary

        for product in products:
            summary.processed += 1
            try:
                result = await self.sync_product_inventory(
                    sources, user_id, product.product_id, product.new_stock_level, settings
                )
            except Exception as e:
                logger.error(f"Inventory sync for product {product.product_id} failed: {str(e)}")
                summary.failed += 1
                summary.errors.append({"product_id": product.product_id, "error": str(e)})
                continue
            summary.merge(result)

        await self.audit.log_bulk_operation(user_id, "inventory_sync", summary.processed, {
            "updated": summary.updated,
            "failed": summary.failed,
            "skipped": summary.skipped,
            "total": len(products),
        })
        logger.info(
            f"Batch inventory sync for {user_id}: processed {summary.processed} products, "
            f"updated {summary.updated}, failed {summary.failed}"
        )
        return summary
