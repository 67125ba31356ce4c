# marketsync/services/reconciler.py
"""
Diff-and-apply of one marketplace snapshot into the listing store.

For one (user, marketplace) pair the reconciler:
1. Loads the stored listings keyed by external id.
2. Walks the marketplace catalog page by page.
3. Updates listings it already knows (reconciler-owned fields only) and
   creates the ones it does not.
4. Soft-deletes (sync_status=not_found) every stored listing the snapshot
   did not contain.

Per-record failures, including records the source could not parse, are
counted, never raised. Only a failure to load the stored listings or to
fetch the snapshot aborts the run.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Set

from marketsync.core.enums import AuditEventType, ListingSyncStatus
from marketsync.integrations.base import CatalogSource
from marketsync.schemas.listing import (
    ExistingListing,
    ExternalListingItem,
    NewListing,
    ReconciledFields,
)
from marketsync.services.audit_service import AuditSink
from marketsync.services.listing_store import ListingStore

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    """Counts for one reconciliation run plus the external ids it touched."""
    added: int = 0
    updated: int = 0
    not_found: int = 0
    errors: int = 0
    external_ids: List[str] = field(default_factory=list)

    @property
    def total_synced(self) -> int:
        return len(self.external_ids)

    def to_dict(self) -> Dict[str, int]:
        return {
            "added": self.added,
            "updated": self.updated,
            "not_found": self.not_found,
            "errors": self.errors,
        }


class Reconciler:
    """Classifies snapshot items as new / changed / disappeared and applies the result."""

    def __init__(self, store: ListingStore, audit: AuditSink):
        self.store = store
        self.audit = audit

    async def reconcile(
        self,
        user_id: str,
        marketplace_id: str,
        source: CatalogSource,
        result: ReconciliationResult = None,
    ) -> ReconciliationResult:
        """
        Reconcile the full marketplace snapshot for (user_id, marketplace_id).

        Args:
            user_id: Owner of the listings
            marketplace_id: Marketplace being reconciled
            source: Catalog source for that marketplace account
            result: Optional result to accumulate into, so a caller still sees
                the partial counts if the snapshot fetch fails midway

        Returns:
            ReconciliationResult with added/updated/not_found/errors counts

        Raises:
            DatabaseError: stored listings could not be loaded
            CatalogSourceError: a snapshot page could not be fetched
        """
        result = result if result is not None else ReconciliationResult()
        started = time.monotonic()

        existing = await self.store.get_existing_listings(user_id, marketplace_id)
        existing_map: Dict[str, ExistingListing] = {listing.external_id: listing for listing in existing}
        logger.info(f"Found {len(existing_map)} existing listings for {user_id}/{marketplace_id}")

        # Records written during this run, so a duplicate id updates instead of inserting twice
        handled: Dict[str, ExistingListing] = {}
        # Ids present in the snapshot, whether or not their write succeeded
        seen: Set[str] = set()
        touched: Set[str] = set()
        page_items = 0

        async for page in source.iter_pages():
            for external_id in page.rejected_ids:
                # Present on the marketplace but unreadable: not soft-deleted, not touched
                logger.error(f"Listing {external_id} could not be parsed from the snapshot")
                seen.add(external_id)
                result.errors += 1

            for item in page.items:
                page_items += 1
                seen.add(item.external_id)
                try:
                    target = handled.get(item.external_id) or existing_map.get(item.external_id)
                    if target is not None:
                        await self._apply_update(user_id, marketplace_id, target, item)
                        handled[item.external_id] = target
                        result.updated += 1
                    else:
                        created = await self._apply_create(user_id, marketplace_id, item)
                        handled[item.external_id] = created
                        result.added += 1
                except Exception as e:
                    logger.error(f"Error processing listing {item.external_id}: {str(e)}", exc_info=True)
                    result.errors += 1
                    continue

                if item.external_id not in touched:
                    touched.add(item.external_id)
                    result.external_ids.append(item.external_id)

        logger.info(f"Processed {page_items} snapshot items for {user_id}/{marketplace_id}")

        missing = [listing for external_id, listing in existing_map.items() if external_id not in seen]
        logger.info(f"Marking {len(missing)} listings as not found")
        for listing in missing:
            try:
                await self.store.mark_status(listing.id, ListingSyncStatus.NOT_FOUND)
                result.not_found += 1
            except Exception as e:
                logger.error(f"Error marking listing {listing.id} as not found: {str(e)}")
                result.errors += 1

        logger.info(
            f"Reconciliation for {user_id}/{marketplace_id} finished in "
            f"{time.monotonic() - started:.2f}s: {result.to_dict()}"
        )
        return result

    async def _apply_update(
        self,
        user_id: str,
        marketplace_id: str,
        listing: ExistingListing,
        item: ExternalListingItem,
    ) -> None:
        # Stock and availability belong to the inventory worker and are never sent here
        await self.store.update_reconciled_fields(listing.id, ReconciledFields.from_item(item))
        await self.audit.append(
            AuditEventType.LISTING_SYNCED.value,
            {
                "sku": item.sku or item.external_id,
                "price": item.price,
                "stock": item.quantity,
                "status": item.status.value,
                "marketplace": marketplace_id,
                "source": "marketplace_sync",
            },
            user_id,
            listing_id=listing.id,
            product_id=listing.product_id,
        )

    async def _apply_create(
        self,
        user_id: str,
        marketplace_id: str,
        item: ExternalListingItem,
    ) -> ExistingListing:
        created = await self.store.create_listing(NewListing.from_item(user_id, marketplace_id, item))
        await self.audit.append(
            AuditEventType.LISTING_CREATED.value,
            {
                "sku": item.sku or item.external_id,
                "title": item.title,
                "price": item.price,
                "stock": item.quantity,
                "marketplace": marketplace_id,
                "source": "marketplace_sync",
            },
            user_id,
            listing_id=created.id,
            product_id=None,
        )
        return created
