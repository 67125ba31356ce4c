# marketsync/services/sync_orchestrator.py
"""
Entry point for a full marketplace sync.

run_sync() validates its inputs, moves the status record through
syncing -> completed | error, runs one reconciliation pass on the calling
task and, on success, hands the touched listings to the inventory worker
as a detached background task before returning.

Concurrent runs for the same (user, marketplace) are not serialised here;
callers that can trigger overlapping runs must guard against it themselves.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Dict, Optional

from marketsync.core.enums import SyncRunStatus
from marketsync.core.exceptions import ValidationError
from marketsync.integrations.base import CatalogSource
from marketsync.integrations.http_source import HttpCatalogSource
from marketsync.schemas.sync import MarketplaceCredentials, SyncStatusRead
from marketsync.services.audit_service import AuditService
from marketsync.services.inventory_sync import InventorySyncWorker
from marketsync.services.listing_store import SqlListingStore
from marketsync.services.reconciler import ReconciliationResult, Reconciler
from marketsync.services.sync_status_service import SyncStatusService, SyncStatusTracker

logger = logging.getLogger(__name__)

SourceFactory = Callable[[str, MarketplaceCredentials], CatalogSource]


@dataclass
class SyncRunResult:
    success: bool
    user_id: str
    marketplace_id: str
    results: Dict[str, int] = field(default_factory=dict)
    total_synced: int = 0
    error: Optional[str] = None


def validate_sync_request(user_id: str, marketplace_id: str, credentials: Optional[MarketplaceCredentials]) -> None:
    if not user_id or not str(user_id).strip():
        raise ValidationError("user_id is required")
    if not marketplace_id or not str(marketplace_id).strip():
        raise ValidationError("marketplace_id is required")
    if credentials is None or not credentials.is_complete:
        raise ValidationError(f"Marketplace credentials not configured for {marketplace_id}")


class SyncOrchestrator:

    def __init__(
        self,
        reconciler: Reconciler,
        inventory_worker: InventorySyncWorker,
        status_service: SyncStatusTracker,
        source_factory: SourceFactory = HttpCatalogSource,
    ):
        self.reconciler = reconciler
        self.inventory_worker = inventory_worker
        self.status_service = status_service
        self.source_factory = source_factory

    async def run_sync(
        self,
        user_id: str,
        marketplace_id: str,
        credentials: MarketplaceCredentials,
    ) -> SyncRunResult:
        """
        Run one full sync for (user_id, marketplace_id).

        Raises:
            ValidationError: inputs are incomplete; nothing has been written

        Returns:
            SyncRunResult. success=False only when the marketplace snapshot
            could not be read; per-listing failures show up in results["errors"].
        """
        validate_sync_request(user_id, marketplace_id, credentials)

        run_id = uuid.uuid4().hex[:8]
        logger.info(f"[SYNC:{run_id}] Starting {marketplace_id} sync for user {user_id}")

        await self.status_service.update_status(user_id, marketplace_id, SyncRunStatus.SYNCING)

        result = ReconciliationResult()

        try:
            source = self.source_factory(marketplace_id, credentials)
            await self.reconciler.reconcile(user_id, marketplace_id, source, result=result)
        except Exception as e:
            logger.error(f"[SYNC:{run_id}] Sync failed: {str(e)}", exc_info=True)
            await self.status_service.update_status(
                user_id,
                marketplace_id,
                SyncRunStatus.ERROR,
                error_message=str(e),
            )
            return SyncRunResult(
                success=False,
                user_id=user_id,
                marketplace_id=marketplace_id,
                results=result.to_dict(),
                total_synced=result.total_synced,
                error=str(e),
            )

        await self.status_service.update_status(
            user_id,
            marketplace_id,
            SyncRunStatus.COMPLETED,
            total_listings=result.total_synced,
            last_full_sync=datetime.now(timezone.utc),
        )

        if result.external_ids:
            self.inventory_worker.spawn(source, user_id, marketplace_id, result.external_ids)
            logger.info(f"[SYNC:{run_id}] Inventory verification started for {len(result.external_ids)} listings")

        logger.info(f"[SYNC:{run_id}] Completed: {result.to_dict()}")
        return SyncRunResult(
            success=True,
            user_id=user_id,
            marketplace_id=marketplace_id,
            results=result.to_dict(),
            total_synced=result.total_synced,
        )

    async def get_status(self, user_id: str, marketplace_id: str) -> SyncStatusRead:
        return await self.status_service.get_status(user_id, marketplace_id)


@lru_cache()
def get_sync_orchestrator() -> SyncOrchestrator:
    # One per process: the inventory worker keeps its detached tasks referenced until they finish
    store = SqlListingStore()
    audit = AuditService()
    return SyncOrchestrator(
        reconciler=Reconciler(store, audit),
        inventory_worker=InventorySyncWorker(store, audit),
        status_service=SyncStatusService(),
    )
