# marketsync/routes/sync.py
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from marketsync.core.exceptions import ValidationError
from marketsync.dependencies import get_orchestrator
from marketsync.schemas.sync import SyncRequest, SyncStatusRead
from marketsync.services.sync_orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/sync", tags=["Synchronization Actions"])


@router.post("/{marketplace_id}")
async def run_marketplace_sync(
    marketplace_id: str,
    request: SyncRequest,
    response: Response,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """
    Reconcile the seller's full catalog on one marketplace.

    Returns once reconciliation is done; stock verification continues in the
    background and is visible through the audit log.
    """
    try:
        result = await orchestrator.run_sync(request.user_id, marketplace_id, request.credentials)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not result.success:
        # The marketplace could not be read; the partial counts are still reported
        response.status_code = 502
    return asdict(result)


@router.get("/{marketplace_id}/status", response_model=SyncStatusRead)
async def marketplace_sync_status(
    marketplace_id: str,
    user_id: str = Query(..., min_length=1),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    try:
        return await orchestrator.get_status(user_id, marketplace_id)
    except Exception as e:
        logger.error(f"Error getting sync status for {user_id}/{marketplace_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
