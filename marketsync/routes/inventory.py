# marketsync/routes/inventory.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from marketsync.dependencies import SourceRegistryBuilder, get_inventory_worker, get_source_registry_builder
from marketsync.schemas.sync import BatchInventorySyncRequest, ProductInventorySyncRequest
from marketsync.services.inventory_sync import InventorySyncWorker

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.post("/sync/product/{product_id}")
async def sync_product_inventory(
    product_id: int,
    request: ProductInventorySyncRequest,
    worker: InventorySyncWorker = Depends(get_inventory_worker),
    build_sources: SourceRegistryBuilder = Depends(get_source_registry_builder),
):
    """Push a product's new source stock level to its marketplace listings"""
    try:
        summary = await worker.sync_product_inventory(
            build_sources(request.credentials),
            request.user_id,
            product_id,
            request.new_stock_level,
            request.settings,
        )
    except Exception as e:
        logger.error(f"Inventory sync for product {product_id} failed: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    return {
        "success": True,
        "enabled": request.settings.automated_inventory_sync_enabled,
        "product_id": product_id,
        **summary.to_dict(),
    }


@router.post("/sync/batch")
async def batch_sync_inventory(
    request: BatchInventorySyncRequest,
    worker: InventorySyncWorker = Depends(get_inventory_worker),
    build_sources: SourceRegistryBuilder = Depends(get_source_registry_builder),
):
    """Push stock changes for several products, e.g. after a source catalog refresh"""
    if not request.products:
        raise HTTPException(status_code=400, detail="Products array is required")

    summary = await worker.batch_sync_inventory(
        build_sources(request.credentials),
        request.user_id,
        request.products,
        request.settings,
    )
    return {
        "success": True,
        "enabled": request.settings.automated_inventory_sync_enabled,
        "total": len(request.products),
        **summary.to_dict(),
    }
