# marketsync/routes/repricing.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from marketsync.dependencies import RepricingEngineBuilder, get_repricing_engine_builder
from marketsync.schemas.sync import BatchRepricingRequest, BelowMinimumRequest, ProductRepricingRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/repricing", tags=["repricing"])


@router.post("/batch")
async def batch_reprice(
    request: BatchRepricingRequest,
    build_engine: RepricingEngineBuilder = Depends(get_repricing_engine_builder),
):
    """Re-check the price floor of several listings after their source costs changed"""
    if not request.items:
        raise HTTPException(status_code=400, detail="Listings array is required")

    engine = build_engine(request.credentials)
    summary = await engine.batch_reprice(request.items, request.settings, user_id=request.user_id)
    return {"success": True, **summary.to_dict()}


@router.post("/below-minimum")
async def reprice_below_minimum(
    request: BelowMinimumRequest,
    build_engine: RepricingEngineBuilder = Depends(get_repricing_engine_builder),
):
    """Run the daily minimum-price check for one user on demand"""
    engine = build_engine(request.credentials)
    try:
        summary = await engine.reprice_below_minimum(request.user_id, request.settings)
    except Exception as e:
        logger.error(f"Below-minimum repricing for {request.user_id} failed: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True, **summary.to_dict()}


@router.post("/product/{product_id}")
async def reprice_product(
    product_id: int,
    request: ProductRepricingRequest,
    build_engine: RepricingEngineBuilder = Depends(get_repricing_engine_builder),
):
    """Re-check every active listing of a product after its source cost changed"""
    engine = build_engine(request.credentials)
    try:
        summary = await engine.reprice_product(
            request.user_id,
            product_id,
            request.new_source_cost,
            request.shipping_cost,
            request.settings,
        )
    except Exception as e:
        logger.error(f"Repricing product {product_id} for {request.user_id} failed: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True, "product_id": product_id, **summary.to_dict()}
