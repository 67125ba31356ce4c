from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from marketsync.database import get_session
from marketsync.scheduler import get_scheduler_status

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "marketsync"}


@router.get("/health/db")
async def database_health():
    """Check database connectivity"""
    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e)
        }


@router.get("/api/scheduler/status")
async def scheduler_status():
    """Get current scheduler status and configured jobs"""
    try:
        return await get_scheduler_status()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
