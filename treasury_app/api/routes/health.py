from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from treasury_app.infrastructure.db.database import get_db

router = APIRouter()


@router.get("/health")
async def health(request: Request, db: AsyncSession = Depends(get_db)):
    db_status = "disconnected"
    db_error = None
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as exc:
        db_status = "error"
        db_error = str(exc)

    yield_service = getattr(request.app.state, "yield_service", None)

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "service": "Treasury Ledger",
        "database": db_status,
        "database_error": db_error,
        "cached_periods": yield_service.cache.cached_periods() if yield_service else [],
        "warming_tasks": yield_service.pending_warm_tasks if yield_service else 0,
    }
