from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.database import get_db

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request, db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception:
        db_connected = False

    provider = request.app.state.macro_pipeline.provider
    last_good = provider.last_known_good
    return {
        "status": "ready" if db_connected else "not_ready",
        "db_connected": db_connected,
        "macro_snapshot_at": last_good.fetched_at.isoformat() if last_good else None,
    }
