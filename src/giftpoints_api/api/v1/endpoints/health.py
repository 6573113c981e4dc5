from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api import __version__
from giftpoints_api.core.settings import settings
from giftpoints_api.db.session import get_session


router = APIRouter(tags=["Health"])


@router.get("/healthz", summary="Service health check")
async def service_health() -> dict[str, str]:
    return {"status": "ok", "environment": settings.environment, "version": __version__}


@router.get("/readyz", summary="Service readiness")
async def service_readiness(session: AsyncSession = Depends(get_session)) -> dict[str, str]:
    """Ready once the ledger store answers a trivial query."""

    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ledger store unavailable",
        ) from exc
    return {"status": "ready", "database": "ok"}
