"""Conditional stock decrements for redeemable gifts."""

from __future__ import annotations

from uuid import UUID

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api.models.gift import Gift
from giftpoints_api.services.errors import (
    GiftInactiveError,
    GiftNotFoundError,
    InsufficientStockError,
    StockRaceError,
)


class StockGuard:
    """Guards ``Gift.stock`` so it never drops below zero under concurrency."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def load(self, gift_id: UUID) -> Gift:
        """Read the current gift row, bypassing anything cached in the session."""

        stmt = (
            select(Gift)
            .where(Gift.id == gift_id)
            .execution_options(populate_existing=True)
        )
        gift = (await self._db.execute(stmt)).scalar_one_or_none()
        if gift is None:
            raise GiftNotFoundError(gift_id)
        if not gift.is_active:
            raise GiftInactiveError(gift_id, gift_name=gift.name)
        return gift

    async def reserve(self, gift_id: UUID, quantity: int) -> Gift:
        """Decrement stock by ``quantity`` or fail without touching the row."""

        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        gift = await self.load(gift_id)
        if gift.stock < quantity:
            raise InsufficientStockError(available=gift.stock, requested=quantity)

        stmt = (
            update(Gift)
            .where(Gift.id == gift_id, Gift.stock >= quantity)
            .values(stock=Gift.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        if result.rowcount == 0:
            logger.warning("Stock race lost", gift_id=str(gift_id), quantity=quantity)
            raise StockRaceError(gift_id)

        await self._db.refresh(gift)
        logger.debug("Reserved gift stock", gift_id=str(gift_id), quantity=quantity, stock=gift.stock)
        return gift


__all__ = ["StockGuard"]
