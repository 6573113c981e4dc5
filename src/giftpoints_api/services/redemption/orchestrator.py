"""Atomic gift redemption: points debit, stock decrement and redemption rows."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Sequence
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api.db.session import unit_of_work
from giftpoints_api.models.gift import Gift
from giftpoints_api.models.redemption import Redemption, RedemptionStatus
from giftpoints_api.observability.redemptions import RedemptionObservabilityStore, get_redemption_store
from giftpoints_api.services.errors import (
    GiftInactiveError,
    GiftNotFoundError,
    InsufficientPointsError,
    InsufficientStockError,
    LedgerError,
)
from giftpoints_api.services.inventory import StockGuard
from giftpoints_api.services.ledger import BalanceLedger


@dataclass
class RedemptionItem:
    gift_id: UUID
    quantity: int = 1


@dataclass
class RedemptionReceipt:
    """Result of a committed single-gift redemption."""

    redemption: Redemption
    points_spent: int
    message: str


@dataclass
class BatchRedemptionReceipt:
    """Result of a committed multi-gift redemption, lines in request order."""

    batch_id: UUID
    redemptions: list[Redemption] = field(default_factory=list)
    total_points_spent: int = 0
    message: str = ""


class RedemptionOrchestrator:
    """Runs each redemption as one unit of work over the ledger and stock guard.

    Nothing is committed unless every step succeeds: a failed debit, a stock
    race or any other error rolls back the redemption rows, the ledger entry
    and the stock decrement together.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        *,
        ledger: BalanceLedger | None = None,
        stock_guard: StockGuard | None = None,
        store: RedemptionObservabilityStore | None = None,
    ) -> None:
        self._db = db_session
        self._ledger = ledger or BalanceLedger(db_session)
        self._stock = stock_guard or StockGuard(db_session)
        self._store = store or get_redemption_store()

    async def redeem(self, user_id: UUID, gift_id: UUID, quantity: int = 1) -> RedemptionReceipt:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")

        try:
            async with unit_of_work(self._db):
                gift = await self._stock.load(gift_id)
                if gift.stock < quantity:
                    raise InsufficientStockError(available=gift.stock, requested=quantity)

                total = gift.points_required * quantity
                await self._ledger.lock_user(user_id)
                balance = await self._ledger.get_balance(user_id)
                if balance < total:
                    raise InsufficientPointsError(required=total, available=balance)

                redemption = Redemption(
                    user_id=user_id,
                    gift_id=gift.id,
                    quantity=quantity,
                    points_spent=total,
                    status=RedemptionStatus.COMPLETED,
                )
                self._db.add(redemption)
                await self._db.flush()

                if total > 0:
                    await self._ledger.debit(
                        user_id,
                        total,
                        f"Redeemed {quantity}x {gift.name}",
                        reference_id=redemption.id,
                    )
                await self._stock.reserve(gift.id, quantity)
        except LedgerError as exc:
            self._store.record_failure(exc.code)
            logger.info(
                "Redemption rejected",
                user_id=str(user_id),
                gift_id=str(gift_id),
                quantity=quantity,
                reason=exc.code,
            )
            raise

        self._store.record_redemption(quantity=quantity, points=total)
        if total > 0:
            self._store.record_ledger_debit(total)
        logger.info(
            "Redeemed gift",
            user_id=str(user_id),
            gift_id=str(gift_id),
            redemption_id=str(redemption.id),
            quantity=quantity,
            points=total,
        )
        return RedemptionReceipt(
            redemption=redemption,
            points_spent=total,
            message=f"Successfully redeemed {quantity}x {gift.name}",
        )

    async def redeem_multiple(
        self,
        user_id: UUID,
        items: Sequence[RedemptionItem],
    ) -> BatchRedemptionReceipt:
        if not items:
            raise ValueError("At least one item is required")
        for item in items:
            if item.quantity < 1:
                raise ValueError("Quantity must be at least 1")

        # Duplicate gift ids draw on the same stock.
        requested: "OrderedDict[UUID, int]" = OrderedDict()
        for item in items:
            requested[item.gift_id] = requested.get(item.gift_id, 0) + item.quantity

        batch_id = uuid4()
        try:
            async with unit_of_work(self._db):
                gifts: dict[UUID, Gift] = {}
                for gift_id, quantity in requested.items():
                    gifts[gift_id] = await self._load_batch_line(gift_id, quantity)

                total = sum(gifts[item.gift_id].points_required * item.quantity for item in items)
                await self._ledger.lock_user(user_id)
                balance = await self._ledger.get_balance(user_id)
                if balance < total:
                    raise InsufficientPointsError(required=total, available=balance)

                redemptions: list[Redemption] = []
                for item in items:
                    gift = gifts[item.gift_id]
                    redemption = Redemption(
                        user_id=user_id,
                        gift_id=gift.id,
                        quantity=item.quantity,
                        points_spent=gift.points_required * item.quantity,
                        status=RedemptionStatus.COMPLETED,
                        batch_id=batch_id,
                    )
                    self._db.add(redemption)
                    redemptions.append(redemption)
                await self._db.flush()

                for gift_id in sorted(requested):
                    await self._stock.reserve(gift_id, requested[gift_id])

                if total > 0:
                    await self._ledger.debit(
                        user_id,
                        total,
                        f"Redeemed {len(items)} items",
                        reference_id=batch_id,
                    )
        except LedgerError as exc:
            self._store.record_failure(exc.code)
            logger.info(
                "Batch redemption rejected",
                user_id=str(user_id),
                items=len(items),
                reason=exc.code,
            )
            raise

        self._store.record_batch(items=len(items), points=total)
        if total > 0:
            self._store.record_ledger_debit(total)
        logger.info(
            "Redeemed gift batch",
            user_id=str(user_id),
            batch_id=str(batch_id),
            items=len(items),
            points=total,
        )
        return BatchRedemptionReceipt(
            batch_id=batch_id,
            redemptions=redemptions,
            total_points_spent=total,
            message=f"Successfully redeemed {len(items)} items",
        )

    async def _load_batch_line(self, gift_id: UUID, quantity: int) -> Gift:
        """Validate one batch line against its cumulative quantity; errors name the gift."""

        try:
            gift = await self._stock.load(gift_id)
        except GiftNotFoundError as exc:
            raise GiftNotFoundError(gift_id, message=f"Gift {gift_id} not found") from exc
        except GiftInactiveError as exc:
            raise GiftInactiveError(
                gift_id,
                gift_name=exc.gift_name,
                message=f"Gift {exc.gift_name} is not available",
            ) from exc
        if gift.stock < quantity:
            raise InsufficientStockError(
                available=gift.stock,
                requested=quantity,
                message=f"Insufficient stock for {gift.name}. Available: {gift.stock}",
            )
        return gift


__all__ = [
    "BatchRedemptionReceipt",
    "RedemptionItem",
    "RedemptionOrchestrator",
    "RedemptionReceipt",
]
