"""Append-only points ledger with per-user serialised writes."""

from __future__ import annotations

from typing import Sequence
from uuid import UUID

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api.models.ledger import PointTransaction, PointTransactionType
from giftpoints_api.models.user import User
from giftpoints_api.services.errors import (
    InsufficientFundsError,
    LedgerConflictError,
    UserNotFoundError,
)


class BalanceLedger:
    """Derives balances from the ledger tail and appends signed movements.

    The ledger only flushes. Callers wrap it in ``unit_of_work`` so a debit
    and the writes around it commit or roll back together.
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get_balance(self, user_id: UUID) -> int:
        """Return the latest ``balance_after`` for the user, or 0 without history."""

        stmt = (
            select(PointTransaction.balance_after)
            .where(PointTransaction.user_id == user_id)
            .order_by(PointTransaction.sequence.desc())
            .limit(1)
        )
        result = await self._db.execute(stmt)
        balance = result.scalar_one_or_none()
        return int(balance) if balance is not None else 0

    async def list_transactions(self, user_id: UUID, *, limit: int = 20) -> Sequence[PointTransaction]:
        """Return the user's most recent transactions, newest first."""

        stmt = (
            select(PointTransaction)
            .where(PointTransaction.user_id == user_id)
            .order_by(PointTransaction.sequence.desc())
            .limit(limit)
        )
        result = await self._db.execute(stmt)
        return result.scalars().all()

    async def credit(
        self,
        user_id: UUID,
        amount: int,
        description: str | None,
        reference_id: UUID | None = None,
    ) -> PointTransaction:
        if amount <= 0:
            raise ValueError("Credit amount must be positive")
        return await self._append(
            user_id,
            transaction_type=PointTransactionType.CREDIT,
            delta=amount,
            description=description,
            reference_id=reference_id,
        )

    async def debit(
        self,
        user_id: UUID,
        amount: int,
        description: str | None,
        reference_id: UUID | None = None,
    ) -> PointTransaction:
        if amount <= 0:
            raise ValueError("Debit amount must be positive")
        return await self._append(
            user_id,
            transaction_type=PointTransactionType.DEBIT,
            delta=-amount,
            description=description,
            reference_id=reference_id,
        )

    async def lock_user(self, user_id: UUID) -> None:
        """Take the per-user write lock for the rest of the transaction.

        The lock is FOR NO KEY UPDATE so foreign-key checks against the user
        row from other inserts in flight are not blocked.
        """

        stmt = select(User.id).where(User.id == user_id).with_for_update(key_share=True)
        result = await self._db.execute(stmt)
        if result.scalar_one_or_none() is None:
            raise UserNotFoundError(user_id)

    async def discard_history(self, user_id: UUID) -> int:
        """Delete every ledger row for a user. Only enrollment compensation uses this."""

        result = await self._db.execute(delete(PointTransaction).where(PointTransaction.user_id == user_id))
        await self._db.flush()
        removed = result.rowcount or 0
        logger.warning("Discarded ledger history", user_id=str(user_id), rows=removed)
        return removed

    async def _append(
        self,
        user_id: UUID,
        *,
        transaction_type: PointTransactionType,
        delta: int,
        description: str | None,
        reference_id: UUID | None,
    ) -> PointTransaction:
        await self.lock_user(user_id)

        tail_stmt = (
            select(PointTransaction.sequence, PointTransaction.balance_after)
            .where(PointTransaction.user_id == user_id)
            .order_by(PointTransaction.sequence.desc())
            .limit(1)
        )
        tail = (await self._db.execute(tail_stmt)).one_or_none()
        sequence, balance = (tail.sequence, tail.balance_after) if tail is not None else (0, 0)

        new_balance = balance + delta
        if new_balance < 0:
            raise InsufficientFundsError(required=-delta, available=balance)

        entry = PointTransaction(
            user_id=user_id,
            sequence=sequence + 1,
            transaction_type=transaction_type,
            amount=delta,
            balance_after=new_balance,
            description=description,
            reference_id=reference_id,
        )
        self._db.add(entry)
        try:
            await self._db.flush()
        except IntegrityError as exc:
            logger.warning(
                "Ledger sequence conflict",
                user_id=str(user_id),
                sequence=sequence + 1,
            )
            raise LedgerConflictError(user_id) from exc

        logger.info(
            "Recorded ledger entry",
            user_id=str(user_id),
            transaction_type=transaction_type.value,
            amount=delta,
            balance_after=new_balance,
            sequence=sequence + 1,
        )
        return entry


__all__ = ["BalanceLedger"]
