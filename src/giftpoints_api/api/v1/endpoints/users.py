"""Member-facing balance, points history and redemption history."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api.api.dependencies.session import require_member_session
from giftpoints_api.core.settings import settings
from giftpoints_api.db.session import get_session
from giftpoints_api.models.gift import Gift
from giftpoints_api.models.ledger import PointTransaction
from giftpoints_api.models.redemption import Rating, Redemption
from giftpoints_api.models.user import User
from giftpoints_api.services.ledger import BalanceLedger


router = APIRouter(prefix="/users", tags=["users"])


class BalanceResponse(BaseModel):
    balance: int


class PointTransactionResponse(BaseModel):
    id: UUID
    transactionType: str
    amount: int
    balanceAfter: int
    description: Optional[str]
    referenceId: Optional[UUID]
    createdAt: datetime


class PointsHistoryResponse(BaseModel):
    data: List[PointTransactionResponse]


class RedemptionRatingResponse(BaseModel):
    stars: int
    review: Optional[str]


class RedemptionHistoryEntry(BaseModel):
    id: UUID
    quantity: int
    pointsSpent: int
    status: str
    batchId: Optional[UUID]
    createdAt: datetime
    giftId: UUID
    giftName: Optional[str]
    giftImageUrl: Optional[str]
    giftPointsRequired: Optional[int]
    hasRating: bool
    rating: Optional[RedemptionRatingResponse]


class RedemptionHistoryResponse(BaseModel):
    data: List[RedemptionHistoryEntry]


def serialize_transaction(entry: PointTransaction) -> PointTransactionResponse:
    return PointTransactionResponse(
        id=entry.id,
        transactionType=entry.transaction_type.value,
        amount=entry.amount,
        balanceAfter=entry.balance_after,
        description=entry.description,
        referenceId=entry.reference_id,
        createdAt=entry.created_at,
    )


@router.get("/me/points", response_model=BalanceResponse)
async def get_my_points(
    user: User = Depends(require_member_session),
    db: AsyncSession = Depends(get_session),
) -> BalanceResponse:
    balance = await BalanceLedger(db).get_balance(user.id)
    return BalanceResponse(balance=balance)


@router.get("/me/points/history", response_model=PointsHistoryResponse)
async def get_my_points_history(
    limit: int = Query(
        settings.points_history_default_limit,
        ge=1,
        le=settings.points_history_max_limit,
    ),
    user: User = Depends(require_member_session),
    db: AsyncSession = Depends(get_session),
) -> PointsHistoryResponse:
    """Most recent ledger movements, newest first."""

    entries = await BalanceLedger(db).list_transactions(user.id, limit=limit)
    return PointsHistoryResponse(data=[serialize_transaction(entry) for entry in entries])


@router.get("/me/redemptions", response_model=RedemptionHistoryResponse)
async def get_my_redemptions(
    user: User = Depends(require_member_session),
    db: AsyncSession = Depends(get_session),
) -> RedemptionHistoryResponse:
    stmt = (
        select(Redemption, Gift.name, Gift.image_url, Gift.points_required, Rating.stars, Rating.review)
        .join(Gift, Gift.id == Redemption.gift_id, isouter=True)
        .join(Rating, Rating.redemption_id == Redemption.id, isouter=True)
        .where(Redemption.user_id == user.id)
        .order_by(Redemption.created_at.desc(), Redemption.id)
    )
    rows = (await db.execute(stmt)).all()

    data: list[RedemptionHistoryEntry] = []
    for redemption, gift_name, gift_image_url, gift_points, stars, review in rows:
        rating = RedemptionRatingResponse(stars=stars, review=review) if stars is not None else None
        data.append(
            RedemptionHistoryEntry(
                id=redemption.id,
                quantity=redemption.quantity,
                pointsSpent=redemption.points_spent,
                status=redemption.status.value,
                batchId=redemption.batch_id,
                createdAt=redemption.created_at,
                giftId=redemption.gift_id,
                giftName=gift_name,
                giftImageUrl=gift_image_url,
                giftPointsRequired=gift_points,
                hasRating=rating is not None,
                rating=rating,
            )
        )
    return RedemptionHistoryResponse(data=data)
