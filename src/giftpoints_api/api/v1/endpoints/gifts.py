"""Gift redemption and rating endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api.api.dependencies.session import require_member_session
from giftpoints_api.db.session import get_session
from giftpoints_api.models.gift import Gift
from giftpoints_api.models.redemption import Rating, Redemption
from giftpoints_api.models.user import User
from giftpoints_api.services.errors import LedgerError
from giftpoints_api.services.ratings import RatingAggregator, star_rating_bucket
from giftpoints_api.services.redemption import RedemptionItem, RedemptionOrchestrator


router = APIRouter(prefix="/gifts", tags=["gifts"])


class RedeemGiftRequest(BaseModel):
    quantity: int = Field(1, ge=1, description="Units of the gift to redeem")


class RedeemItemRequest(BaseModel):
    giftId: UUID
    quantity: int = Field(1, ge=1)


class RedeemMultipleRequest(BaseModel):
    items: List[RedeemItemRequest] = Field(..., min_length=1)


class RatingRequest(BaseModel):
    redemptionId: UUID
    stars: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)


class RedemptionResponse(BaseModel):
    id: UUID
    userId: UUID
    giftId: UUID
    quantity: int
    pointsSpent: int
    status: str
    batchId: Optional[UUID]
    createdAt: datetime


class RedeemGiftResponse(BaseModel):
    redemption: RedemptionResponse
    message: str
    pointsSpent: int


class RedeemMultipleResponse(BaseModel):
    redemptions: List[RedemptionResponse]
    totalPointsSpent: int
    message: str
    batchId: UUID


class RatingResponse(BaseModel):
    id: UUID
    giftId: UUID
    redemptionId: UUID
    stars: int
    review: Optional[str]
    createdAt: datetime
    avgRating: float
    totalReviews: int
    starRating: float


def serialize_redemption(redemption: Redemption) -> RedemptionResponse:
    return RedemptionResponse(
        id=redemption.id,
        userId=redemption.user_id,
        giftId=redemption.gift_id,
        quantity=redemption.quantity,
        pointsSpent=redemption.points_spent,
        status=redemption.status.value,
        batchId=redemption.batch_id,
        createdAt=redemption.created_at,
    )


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, LedgerError):
        return HTTPException(status_code=exc.status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post(
    "/redeem/multiple",
    response_model=RedeemMultipleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def redeem_multiple_gifts(
    payload: RedeemMultipleRequest,
    user: User = Depends(require_member_session),
    db: AsyncSession = Depends(get_session),
) -> RedeemMultipleResponse:
    """Redeem several gifts at once; either every line succeeds or none do."""

    orchestrator = RedemptionOrchestrator(db)
    items = [RedemptionItem(gift_id=item.giftId, quantity=item.quantity) for item in payload.items]
    try:
        receipt = await orchestrator.redeem_multiple(user.id, items)
    except (LedgerError, ValueError) as exc:
        raise _http_error(exc) from exc

    return RedeemMultipleResponse(
        redemptions=[serialize_redemption(redemption) for redemption in receipt.redemptions],
        totalPointsSpent=receipt.total_points_spent,
        message=receipt.message,
        batchId=receipt.batch_id,
    )


@router.post(
    "/{gift_id}/redeem",
    response_model=RedeemGiftResponse,
    status_code=status.HTTP_201_CREATED,
)
async def redeem_gift(
    gift_id: UUID,
    payload: RedeemGiftRequest | None = None,
    user: User = Depends(require_member_session),
    db: AsyncSession = Depends(get_session),
) -> RedeemGiftResponse:
    quantity = payload.quantity if payload is not None else 1
    orchestrator = RedemptionOrchestrator(db)
    try:
        receipt = await orchestrator.redeem(user.id, gift_id, quantity)
    except (LedgerError, ValueError) as exc:
        raise _http_error(exc) from exc

    return RedeemGiftResponse(
        redemption=serialize_redemption(receipt.redemption),
        message=receipt.message,
        pointsSpent=receipt.points_spent,
    )


@router.post(
    "/{gift_id}/rating",
    response_model=RatingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def rate_gift(
    gift_id: UUID,
    payload: RatingRequest,
    user: User = Depends(require_member_session),
    db: AsyncSession = Depends(get_session),
) -> RatingResponse:
    """Rate a redeemed gift; each redemption can be rated once."""

    aggregator = RatingAggregator(db)
    try:
        rating: Rating = await aggregator.add_rating(
            user.id,
            gift_id,
            payload.redemptionId,
            payload.stars,
            payload.review,
        )
    except (LedgerError, ValueError) as exc:
        raise _http_error(exc) from exc

    gift = await db.get(Gift, gift_id)
    avg_rating = gift.avg_rating if gift is not None else 0
    return RatingResponse(
        id=rating.id,
        giftId=rating.gift_id,
        redemptionId=rating.redemption_id,
        stars=rating.stars,
        review=rating.review,
        createdAt=rating.created_at,
        avgRating=float(avg_rating),
        totalReviews=gift.total_reviews if gift is not None else 0,
        starRating=star_rating_bucket(avg_rating),
    )
