"""Operator routes for enrolling members and granting points."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api.api.dependencies.security import require_internal_api_key
from giftpoints_api.core.settings import settings
from giftpoints_api.db.session import get_session, unit_of_work
from giftpoints_api.observability.redemptions import get_redemption_store
from giftpoints_api.services.enrollment import MemberEnrollmentService
from giftpoints_api.services.errors import LedgerError
from giftpoints_api.services.ledger import BalanceLedger
from giftpoints_api.services.notifications import EmailBackend, build_email_backend


router = APIRouter(tags=["members"], dependencies=[Depends(require_internal_api_key)])


def get_email_backend() -> EmailBackend:
    return build_email_backend(settings)


class EnrollMemberRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    displayName: Optional[str] = Field(None, max_length=255)


class EnrollMemberResponse(BaseModel):
    userId: UUID
    email: str
    bonusPoints: int


class CreditPointsRequest(BaseModel):
    amount: int = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=255)
    referenceId: Optional[UUID] = None


class CreditPointsResponse(BaseModel):
    id: UUID
    userId: UUID
    amount: int
    balanceAfter: int
    description: Optional[str]
    referenceId: Optional[UUID]
    createdAt: datetime


@router.post("/members", response_model=EnrollMemberResponse, status_code=status.HTTP_201_CREATED)
async def enroll_member(
    payload: EnrollMemberRequest,
    db: AsyncSession = Depends(get_session),
    email_backend: EmailBackend = Depends(get_email_backend),
) -> EnrollMemberResponse:
    """Create a member, grant the welcome bonus and send the verification email."""

    service = MemberEnrollmentService(db, email_backend)
    try:
        result = await service.enroll(payload.email, payload.displayName)
    except LedgerError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    return EnrollMemberResponse(userId=result.user.id, email=result.user.email, bonusPoints=result.bonus_points)


@router.post(
    "/ledger/{user_id}/credits",
    response_model=CreditPointsResponse,
    status_code=status.HTTP_201_CREATED,
)
async def credit_points(
    user_id: UUID,
    payload: CreditPointsRequest,
    db: AsyncSession = Depends(get_session),
) -> CreditPointsResponse:
    ledger = BalanceLedger(db)
    try:
        async with unit_of_work(db):
            entry = await ledger.credit(user_id, payload.amount, payload.description, payload.referenceId)
    except LedgerError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    get_redemption_store().record_ledger_credit(payload.amount)
    return CreditPointsResponse(
        id=entry.id,
        userId=entry.user_id,
        amount=entry.amount,
        balanceAfter=entry.balance_after,
        description=entry.description,
        referenceId=entry.reference_id,
        createdAt=entry.created_at,
    )
