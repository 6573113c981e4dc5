"""Append-only points ledger."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from giftpoints_api.db.base import Base


class PointTransactionType(str, Enum):
    """Direction of a ledger movement."""

    CREDIT = "credit"
    DEBIT = "debit"


class PointTransaction(Base):
    """Immutable signed point movement with the running balance snapshot."""

    __tablename__ = "point_balance"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("user_id", "sequence", name="uq_point_balance_user_sequence"),
        CheckConstraint("balance_after >= 0", name="balance_after_non_negative"),
        CheckConstraint("amount <> 0", name="amount_non_zero"),
        Index("ix_point_balance_user_created_at", "user_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # Per-user insertion order; the tail row (highest sequence) carries the balance.
    sequence = Column(Integer, nullable=False)
    transaction_type = Column(
        SqlEnum(
            PointTransactionType,
            name="point_transaction_type",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
    )
    amount = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    description = Column(String(255), nullable=True)
    reference_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="point_transactions")
