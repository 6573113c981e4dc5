"""Redemption and rating records."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from giftpoints_api.db.base import Base


class RedemptionStatus(str, Enum):
    """Lifecycle of a redemption line. Rows are written as completed."""

    PENDING = "pending"
    COMPLETED = "completed"


class Redemption(Base):
    """One redeemed gift line with the points it cost at redemption time."""

    __tablename__ = "redemptions"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="quantity_positive"),
        CheckConstraint("points_spent >= 0", name="points_spent_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    gift_id = Column(UUID(as_uuid=True), ForeignKey("gifts.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    points_spent = Column(Integer, nullable=False)
    status = Column(
        SqlEnum(
            RedemptionStatus,
            name="redemption_status",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
        default=RedemptionStatus.COMPLETED,
    )
    batch_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="redemptions")
    gift = relationship("Gift", back_populates="redemptions")
    rating = relationship("Rating", back_populates="redemption", uselist=False)


class Rating(Base):
    """Star rating left against a single redemption."""

    __tablename__ = "ratings"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (CheckConstraint("stars BETWEEN 1 AND 5", name="stars_range"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    gift_id = Column(UUID(as_uuid=True), ForeignKey("gifts.id", ondelete="CASCADE"), nullable=False, index=True)
    redemption_id = Column(
        UUID(as_uuid=True),
        ForeignKey("redemptions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    stars = Column(Integer, nullable=False)
    review = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    gift = relationship("Gift", back_populates="ratings")
    redemption = relationship("Redemption", back_populates="rating")
