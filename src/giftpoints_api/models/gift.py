from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String, Text, func, true
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from giftpoints_api.db.base import Base


class Gift(Base):
    """Redeemable catalog item. Stock only moves through the stock guard."""

    __tablename__ = "gifts"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        CheckConstraint("stock >= 0", name="stock_non_negative"),
        CheckConstraint("points_required >= 0", name="points_required_non_negative"),
        CheckConstraint("total_reviews >= 0", name="total_reviews_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String(1024), nullable=True)
    points_required = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    avg_rating = Column(Numeric(3, 2), nullable=False, default=0, server_default="0")
    total_reviews = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    redemptions = relationship("Redemption", back_populates="gift")
    ratings = relationship("Rating", back_populates="gift")
