from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, false, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from giftpoints_api.db.base import Base


class User(Base):
    """Identity record owned by the auth collaborator; the ledger keys off its id."""

    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=True)
    is_email_verified = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    point_transactions = relationship("PointTransaction", back_populates="user", passive_deletes=True)
    redemptions = relationship("Redemption", back_populates="user")
