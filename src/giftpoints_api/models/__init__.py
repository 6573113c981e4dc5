"""ORM models registered on the shared declarative base."""

from .gift import Gift  # noqa: F401
from .ledger import PointTransaction, PointTransactionType  # noqa: F401
from .redemption import Rating, Redemption, RedemptionStatus  # noqa: F401
from .user import User  # noqa: F401

__all__ = [
    "Gift",
    "PointTransaction",
    "PointTransactionType",
    "Rating",
    "Redemption",
    "RedemptionStatus",
    "User",
]
