"""Domain errors raised by the ledger, stock guard and redemption services."""

from __future__ import annotations


class LedgerError(RuntimeError):
    """Base class for failures that abort a unit of work."""

    code = "ledger_error"
    status_code = 400


class GiftNotFoundError(LedgerError):
    code = "not_found"
    status_code = 404

    def __init__(self, gift_id: object | None = None, *, message: str | None = None) -> None:
        super().__init__(message or "Gift not found")
        self.gift_id = gift_id


class RedemptionNotFoundError(LedgerError):
    code = "not_found"
    status_code = 404

    def __init__(self, redemption_id: object | None = None) -> None:
        super().__init__("Redemption not found")
        self.redemption_id = redemption_id


class UserNotFoundError(LedgerError):
    code = "not_found"
    status_code = 404

    def __init__(self, user_id: object | None = None) -> None:
        super().__init__("User not found")
        self.user_id = user_id


class GiftInactiveError(LedgerError):
    code = "inactive"

    def __init__(
        self,
        gift_id: object | None = None,
        *,
        gift_name: str | None = None,
        message: str | None = None,
    ) -> None:
        super().__init__(message or "This gift is not available")
        self.gift_id = gift_id
        self.gift_name = gift_name


class InsufficientStockError(LedgerError):
    code = "insufficient_stock"

    def __init__(self, available: int, requested: int | None = None, *, message: str | None = None) -> None:
        super().__init__(message or f"Insufficient stock. Available: {available}")
        self.available = available
        self.requested = requested


class InsufficientPointsError(LedgerError):
    code = "insufficient_points"

    def __init__(self, required: int, available: int) -> None:
        super().__init__(f"Insufficient points. Required: {required}, Available: {available}")
        self.required = required
        self.available = available


class InsufficientFundsError(InsufficientPointsError):
    """Raised by the ledger itself when a debit would overdraw the balance."""


class StockRaceError(LedgerError):
    """The conditional stock update matched no row."""

    code = "stock_race"
    status_code = 409

    def __init__(self, gift_id: object | None = None) -> None:
        super().__init__("Stock changed during redemption, please retry")
        self.gift_id = gift_id


class LedgerConflictError(LedgerError):
    """A concurrent append claimed the same ledger sequence."""

    code = "ledger_conflict"
    status_code = 409

    def __init__(self, user_id: object | None = None) -> None:
        super().__init__("Concurrent balance update detected, please retry")
        self.user_id = user_id


class AlreadyRatedError(LedgerError):
    code = "already_rated"

    def __init__(self) -> None:
        super().__init__("You have already rated this redemption")


class NotEligibleError(LedgerError):
    code = "not_eligible"

    def __init__(self) -> None:
        super().__init__("You can only rate gifts you have redeemed")


class MemberAlreadyExistsError(LedgerError):
    code = "member_exists"
    status_code = 409

    def __init__(self, email: str) -> None:
        super().__init__("Email already registered")
        self.email = email


class EnrollmentDeliveryError(LedgerError):
    code = "enrollment_delivery_failed"
    status_code = 502

    def __init__(self, email: str) -> None:
        super().__init__("Failed to send verification email. Please try again.")
        self.email = email


__all__ = [
    "AlreadyRatedError",
    "EnrollmentDeliveryError",
    "GiftInactiveError",
    "GiftNotFoundError",
    "InsufficientFundsError",
    "InsufficientPointsError",
    "InsufficientStockError",
    "LedgerConflictError",
    "LedgerError",
    "MemberAlreadyExistsError",
    "NotEligibleError",
    "RedemptionNotFoundError",
    "StockRaceError",
    "UserNotFoundError",
]
