"""Member enrollment: user creation, welcome bonus and verification mail."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from giftpoints_api.core.settings import Settings, settings as default_settings
from giftpoints_api.db.session import unit_of_work
from giftpoints_api.models.user import User
from giftpoints_api.observability.redemptions import get_redemption_store
from giftpoints_api.services.errors import EnrollmentDeliveryError, MemberAlreadyExistsError
from giftpoints_api.services.ledger import BalanceLedger
from giftpoints_api.services.notifications import EmailBackend

WELCOME_BONUS_DESCRIPTION = "Welcome bonus - New user registration"


@dataclass
class EnrollmentResult:
    user: User
    bonus_points: int


class MemberEnrollmentService:
    """Creates members and grants their welcome bonus.

    Enrollment spans the database and the mail server, so it runs as two
    steps: the user and bonus commit first, then the verification email is
    sent. A delivery failure triggers a compensating delete of both.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        email_backend: EmailBackend,
        *,
        config: Settings | None = None,
    ) -> None:
        self._db = db_session
        self._email = email_backend
        self._config = config or default_settings
        self._ledger = BalanceLedger(db_session)

    async def enroll(self, email: str, display_name: str | None = None) -> EnrollmentResult:
        email = email.strip().lower()
        bonus = self._config.welcome_bonus_points

        async with unit_of_work(self._db):
            existing = await self._db.execute(select(User.id).where(User.email == email))
            if existing.scalar_one_or_none() is not None:
                raise MemberAlreadyExistsError(email)

            user = User(email=email, display_name=display_name, is_email_verified=False)
            self._db.add(user)
            try:
                await self._db.flush()
            except IntegrityError as exc:
                logger.info("Concurrent enrollment claimed email", email=email)
                raise MemberAlreadyExistsError(email) from exc
            if bonus > 0:
                await self._ledger.credit(user.id, bonus, WELCOME_BONUS_DESCRIPTION)

        logger.info("Enrolled member", user_id=str(user.id), bonus_points=bonus)

        try:
            await self._send_verification(user, bonus)
        except Exception as exc:
            logger.exception("Verification email failed, reverting enrollment", user_id=str(user.id))
            await self._compensate(user.id)
            raise EnrollmentDeliveryError(email) from exc

        if bonus > 0:
            get_redemption_store().record_ledger_credit(bonus)
        return EnrollmentResult(user=user, bonus_points=bonus)

    async def _send_verification(self, user: User, bonus: int) -> None:
        link = f"{self._config.frontend_url.rstrip('/')}/verify-email?user={user.id}"
        greeting = user.display_name or user.email
        body_text = (
            f"Hi {greeting},\n\n"
            f"Welcome! {bonus} points have been added to your account.\n"
            f"Confirm your email address to start redeeming gifts: {link}\n"
        )
        body_html = (
            f"<p>Hi {greeting},</p>"
            f"<p>Welcome! <strong>{bonus}</strong> points have been added to your account.</p>"
            f'<p><a href="{link}">Confirm your email address</a> to start redeeming gifts.</p>'
        )
        await self._email.send_email(
            user.email,
            self._config.verification_email_subject,
            body_text,
            body_html=body_html,
        )

    async def _compensate(self, user_id: UUID) -> None:
        async with unit_of_work(self._db):
            await self._ledger.discard_history(user_id)
            await self._db.execute(delete(User).where(User.id == user_id))
        logger.warning("Reverted enrollment", user_id=str(user_id))


__all__ = ["EnrollmentResult", "MemberEnrollmentService", "WELCOME_BONUS_DESCRIPTION"]
