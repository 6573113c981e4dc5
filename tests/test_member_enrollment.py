import asyncio
import smtplib

import pytest
from sqlalchemy import func, select

from giftpoints_api.core.settings import Settings
from giftpoints_api.models.ledger import PointTransaction
from giftpoints_api.models.user import User
from giftpoints_api.services.enrollment import WELCOME_BONUS_DESCRIPTION, MemberEnrollmentService
from giftpoints_api.services.errors import EnrollmentDeliveryError, MemberAlreadyExistsError
from giftpoints_api.services.ledger import BalanceLedger
from giftpoints_api.services.notifications import InMemoryEmailBackend


@pytest.mark.asyncio
async def test_enroll_grants_welcome_bonus_and_sends_mail(session_factory) -> None:
    backend = InMemoryEmailBackend()
    config = Settings(welcome_bonus_points=1000, verification_email_subject="Verify your account")

    async with session_factory() as session:
        result = await MemberEnrollmentService(session, backend, config=config).enroll(
            "New.Member@Example.com",
            "New Member",
        )

    assert result.bonus_points == 1000
    assert result.user.email == "new.member@example.com"
    assert len(backend.sent_messages) == 1
    message = backend.sent_messages[0]
    assert message["To"] == "new.member@example.com"
    assert message["Subject"] == "Verify your account"

    async with session_factory() as session:
        ledger = BalanceLedger(session)
        assert await ledger.get_balance(result.user.id) == 1000
        entries = await ledger.list_transactions(result.user.id)
    assert [entry.description for entry in entries] == [WELCOME_BONUS_DESCRIPTION]


@pytest.mark.asyncio
async def test_enroll_rejects_taken_email(session_factory, create_member) -> None:
    await create_member(session_factory, "taken@example.com")

    async with session_factory() as session:
        service = MemberEnrollmentService(session, InMemoryEmailBackend())
        with pytest.raises(MemberAlreadyExistsError, match="Email already registered"):
            await service.enroll("taken@example.com")


@pytest.mark.asyncio
async def test_failed_delivery_reverts_user_and_bonus(session_factory) -> None:
    backend = InMemoryEmailBackend(fail_with=smtplib.SMTPException("relay down"))

    async with session_factory() as session:
        service = MemberEnrollmentService(session, backend, config=Settings(welcome_bonus_points=1000))
        with pytest.raises(EnrollmentDeliveryError):
            await service.enroll("bounce@example.com")

    async with session_factory() as session:
        users = (await session.execute(select(func.count(User.id)))).scalar_one()
        ledger_rows = (await session.execute(select(func.count(PointTransaction.id)))).scalar_one()
    assert users == 0
    assert ledger_rows == 0


@pytest.mark.asyncio
async def test_concurrent_enrollments_of_one_email_yield_single_member(file_session_factory) -> None:
    backend = InMemoryEmailBackend()
    config = Settings(welcome_bonus_points=500)

    async def attempt():
        async with file_session_factory() as session:
            return await MemberEnrollmentService(session, backend, config=config).enroll("dup@example.com")

    results = await asyncio.gather(*(attempt() for _ in range(3)), return_exceptions=True)

    enrolled = [result for result in results if not isinstance(result, Exception)]
    rejected = [result for result in results if isinstance(result, Exception)]
    assert len(enrolled) == 1
    assert len(rejected) == 2
    assert all(isinstance(error, MemberAlreadyExistsError) for error in rejected)
    assert len(backend.sent_messages) == 1

    async with file_session_factory() as session:
        users = (await session.execute(select(func.count(User.id)))).scalar_one()
        balance = await BalanceLedger(session).get_balance(enrolled[0].user.id)
    assert users == 1
    assert balance == 500
