from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import giftpoints_api.models  # noqa: F401
from giftpoints_api.app import create_app
from giftpoints_api.db.base import Base
from giftpoints_api.db.session import get_session
from giftpoints_api.models.gift import Gift
from giftpoints_api.models.user import User
from giftpoints_api.observability.redemptions import get_redemption_store
from giftpoints_api.services.ledger import BalanceLedger


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """File-backed database so concurrent sessions get their own connections."""

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        future=True,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def app_with_db(session_factory):
    app = create_app()

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_redemption_store():
    store = get_redemption_store()
    store.reset()
    yield store
    store.reset()


@pytest.fixture
def create_member():
    async def _create(factory, email: str, points: int = 0) -> UUID:
        async with factory() as session:
            user = User(email=email)
            session.add(user)
            await session.flush()
            if points:
                await BalanceLedger(session).credit(user.id, points, "Initial grant")
            await session.commit()
            return user.id

    return _create


@pytest.fixture
def create_gift():
    async def _create(
        factory,
        name: str,
        *,
        points_required: int,
        stock: int,
        is_active: bool = True,
    ) -> UUID:
        async with factory() as session:
            gift = Gift(name=name, points_required=points_required, stock=stock, is_active=is_active)
            session.add(gift)
            await session.commit()
            return gift.id

    return _create
