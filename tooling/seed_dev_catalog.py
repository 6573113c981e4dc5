"""Seed development members, gifts and welcome balances into the API database."""

from __future__ import annotations

import asyncio
import os
from typing import TypedDict

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from giftpoints_api.core.settings import settings
from giftpoints_api.db.base import Base
from giftpoints_api.models.gift import Gift
from giftpoints_api.models.user import User
from giftpoints_api.services.enrollment import MemberEnrollmentService
from giftpoints_api.services.notifications import LoggingEmailBackend


class SeedGift(TypedDict):
    name: str
    description: str
    points_required: int
    stock: int


DEV_MEMBERS: list[tuple[str, str]] = [
    (os.getenv("DEV_MEMBER_EMAIL", "member@giftpoints.dev").lower(), "Member QA"),
    (os.getenv("DEV_TESTING_EMAIL", "testing@giftpoints.dev").lower(), "Testing QA"),
]

DEV_GIFTS: list[SeedGift] = [
    {
        "name": "Samsung Galaxy S9 - Midnight Black 4/64 GB",
        "description": "Refurbished smartphone in original packaging",
        "points_required": 750,
        "stock": 5,
    },
    {
        "name": "Apple AirPods Pro 2nd Gen",
        "description": "Wireless earbuds with active noise cancellation",
        "points_required": 650,
        "stock": 10,
    },
    {
        "name": "Starbucks Gift Card Rp 500.000",
        "description": "Digital voucher delivered by email",
        "points_required": 300,
        "stock": 100,
    },
    {
        "name": "Sony WH-1000XM5 Headphones",
        "description": "Out of stock until the next shipment",
        "points_required": 800,
        "stock": 0,
    },
    {
        "name": "Wireless Charging Pad",
        "description": "Qi compatible 15W charger",
        "points_required": 350,
        "stock": 50,
    },
]


async def seed_gifts(session: AsyncSession) -> None:
    for gift in DEV_GIFTS:
        existing = await session.execute(select(Gift).where(Gift.name == gift["name"]))
        record = existing.scalar_one_or_none()
        if record:
            record.points_required = gift["points_required"]
            record.stock = gift["stock"]
            record.is_active = True
        else:
            session.add(Gift(**gift, is_active=True))
    await session.commit()


async def seed_members(session: AsyncSession) -> None:
    service = MemberEnrollmentService(session, LoggingEmailBackend())
    for email, display_name in DEV_MEMBERS:
        existing = await session.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            continue
        await service.enroll(email, display_name)


async def main() -> None:
    engine = create_async_engine(settings.database_url, future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        if settings.database_url.startswith("sqlite"):
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        async with session_factory() as session:
            await seed_gifts(session)
            await seed_members(session)
        logger.info("Development catalog ready", gifts=len(DEV_GIFTS), members=len(DEV_MEMBERS))
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
