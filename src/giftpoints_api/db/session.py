"""Async engine, session factory and unit-of-work helpers."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from giftpoints_api.core.settings import Settings, settings


def _engine_options(config: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": config.database_echo, "future": True}
    if config.database_url.startswith("postgresql+asyncpg"):
        # Long-running statements are cancelled server-side and the unit of work rolls back.
        options["connect_args"] = {
            "server_settings": {"statement_timeout": str(config.database_statement_timeout_ms)},
        }
        options["pool_pre_ping"] = True
    return options


def build_engine(config: Settings) -> AsyncEngine:
    return create_async_engine(config.database_url, **_engine_options(config))


engine = build_engine(settings)
async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a request-scoped session."""

    async with async_session() as session:
        yield session


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done inside the block, or roll all of it back."""

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
