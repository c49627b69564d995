"""
Engine and session wiring for the IntelliCard database.

The engine is created at import time but does not open a connection until
the first query. Pool sizing comes from the ``database`` section of
config/default.yaml; the connection URL comes from Settings.

Services receive an ``AsyncSession`` from ``get_db``. One request is one
unit of work: the session commits when the route returns and rolls back
when anything raises.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from intellicard.config import settings, yaml_config

POOL_DEFAULTS: dict[str, int] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
}


class Base(DeclarativeBase):
    """Declarative base shared by every IntelliCard table."""


def pool_options(config: dict[str, Any]) -> dict[str, int]:
    """Pick the pool keyword arguments out of the ``database`` config section."""
    section = config.get("database") or {}
    return {key: int(section.get(key, default)) for key, default in POOL_DEFAULTS.items()}


def build_engine(url: str, config: dict[str, Any]) -> AsyncEngine:
    return create_async_engine(url, echo=settings.DEBUG, **pool_options(config))


engine = build_engine(settings.POSTGRES_URL, yaml_config)

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def init_db() -> None:
    """Create any missing tables. Runs once at application startup."""
    # Registers the mapped classes on Base.metadata
    from intellicard.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
