"""
Integration Test Fixtures

Provides a real async SQLAlchemy session for every test, backed by a fresh
in-memory SQLite database (aiosqlite). The schema comes from
Base.metadata, so it always matches the models.

The async_test_client fixture overrides the app's get_db dependency so
requests run against the same session the test seeds.

pysqlite's own transaction handling breaks SAVEPOINT, which the services
use for lazy inserts; the engine fixture installs SQLAlchemy's documented
workaround (autocommit driver, explicit BEGIN). Foreign keys are
enforced as they are on PostgreSQL.
"""

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from intellicard.db.base import Base
from intellicard.db.models import Card, CardSet, User

pytestmark = pytest.mark.integration

TEST_DB_URL = "sqlite+aiosqlite://"

ALICE, BOB, CAROL, DAVE = 1, 2, 3, 4


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a database session for testing.

    The database is discarded with the engine, so nothing needs cleaning.
    """
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


# =============================================================================
# Seed Data
# =============================================================================


@pytest_asyncio.fixture
async def users(db_session: AsyncSession) -> dict[str, int]:
    """Four users: alice owns the seeded sets, the rest are learners."""
    db_session.add_all(
        [
            User(id=ALICE, username="alice", email="alice@example.com"),
            User(id=BOB, username="bob", email="bob@example.com"),
            User(id=CAROL, username="carol", email="carol@example.com"),
            User(id=DAVE, username="dave", email="dave@example.com"),
        ]
    )
    await db_session.flush()
    return {"alice": ALICE, "bob": BOB, "carol": CAROL, "dave": DAVE}


async def _create_card_set(
    db: AsyncSession,
    owner_id: int,
    name: str,
    is_public: bool = False,
    terms: tuple[str, ...] = (),
) -> CardSet:
    card_set = CardSet(name=name, owner_id=owner_id, is_public=is_public)
    db.add(card_set)
    await db.flush()
    db.add_all(
        [
            Card(card_set_id=card_set.id, term=term, definition=f"Definition of {term}")
            for term in terms
        ]
    )
    await db.flush()
    return card_set


@pytest.fixture
def make_card_set(db_session: AsyncSession, users):
    """Factory: await make_card_set(owner_id, name, is_public=False, terms=(...))."""

    async def factory(owner_id, name, is_public=False, terms=()):
        return await _create_card_set(db_session, owner_id, name, is_public, terms)

    return factory


@pytest_asyncio.fixture
async def private_set(db_session: AsyncSession, users) -> CardSet:
    """Private set owned by alice with three cards."""
    return await _create_card_set(
        db_session, ALICE, "Organic Chemistry", terms=("Alkane", "Alkene", "Alkyne")
    )


@pytest_asyncio.fixture
async def public_set(db_session: AsyncSession, users) -> CardSet:
    """Public set owned by alice with two cards."""
    return await _create_card_set(
        db_session, ALICE, "Capitals", is_public=True, terms=("France", "Japan")
    )


@pytest_asyncio.fixture
async def card_ids(db_session: AsyncSession, private_set: CardSet) -> list[int]:
    """Ids of the private set's cards, in insertion order."""
    result = await db_session.execute(
        select(Card.id).where(Card.card_set_id == private_set.id).order_by(Card.id)
    )
    return list(result.scalars().all())


# =============================================================================
# HTTP
# =============================================================================


@pytest_asyncio.fixture
async def async_test_client(
    db_session: AsyncSession,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Create an async HTTP client configured to use the test session.

    Note: As of httpx 0.28+, ASGITransport must be used instead of passing
    `app` directly to AsyncClient.
    """
    from intellicard.db.base import get_db
    from intellicard.main import app

    async def get_test_db():
        """Yield the test database session instead of production."""
        yield db_session

    app.dependency_overrides[get_db] = get_test_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def as_user():
    """Headers identifying the acting user: as_user(user_id)."""

    def headers(user_id: int) -> dict[str, str]:
        return {"X-User-Id": str(user_id)}

    return headers
