"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  Every test gets a fresh engine, so nothing
leaks between tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import AsyncGenerator, Optional

import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ridecircle.domain.entities import Contact
from ridecircle.domain.enums import ContactStatus, RideStatus
from ridecircle.infrastructure.database import Base
from ridecircle.infrastructure.models import ContactModel, RideModel, UserModel


TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

RIDE_TIME = datetime(2030, 1, 1, 8, 30)


# ── Builders ──────────────────────────────────────────────────────────


async def make_user(session: AsyncSession, name: str, n: int) -> UserModel:
    user = UserModel(
        name=name,
        phone=f"+1555000{n:04d}",
        email=f"{name.lower()}@example.com",
        country_code="US",
        is_verified=True,
    )
    session.add(user)
    await session.flush()
    return user


async def make_contact(
    session: AsyncSession,
    initiator: UserModel,
    target: UserModel,
    status: ContactStatus = ContactStatus.ACCEPTED,
) -> ContactModel:
    low, high = Contact.pair_key(initiator.id, target.id)
    contact = ContactModel(
        user_id=initiator.id,
        contact_id=target.id,
        user_low=low,
        user_high=high,
        status=status,
    )
    session.add(contact)
    await session.flush()
    return contact


async def make_ride(
    session: AsyncSession,
    requester: UserModel,
    accepter: Optional[UserModel] = None,
    status: RideStatus = RideStatus.PENDING,
    hours: int = 0,
    from_location: str = "Central Station",
    to_location: str = "Airport",
) -> RideModel:
    ride = RideModel(
        requester_id=requester.id,
        accepter_id=accepter.id if accepter else None,
        from_location=from_location,
        to_location=to_location,
        time=RIDE_TIME + timedelta(hours=hours),
        status=status,
        rider_name=requester.name,
    )
    session.add(ride)
    await session.flush()
    return ride


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(db_session) -> dict[str, UserModel]:
    """Six users keyed by name: Alice, Bob, Carol, Dave, Erin, Frank."""
    names = ["Alice", "Bob", "Carol", "Dave", "Erin", "Frank"]
    created = {}
    for n, name in enumerate(names, start=1):
        created[name] = await make_user(db_session, name, n)
    await db_session.commit()
    return created
