"""
Pytest configuration and fixtures.
"""

import os

# Set required env vars before importing policy_ledger modules
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from policy_ledger.models import Base, Client, PolicyStatus
from policy_ledger.services import policies as policy_service


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"
ACTOR = "agent-1"


def at(year: int, month: int, day: int) -> datetime:
    """Noon UTC on a date, as a transition timestamp."""
    return datetime(year, month, day, 12, 0, tzinfo=timezone.utc)


def policy_data(client_id: int, **overrides) -> dict:
    """Valid create payload: R1 000 monthly premium, 10% initial, 5% renewal."""
    data = {
        "client_id": client_id,
        "agent_id": ACTOR,
        "policy_number": "POL-0001",
        "product_category": "life",
        "product_name": "Life Cover Plus",
        "insurer_name": "Acme Life",
        "sum_assured": 100_000_000,
        "monthly_premium": 100_000,
        "inception_date": date(2024, 1, 1),
        "expiry_date": date(2034, 1, 1),
        "initial_commission_pct": Decimal("0.10"),
        "renewal_commission_pct": Decimal("0.05"),
    }
    data.update(overrides)
    return data


async def walk(db, policy_id, statuses, when, tenant_id=TENANT):
    """Apply a sequence of transitions, all effective at `when`."""
    policy = None
    for target in statuses:
        policy = await policy_service.transition_policy(
            db, tenant_id, ACTOR, policy_id, target, at=when
        )
    return policy


TO_ACTIVE = (PolicyStatus.SUBMITTED, PolicyStatus.UNDERWRITING, PolicyStatus.ACTIVE)


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session):
    """A client of TENANT."""
    row = Client(tenant_id=TENANT, first_name="Thandi", last_name="Mokoena")
    db_session.add(row)
    await db_session.commit()
    return row


@pytest_asyncio.fixture
async def other_client(db_session):
    """A client of OTHER_TENANT."""
    row = Client(tenant_id=OTHER_TENANT, first_name="Pieter", last_name="Botha")
    db_session.add(row)
    await db_session.commit()
    return row


@pytest_asyncio.fixture
async def make_policy(db_session, client):
    """Factory creating draft policies for TENANT's client."""
    counter = {"n": 0}

    async def _make(**overrides):
        counter["n"] += 1
        overrides.setdefault("policy_number", f"POL-{counter['n']:04d}")
        return await policy_service.create_policy(
            db_session, TENANT, ACTOR, policy_data(client.id, **overrides)
        )

    return _make


@pytest_asyncio.fixture
async def active_policy(db_session, make_policy):
    """Policy incepting 2024-01-01, activated 2024-02-01."""
    policy = await make_policy()
    return await walk(db_session, policy.id, TO_ACTIVE, at(2024, 2, 1))
