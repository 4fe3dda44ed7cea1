"""Test configuration and fixtures"""

import os

# Must be set before tablebook.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TASK_QUEUE_ENABLED", "false")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "test-webhook-secret")

from types import SimpleNamespace
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from tablebook.main import app
from tablebook.database import Base, get_db
from tablebook.models.tenant import Tenant
from tablebook.models.inventory import Zone, DiningTable
from tablebook.models.user import User, UserRole
from tablebook.api.auth import get_password_hash, create_access_token
from tablebook.services.change_feed import change_feed

from tests.factories import add_settings


# Test database URL (use in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_db():
    """Create test database"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_tenant(test_db):
    """
    A restaurant with two zones:

    Terrace: three tables seating 2-4
    Bar: one table seating 1-2 and one seating 2-4

    Ids are returned as plain values so they survive session rollbacks.
    """
    tenant_id = uuid4()
    test_db.add(Tenant(id=tenant_id, name="Test Restaurant", timezone="Europe/Madrid"))
    await test_db.flush()

    terrace = Zone(tenant_id=tenant_id, name="Terraza", name_es="Terraza", name_en="Terrace")
    bar = Zone(tenant_id=tenant_id, name="Barra", name_es="Barra", name_en="Bar")
    test_db.add_all([terrace, bar])
    await test_db.flush()

    terrace_tables = [
        DiningTable(tenant_id=tenant_id, zone_id=terrace.id, table_number=f"T{n}", min_pax=2, max_pax=4)
        for n in range(1, 4)
    ]
    bar_tables = [
        DiningTable(tenant_id=tenant_id, zone_id=bar.id, table_number="B1", min_pax=1, max_pax=2),
        DiningTable(tenant_id=tenant_id, zone_id=bar.id, table_number="B2", min_pax=2, max_pax=4),
    ]
    test_db.add_all(terrace_tables + bar_tables)
    await test_db.commit()

    # Deposits off unless a test turns them on
    await add_settings(test_db, tenant_id, enable_deposit="false", min_notice_minutes="1440")

    return SimpleNamespace(
        id=tenant_id,
        terrace_id=terrace.id,
        bar_id=bar.id,
        terrace_table_ids=[table.id for table in terrace_tables],
        bar_table_ids=[table.id for table in bar_tables],
    )


@pytest.fixture
async def other_tenant(test_db):
    """A second restaurant with one zone and one table"""
    tenant_id = uuid4()
    test_db.add(Tenant(id=tenant_id, name="Other Restaurant", timezone="Europe/London"))
    await test_db.flush()

    zone = Zone(tenant_id=tenant_id, name="Main", name_es="Sala", name_en="Main room")
    test_db.add(zone)
    await test_db.flush()

    table = DiningTable(tenant_id=tenant_id, zone_id=zone.id, table_number="1", min_pax=1, max_pax=6)
    test_db.add(table)
    await test_db.commit()

    return SimpleNamespace(id=tenant_id, zone_id=zone.id, table_id=table.id)


@pytest.fixture
async def test_user(test_db, test_tenant):
    """Create a test user"""
    user = User(
        id=uuid4(),
        tenant_id=test_tenant.id,
        email="test@example.com",
        hashed_password=get_password_hash("testpass123"),
        full_name="Test User",
        role=UserRole.RESTAURANT_ADMIN,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()

    return user


@pytest.fixture
async def test_staff_user(test_db, test_tenant):
    """Create a staff user without admin rights"""
    user = User(
        id=uuid4(),
        tenant_id=test_tenant.id,
        email="staff@example.com",
        hashed_password=get_password_hash("staffpass123"),
        full_name="Staff User",
        role=UserRole.STAFF,
        is_active=True,
    )
    test_db.add(user)
    await test_db.commit()

    return user


@pytest.fixture
async def client(test_db):
    """Create test client with overridden database"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def authenticated_client(client, test_user):
    """Create authenticated test client"""
    token = create_access_token(test_user)
    client.headers["Authorization"] = f"Bearer {token}"

    return client


@pytest.fixture
async def staff_client(client, test_staff_user):
    token = create_access_token(test_staff_user)
    client.headers["Authorization"] = f"Bearer {token}"

    return client


@pytest.fixture
def feed_events(test_tenant):
    """Collect change feed events published for the test tenant"""
    with change_feed.subscription(test_tenant.id) as queue:
        events = []

        def drain():
            while not queue.empty():
                events.append(queue.get_nowait())
            return events

        yield drain
