"""
Test configuration and fixtures
"""
import os

# Must be set before the application modules create their engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime
from typing import AsyncGenerator, List

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cmms_reports.core.database import Base, get_db
from cmms_reports.main import app
from cmms_reports.models.organization import Organization
from cmms_reports.models.saved_report import SavedReport
from cmms_reports.models.user import User
from cmms_reports.models.work_order import WorkOrder, WorkOrderPriority, WorkOrderStatus


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Status of work order WO-000i is STATUS_CYCLE[i % 5]
STATUS_CYCLE = [
    WorkOrderStatus.OPEN,
    WorkOrderStatus.COMPLETED,
    WorkOrderStatus.IN_PROGRESS,
    WorkOrderStatus.COMPLETED,
    WorkOrderStatus.CANCELLED,
]
WORK_ORDER_COUNT = 25


@pytest.fixture
async def test_engine():
    """Create a fresh in-memory database per test."""
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


@pytest.fixture
def test_session_maker(test_engine):
    """Create test session maker."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(test_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with test_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(test_session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the test database."""

    async def override_get_db():
        async with test_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def query_log(test_engine) -> List[str]:
    """SQL statements sent to the database while the test runs."""
    statements: List[str] = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(test_engine.sync_engine, "before_cursor_execute", before_cursor_execute)
    yield statements
    event.remove(test_engine.sync_engine, "before_cursor_execute", before_cursor_execute)


@pytest.fixture
async def organization(db_session) -> Organization:
    org = Organization(code="ACME", name="Acme Plant")
    db_session.add(org)
    await db_session.commit()
    return org


@pytest.fixture
async def other_organization(db_session) -> Organization:
    org = Organization(code="OTHER", name="Other Plant")
    db_session.add(org)
    await db_session.commit()
    return org


@pytest.fixture
async def user(db_session, organization) -> User:
    user = User(
        organization_id=organization.id,
        email="planner@acme.test",
        first_name="Pat",
        last_name="Planner",
        email_verified=True,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def colleague(db_session, organization) -> User:
    user = User(
        organization_id=organization.id,
        email="tech@acme.test",
        first_name="Sam",
        last_name="Tech",
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def outsider(db_session, other_organization) -> User:
    user = User(
        organization_id=other_organization.id,
        email="someone@other.test",
        first_name="Alex",
        last_name="Other",
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def work_orders(db_session, organization, other_organization, user) -> List[WorkOrder]:
    """
    WO-0001..WO-0025 in the user's organization, created on 2026-01-<n>.
    Completed orders carry an actual cost of n * 10; the others have none.
    One extra completed order lives in another organization.
    """
    orders = []
    for n in range(1, WORK_ORDER_COUNT + 1):
        status = STATUS_CYCLE[n % 5]
        orders.append(
            WorkOrder(
                organization_id=organization.id,
                wo_number=f"WO-{n:04d}",
                title=f"Pump inspection {n}",
                status=status,
                priority=WorkOrderPriority.HIGH if n % 2 else WorkOrderPriority.LOW,
                actual_cost=float(n * 10) if status == WorkOrderStatus.COMPLETED else None,
                created_by_id=user.id,
                created_at=datetime(2026, 1, n, 8, 30),
            )
        )
    orders.append(
        WorkOrder(
            organization_id=other_organization.id,
            wo_number="WO-9001",
            title="Compressor overhaul",
            status=WorkOrderStatus.COMPLETED,
            actual_cost=999.0,
            created_at=datetime(2026, 1, 5, 12, 0),
        )
    )
    db_session.add_all(orders)
    await db_session.commit()
    return orders


@pytest.fixture
def make_report(db_session, organization, user):
    """Persist a saved report as-is, without configuration validation."""

    async def _make(configuration, data_source="work_order", **kwargs) -> SavedReport:
        report = SavedReport(
            name=kwargs.pop("name", "Test report"),
            report_type=data_source,
            configuration=configuration,
            organization_id=kwargs.pop("organization_id", organization.id),
            created_by_id=kwargs.pop("created_by_id", user.id),
            **kwargs,
        )
        db_session.add(report)
        await db_session.commit()
        await db_session.refresh(report)
        return report

    return _make
