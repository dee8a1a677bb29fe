"""
Test fixtures for RiskRadar.

Provides:
- Async DB engine/session (SQLite in-memory, fresh per test)
- DataFactory for projects, work items, allocations, budgets, signals
- Fixed clock
- Authenticated FastAPI test client (get_db overridden)
"""

import os
import uuid
from datetime import date, datetime, timedelta
from typing import AsyncGenerator, Optional

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from riskradar.api.deps import get_db
from riskradar.auth.jwt import create_access_token
from riskradar.db.engine import Base
from riskradar.db.models import (
    Allocation,
    Project,
    ProjectBudget,
    RiskSignal,
    RiskThresholdOverride,
    WorkItem,
)

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "now" for every time-dependent rule and sweep
NOW = datetime(2025, 9, 18, 9, 0, 0)
TODAY = NOW.date()


@pytest_asyncio.fixture
async def engine():
    """In-memory database with all tables; StaticPool keeps one shared connection."""
    eng = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a clean DB session per test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def now():
    return lambda: NOW


@pytest.fixture
def org_id() -> uuid.UUID:
    return uuid.uuid4()


# ── Data factory ─────────────────────────────────────────────────────────


class DataFactory:
    """Creates committed rows through short-lived sessions."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _add(self, *rows):
        async with self.session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows[0] if len(rows) == 1 else rows

    async def project(
        self,
        organization_id: uuid.UUID,
        name: str = "Apollo",
        status: str = "active",
        end_date: Optional[date] = None,
        created_at: Optional[datetime] = None,
    ) -> Project:
        return await self._add(
            Project(
                id=uuid.uuid4(),
                organization_id=organization_id,
                name=name,
                status=status,
                start_date=TODAY - timedelta(days=60),
                end_date=end_date if end_date is not None else TODAY + timedelta(days=60),
                created_at=created_at or NOW - timedelta(days=60),
            )
        )

    async def work_item(
        self,
        project: Project,
        title: str = "Task",
        status: str = "todo",
        effort_points: Optional[int] = 5,
        planned_end: Optional[date] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        type: str = "task",
    ) -> WorkItem:
        created = created_at or project.created_at
        return await self._add(
            WorkItem(
                id=uuid.uuid4(),
                project_id=project.id,
                title=title,
                type=type,
                status=status,
                effort_points=effort_points,
                planned_end=planned_end,
                created_at=created,
                updated_at=updated_at or created,
            )
        )

    async def allocation(
        self,
        project: Project,
        resource_id: uuid.UUID,
        start: date,
        end: date,
        percentage: float,
    ) -> Allocation:
        return await self._add(
            Allocation(
                id=uuid.uuid4(),
                organization_id=project.organization_id,
                resource_id=resource_id,
                project_id=project.id,
                start_date=start,
                end_date=end,
                allocation_percentage=percentage,
            )
        )

    async def budget(self, project: Project, planned: float, actual: float) -> ProjectBudget:
        return await self._add(
            ProjectBudget(project_id=project.id, planned_budget=planned, actual_spent=actual)
        )

    async def signal(
        self,
        project: Project,
        signal_type: str = "budget_variance",
        severity: str = "medium",
        risk_level: Optional[str] = "ORANGE",
        status: str = "unacknowledged",
        created_at: Optional[datetime] = None,
    ) -> RiskSignal:
        return await self._add(
            RiskSignal(
                id=uuid.uuid4(),
                organization_id=project.organization_id,
                project_id=project.id,
                signal_type=signal_type,
                severity=severity,
                risk_level=risk_level,
                details={"kind": signal_type},
                status=status,
                created_at=created_at or NOW,
            )
        )

    async def threshold_override(self, organization_id: uuid.UUID, overrides: dict):
        return await self._add(
            RiskThresholdOverride(organization_id=organization_id, overrides=overrides)
        )


@pytest.fixture
def factory(session_factory) -> DataFactory:
    return DataFactory(session_factory)


# ── API client ───────────────────────────────────────────────────────────


@pytest.fixture
def user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def auth_headers(org_id, user_id) -> dict:
    token = create_access_token(user_id=user_id, organization_id=str(org_id), email="pm@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Test client against the app with get_db bound to the test database."""
    from riskradar.main import create_app

    app = create_app()

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _test_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
