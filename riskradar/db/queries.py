"""
Database query functions for rules, sweeps and services.

Plain async functions taking an explicit session. The scheduler runs them
with direct DB access, so every tenant-scoped query takes organization_id.
"""

import uuid
from datetime import date, datetime
from typing import Optional, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.db.models import (
    Allocation,
    Conflict,
    Project,
    ProjectBudget,
    RiskSignal,
    RiskThresholdOverride,
    WorkItem,
)

ACTIVE_PROJECT_STATUS = "active"


# ── Projects ─────────────────────────────────────────────────────────────


async def get_active_projects(
    session: AsyncSession, organization_id: Optional[uuid.UUID] = None
) -> Sequence[Project]:
    """Active projects, optionally for one organization (sweep iteration)."""
    stmt = select(Project).where(Project.status == ACTIVE_PROJECT_STATUS)
    if organization_id is not None:
        stmt = stmt.where(Project.organization_id == organization_id)
    result = await session.execute(stmt.order_by(Project.organization_id, Project.created_at))
    return result.scalars().all()


async def get_project(session: AsyncSession, project_id: uuid.UUID) -> Optional[Project]:
    result = await session.execute(select(Project).where(Project.id == project_id))
    return result.scalar_one_or_none()


# ── Work items ───────────────────────────────────────────────────────────


async def get_work_items(
    session: AsyncSession,
    project_id: uuid.UUID,
    statuses: Optional[list[str]] = None,
) -> Sequence[WorkItem]:
    stmt = select(WorkItem).where(WorkItem.project_id == project_id)
    if statuses:
        stmt = stmt.where(WorkItem.status.in_(statuses))
    result = await session.execute(stmt.order_by(WorkItem.created_at.asc()))
    return result.scalars().all()


async def get_work_items_created_after(
    session: AsyncSession, project_id: uuid.UUID, cutoff: datetime
) -> Sequence[WorkItem]:
    """Work items created strictly after the cutoff (scope baseline)."""
    result = await session.execute(
        select(WorkItem)
        .where(and_(WorkItem.project_id == project_id, WorkItem.created_at > cutoff))
        .order_by(WorkItem.created_at.asc())
    )
    return result.scalars().all()


# ── Allocations ──────────────────────────────────────────────────────────


async def get_project_allocations(
    session: AsyncSession, project_id: uuid.UUID, organization_id: uuid.UUID
) -> Sequence[Allocation]:
    result = await session.execute(
        select(Allocation)
        .join(Project, Project.id == Allocation.project_id)
        .where(
            and_(
                Allocation.project_id == project_id,
                Project.organization_id == organization_id,
            )
        )
        .order_by(Allocation.start_date.asc())
    )
    return result.scalars().all()


async def get_resource_allocations(
    session: AsyncSession,
    organization_id: uuid.UUID,
    resource_id: uuid.UUID,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Sequence[Allocation]:
    """All of a resource's allocations across projects, optionally limited to [start, end]."""
    stmt = select(Allocation).where(
        and_(
            Allocation.organization_id == organization_id,
            Allocation.resource_id == resource_id,
        )
    )
    if end is not None:
        stmt = stmt.where(Allocation.start_date <= end)
    if start is not None:
        stmt = stmt.where(Allocation.end_date >= start)
    result = await session.execute(stmt.order_by(Allocation.start_date.asc()))
    return result.scalars().all()


async def get_allocations_in_window(
    session: AsyncSession, start: date, end: date
) -> Sequence[Allocation]:
    """Allocations whose [start_date, end_date] intersects [start, end] (inclusive)."""
    result = await session.execute(
        select(Allocation)
        .where(and_(Allocation.start_date <= end, Allocation.end_date >= start))
        .order_by(Allocation.organization_id, Allocation.resource_id, Allocation.start_date)
    )
    return result.scalars().all()


# ── Budget ───────────────────────────────────────────────────────────────


async def get_project_budget(
    session: AsyncSession, project_id: uuid.UUID
) -> Optional[ProjectBudget]:
    result = await session.execute(
        select(ProjectBudget).where(ProjectBudget.project_id == project_id)
    )
    return result.scalar_one_or_none()


# ── Thresholds ───────────────────────────────────────────────────────────


async def get_threshold_override(
    session: AsyncSession, organization_id: uuid.UUID
) -> Optional[RiskThresholdOverride]:
    result = await session.execute(
        select(RiskThresholdOverride).where(
            RiskThresholdOverride.organization_id == organization_id
        )
    )
    return result.scalar_one_or_none()


# ── Signals ──────────────────────────────────────────────────────────────


async def get_signal(session: AsyncSession, signal_id: uuid.UUID) -> Optional[RiskSignal]:
    result = await session.execute(select(RiskSignal).where(RiskSignal.id == signal_id))
    return result.scalar_one_or_none()


async def get_project_signals(
    session: AsyncSession, project_id: uuid.UUID
) -> Sequence[RiskSignal]:
    result = await session.execute(
        select(RiskSignal)
        .where(RiskSignal.project_id == project_id)
        .order_by(RiskSignal.created_at.desc())
    )
    return result.scalars().all()


async def get_latest_signal_time(
    session: AsyncSession, project_id: uuid.UUID
) -> Optional[datetime]:
    result = await session.execute(
        select(func.max(RiskSignal.created_at)).where(RiskSignal.project_id == project_id)
    )
    return result.scalar_one_or_none()


# ── Conflicts ────────────────────────────────────────────────────────────


async def get_conflict(session: AsyncSession, conflict_id: uuid.UUID) -> Optional[Conflict]:
    result = await session.execute(select(Conflict).where(Conflict.id == conflict_id))
    return result.scalar_one_or_none()


async def get_open_conflict(
    session: AsyncSession,
    organization_id: uuid.UUID,
    resource_id: uuid.UUID,
    conflict_date: date,
) -> Optional[Conflict]:
    result = await session.execute(
        select(Conflict).where(
            and_(
                Conflict.organization_id == organization_id,
                Conflict.resource_id == resource_id,
                Conflict.conflict_date == conflict_date,
                Conflict.resolved == False,  # noqa: E712
            )
        )
    )
    return result.scalars().first()


async def get_open_conflicts_in_window(
    session: AsyncSession,
    organization_id: uuid.UUID,
    resource_id: uuid.UUID,
    start: date,
    end: date,
) -> Sequence[Conflict]:
    result = await session.execute(
        select(Conflict).where(
            and_(
                Conflict.organization_id == organization_id,
                Conflict.resource_id == resource_id,
                Conflict.resolved == False,  # noqa: E712
                Conflict.conflict_date >= start,
                Conflict.conflict_date <= end,
            )
        )
    )
    return result.scalars().all()


async def get_open_conflict_resources(
    session: AsyncSession, start: date, end: date
) -> Sequence[tuple[uuid.UUID, uuid.UUID]]:
    """Distinct (organization_id, resource_id) pairs with open conflicts in [start, end]."""
    result = await session.execute(
        select(Conflict.organization_id, Conflict.resource_id)
        .where(
            and_(
                Conflict.resolved == False,  # noqa: E712
                Conflict.conflict_date >= start,
                Conflict.conflict_date <= end,
            )
        )
        .distinct()
    )
    return [(row.organization_id, row.resource_id) for row in result.all()]
