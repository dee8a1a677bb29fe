"""
RiskRadar SQLAlchemy Models.

Collaborator-owned tables (read by the engine, written elsewhere):
    Project, WorkItem, Allocation, ProjectBudget

Engine-owned tables:
    RiskSignal, Conflict, RiskThresholdOverride

Uses compatibility types for SQLite (dev) + PostgreSQL (prod).
"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from riskradar.db.compat import GUID, JSONType, Percent
from riskradar.db.engine import Base


def _genuuid():
    return uuid.uuid4()


def utcnow() -> datetime:
    """Naive UTC timestamp (all DateTime columns are stored naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ──────────────────────────────────────────────────────────────────────────────
# 1. Project data (owned by the project-management collaborator)
# ──────────────────────────────────────────────────────────────────────────────


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_org_status", "organization_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=_genuuid)
    organization_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="active")
    start_date: Mapped[Optional[date]] = mapped_column(Date)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    work_items: Mapped[list["WorkItem"]] = relationship(back_populates="project")
    allocations: Mapped[list["Allocation"]] = relationship(back_populates="project")


class WorkItem(Base):
    __tablename__ = "work_items"
    __table_args__ = (
        Index("ix_work_items_project_status", "project_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=_genuuid)
    project_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("projects.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, default="task")
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="todo")
    planned_end: Mapped[Optional[date]] = mapped_column(Date)
    actual_end: Mapped[Optional[date]] = mapped_column(Date)
    effort_points: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    project: Mapped["Project"] = relationship(back_populates="work_items")


class Allocation(Base):
    """A resource's committed capacity percentage to a project over [start_date, end_date]."""

    __tablename__ = "resource_allocations"
    __table_args__ = (
        Index("ix_allocations_resource_dates", "resource_id", "start_date", "end_date"),
        Index("ix_allocations_project", "project_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=_genuuid)
    organization_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False, index=True)
    resource_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    project_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("projects.id"), nullable=False)
    task_id: Mapped[Optional[uuid.UUID]] = mapped_column(GUID())
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    allocation_percentage: Mapped[float] = mapped_column(Percent(), nullable=False)
    hours_per_day: Mapped[Optional[float]] = mapped_column(Percent())
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    project: Mapped["Project"] = relationship(back_populates="allocations")


class ProjectBudget(Base):
    """Planned vs. actual spend, mirrored from the external financial system."""

    __tablename__ = "project_budgets"

    project_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("projects.id"), primary_key=True)
    planned_budget: Mapped[float] = mapped_column(Percent(), nullable=False)
    actual_spent: Mapped[float] = mapped_column(Percent(), nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


# ──────────────────────────────────────────────────────────────────────────────
# 2. Engine output
# ──────────────────────────────────────────────────────────────────────────────


class RiskSignal(Base):
    """
    Durable risk-rule finding.

    Lifecycle: unacknowledged → acknowledged → resolved. Never deleted.
    No uniqueness constraint: every scan may add a new row for the same condition.
    """

    __tablename__ = "risk_signals"
    __table_args__ = (
        Index("ix_risk_signals_org_status", "organization_id", "status"),
        Index("ix_risk_signals_project", "project_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=_genuuid)
    organization_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    project_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("projects.id"), nullable=False)
    work_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(GUID())
    signal_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    risk_level: Mapped[Optional[str]] = mapped_column(String(20))
    details: Mapped[dict] = mapped_column(JSONType(), nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="unacknowledged")
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(128))
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(128))
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    project: Mapped["Project"] = relationship()


class Conflict(Base):
    """
    Day-level overallocation for one resource.

    affected_projects is a snapshot taken at detection time, not a live reference.
    At most one unresolved row per (organization_id, resource_id, conflict_date).
    """

    __tablename__ = "resource_conflicts"
    __table_args__ = (
        Index(
            "uq_resource_conflicts_open_day",
            "organization_id",
            "resource_id",
            "conflict_date",
            unique=True,
            postgresql_where=text("resolved = false"),
            sqlite_where=text("resolved = 0"),
        ),
        Index("ix_resource_conflicts_org", "organization_id", "resolved"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=_genuuid)
    organization_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    resource_id: Mapped[uuid.UUID] = mapped_column(GUID(), nullable=False)
    conflict_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_allocation_percentage: Mapped[float] = mapped_column(Percent(), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    affected_projects: Mapped[list] = mapped_column(JSONType(), nullable=False, default=list)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(128))
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    resolution_note: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class RiskThresholdOverride(Base):
    """Per-organization threshold overrides, merged over settings defaults before a scan."""

    __tablename__ = "risk_threshold_overrides"

    organization_id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True)
    overrides: Mapped[dict] = mapped_column(JSONType(), nullable=False, default=dict)
    updated_by: Mapped[Optional[str]] = mapped_column(String(128))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
