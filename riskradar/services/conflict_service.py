"""
Conflict Service — day-level resource conflicts and pre-commit validation.

At most one unresolved conflict per (organization_id, resource_id,
conflict_date): upsert is a no-op when one exists. A racing writer hits the
partial unique index and its unit of work is rolled back by the caller.

Resolution is manual (resolve_conflict) or automatic when the sweep finds
the day back under capacity (auto_resolve_cleared).
"""

import uuid
from datetime import date, datetime
from typing import Callable, Iterable, Optional

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.config import settings
from riskradar.db import queries as db_queries
from riskradar.db.models import Conflict, utcnow
from riskradar.detection.day_buckets import (
    DayConflict,
    check_proposed_allocation,
    hours_to_percentage,
)
from riskradar.detection.severity import CONFLICT_SEVERITY_RANK, ConflictSeverity
from riskradar.exceptions import (
    AllocationConflictError,
    ConflictNotFoundError,
    InvalidAllocationError,
)
from riskradar.schemas.conflict import AllocationCheckResponse, AllocationProposal

logger = structlog.get_logger(__name__)

AUTO_RESOLVED_BY = "system"
AUTO_RESOLVED_NOTE = "Allocation back within capacity"


class ConflictService:
    """Manages conflict upsert, resolution and allocation checks."""

    def __init__(
        self,
        capacity: Optional[float] = None,
        working_hours: Optional[float] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.capacity = capacity if capacity is not None else settings.full_capacity_percent
        self.working_hours = (
            working_hours if working_hours is not None else settings.working_hours_per_day
        )
        self._now = now

    async def upsert_conflict(
        self,
        session: AsyncSession,
        organization_id: uuid.UUID,
        resource_id: uuid.UUID,
        conflict_date: date,
        total_percentage: float,
        severity: ConflictSeverity | str,
        affected_projects: list[dict],
    ) -> tuple[Conflict, bool]:
        """Insert a conflict unless an unresolved one already exists for that day."""
        existing = await db_queries.get_open_conflict(
            session, organization_id, resource_id, conflict_date
        )
        if existing is not None:
            return existing, False

        conflict = Conflict(
            organization_id=organization_id,
            resource_id=resource_id,
            conflict_date=conflict_date,
            total_allocation_percentage=round(float(total_percentage), 2),
            severity=ConflictSeverity(severity).value,
            affected_projects=affected_projects,
            resolved=False,
        )
        session.add(conflict)
        await session.flush()

        logger.info(
            "conflict_created",
            conflict_id=str(conflict.id),
            resource_id=str(resource_id),
            conflict_date=conflict_date.isoformat(),
            total=conflict.total_allocation_percentage,
            severity=conflict.severity,
        )
        return conflict, True

    async def resolve_conflict(
        self,
        session: AsyncSession,
        conflict_id: uuid.UUID,
        user_id: str,
        note: Optional[str] = None,
        organization_id: Optional[uuid.UUID] = None,
    ) -> Conflict:
        conflict = await db_queries.get_conflict(session, conflict_id)
        if conflict is None or (
            organization_id is not None and conflict.organization_id != organization_id
        ):
            raise ConflictNotFoundError(str(conflict_id))

        conflict.resolved = True
        conflict.resolved_by = str(user_id)
        conflict.resolved_at = self._now()
        if note is not None:
            conflict.resolution_note = note
        await session.flush()

        logger.info("conflict_resolved", conflict_id=str(conflict_id), user_id=str(user_id))
        return conflict

    async def auto_resolve_cleared(
        self,
        session: AsyncSession,
        organization_id: uuid.UUID,
        resource_id: uuid.UUID,
        over_capacity_dates: Iterable[date],
        window_start: date,
        window_end: date,
    ) -> int:
        """Resolve open conflicts in the window whose day is no longer over capacity."""
        still_over = set(over_capacity_dates)
        open_conflicts = await db_queries.get_open_conflicts_in_window(
            session, organization_id, resource_id, window_start, window_end
        )

        count = 0
        for conflict in open_conflicts:
            if conflict.conflict_date in still_over:
                continue
            conflict.resolved = True
            conflict.resolved_by = AUTO_RESOLVED_BY
            conflict.resolved_at = self._now()
            conflict.resolution_note = AUTO_RESOLVED_NOTE
            count += 1

        if count:
            await session.flush()
            logger.info("conflicts_auto_resolved", resource_id=str(resource_id), count=count)
        return count

    async def get_conflicts(
        self,
        session: AsyncSession,
        organization_id: uuid.UUID,
        resource_id: Optional[uuid.UUID] = None,
        today: Optional[date] = None,
    ) -> list[Conflict]:
        """
        Unresolved conflicts.

        With resource_id: all of that resource's open conflicts by date.
        Without: upcoming open conflicts, critical first, then by date.
        """
        stmt = select(Conflict).where(
            and_(
                Conflict.organization_id == organization_id,
                Conflict.resolved == False,  # noqa: E712
            )
        )
        if resource_id is not None:
            stmt = stmt.where(Conflict.resource_id == resource_id)
            result = await session.execute(stmt.order_by(Conflict.conflict_date.asc()))
            return list(result.scalars().all())

        start = today or self._now().date()
        result = await session.execute(stmt.where(Conflict.conflict_date >= start))
        conflicts = list(result.scalars().all())
        conflicts.sort(
            key=lambda c: (
                -CONFLICT_SEVERITY_RANK.get(ConflictSeverity(c.severity), 0),
                c.conflict_date,
            )
        )
        return conflicts

    # ── Pre-commit validation ─────────────────────────────────────────

    def _proposal_percentage(self, proposal: AllocationProposal) -> float:
        if proposal.allocation_percentage is not None:
            return float(proposal.allocation_percentage)
        if proposal.hours_per_day is not None:
            if proposal.hours_per_day <= 0:
                raise InvalidAllocationError(
                    "hours_per_day must be positive", field="hours_per_day"
                )
            return hours_to_percentage(proposal.hours_per_day, self.working_hours)
        raise InvalidAllocationError(
            "Either allocation_percentage or hours_per_day is required",
            field="allocation_percentage",
        )

    def validate_proposal(self, proposal: AllocationProposal) -> float:
        """Return the proposal's percentage or raise InvalidAllocationError."""
        if proposal.start_date > proposal.end_date:
            raise InvalidAllocationError("start_date must not be after end_date", field="start_date")

        percentage = self._proposal_percentage(proposal)
        if percentage <= 0 or percentage > self.capacity:
            raise InvalidAllocationError(
                f"allocation_percentage must be in (0, {self.capacity:g}]",
                field="allocation_percentage",
            )
        return percentage

    async def check_allocation(
        self,
        session: AsyncSession,
        organization_id: uuid.UUID,
        proposal: AllocationProposal,
    ) -> AllocationCheckResponse:
        """Days on which the proposal would push the resource over capacity."""
        percentage = self.validate_proposal(proposal)
        candidate = proposal.model_copy(update={"allocation_percentage": percentage})

        existing = await db_queries.get_resource_allocations(
            session,
            organization_id,
            proposal.resource_id,
            start=proposal.start_date,
            end=proposal.end_date,
        )
        day_conflicts = check_proposed_allocation(
            candidate, existing, self.capacity, exclude_id=proposal.allocation_id
        )

        if day_conflicts:
            logger.info(
                "allocation_check_conflict",
                resource_id=str(proposal.resource_id),
                days=len(day_conflicts),
            )
        return self._check_response(proposal.resource_id, percentage, day_conflicts)

    async def ensure_allocation_fits(
        self,
        session: AsyncSession,
        organization_id: uuid.UUID,
        proposal: AllocationProposal,
    ) -> AllocationCheckResponse:
        """Like check_allocation, but raise AllocationConflictError on any conflict."""
        check = await self.check_allocation(session, organization_id, proposal)
        if check.has_conflict:
            raise AllocationConflictError(
                str(proposal.resource_id),
                [c.model_dump(mode="json") for c in check.conflicts],
            )
        return check

    @staticmethod
    def _check_response(
        resource_id: uuid.UUID, percentage: float, day_conflicts: list[DayConflict]
    ) -> AllocationCheckResponse:
        return AllocationCheckResponse.model_validate(
            {
                "resource_id": resource_id,
                "allocation_percentage": percentage,
                "has_conflict": bool(day_conflicts),
                "max_total": round(max((c.total_percentage for c in day_conflicts), default=0.0), 2),
                "conflicts": [c.to_dict() for c in day_conflicts],
            }
        )
