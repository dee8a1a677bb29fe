"""
Day-Bucket Conflict Detector.

Answers "is capacity exceeded on a specific day". An allocation covers a day
when start_date <= day <= end_date (inclusive on both ends), so two
allocations that touch at an endpoint both count on the shared day.

Used twice:
- pre-commit validation of a proposed allocation (check_proposed_allocation)
- the hourly reconciliation sweep over a rolling horizon (detect_day_conflicts)

Horizons are walked day by day; the allocation × date product is never built.
"""

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable, Iterator, Optional, Sequence

from riskradar.detection.severity import ConflictSeverity, classify_conflict_severity

FULL_CAPACITY = 100.0
WORKING_HOURS_PER_DAY = 8.0


@dataclass(frozen=True)
class DayBucket:
    day: date
    total_percentage: float
    allocations: tuple


@dataclass
class DayConflict:
    """A day on which one resource is committed beyond capacity."""

    resource_id: Any
    day: date
    total_percentage: float
    severity: ConflictSeverity
    affected_projects: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "total_allocation": round(self.total_percentage, 2),
            "severity": self.severity.value,
            "affected_projects": self.affected_projects,
        }


def allocation_covers_day(allocation: Any, day: date) -> bool:
    """Inclusive containment: both endpoints count."""
    return allocation.start_date <= day <= allocation.end_date


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def affected_projects_snapshot(allocations: Iterable[Any]) -> list[dict]:
    """Denormalized copy of the allocations contributing to a day."""
    return [
        {
            "project_id": _optional_str(getattr(a, "project_id", None)),
            "task_id": _optional_str(getattr(a, "task_id", None)),
            "allocation_percentage": float(a.allocation_percentage),
        }
        for a in allocations
    ]


def daily_totals(
    allocations: Sequence[Any],
    horizon_start: date,
    horizon_end: date,
) -> Iterator[DayBucket]:
    """Yield the committed total for every calendar day in the horizon."""
    relevant = sorted(
        (a for a in allocations if a.start_date <= horizon_end and a.end_date >= horizon_start),
        key=lambda a: a.start_date,
    )
    for day in iter_days(horizon_start, horizon_end):
        covering = tuple(a for a in relevant if allocation_covers_day(a, day))
        yield DayBucket(
            day=day,
            total_percentage=sum(float(a.allocation_percentage) for a in covering),
            allocations=covering,
        )


def detect_day_conflicts(
    resource_id: Any,
    allocations: Sequence[Any],
    horizon_start: date,
    horizon_end: date,
    capacity: float = FULL_CAPACITY,
) -> list[DayConflict]:
    """Days in the horizon where the resource's total exceeds capacity."""
    conflicts = []
    for bucket in daily_totals(allocations, horizon_start, horizon_end):
        if bucket.total_percentage > capacity:
            conflicts.append(
                DayConflict(
                    resource_id=resource_id,
                    day=bucket.day,
                    total_percentage=bucket.total_percentage,
                    severity=classify_conflict_severity(bucket.total_percentage),
                    affected_projects=affected_projects_snapshot(bucket.allocations),
                )
            )
    return conflicts


def check_proposed_allocation(
    proposed: Any,
    existing: Iterable[Any],
    capacity: float = FULL_CAPACITY,
    exclude_id: Optional[uuid.UUID] = None,
) -> list[DayConflict]:
    """
    Pre-commit check: every day of the proposal whose total would exceed capacity.

    exclude_id skips the stored version of an allocation being edited.
    """
    others = [
        a for a in existing
        if a is not proposed
        and not (exclude_id is not None and getattr(a, "id", None) == exclude_id)
        and a.start_date <= proposed.end_date
        and a.end_date >= proposed.start_date
    ]
    resource_id = getattr(proposed, "resource_id", None)

    conflicts = []
    for day in iter_days(proposed.start_date, proposed.end_date):
        covering = [a for a in others if allocation_covers_day(a, day)]
        total = float(proposed.allocation_percentage) + sum(
            float(a.allocation_percentage) for a in covering
        )
        if total > capacity:
            conflicts.append(
                DayConflict(
                    resource_id=resource_id,
                    day=day,
                    total_percentage=total,
                    severity=classify_conflict_severity(total),
                    affected_projects=affected_projects_snapshot([proposed, *covering]),
                )
            )
    return conflicts


def group_by_resource(allocations: Iterable[Any]) -> dict[Any, list]:
    grouped: dict[Any, list] = defaultdict(list)
    for allocation in allocations:
        grouped[allocation.resource_id].append(allocation)
    return dict(grouped)


def hours_to_percentage(hours_per_day: float, working_hours: float = WORKING_HOURS_PER_DAY) -> float:
    """Express an hours-per-day commitment as a percentage of a working day."""
    if working_hours <= 0:
        raise ValueError("working_hours must be positive")
    return round(hours_per_day / working_hours * 100, 2)
