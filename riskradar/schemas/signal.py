"""
Risk signal schemas.

Each rule attaches a typed details payload. Payloads form a tagged union on
`kind`; a signal type only accepts its own payload kinds (schedule variance
has two: `schedule_slip` and `low_completion`).
"""

import uuid
from datetime import date, datetime
from enum import StrEnum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class SignalType(StrEnum):
    RESOURCE_OVERALLOCATION = "resource_overallocation"
    SCHEDULE_VARIANCE = "schedule_variance"
    BUDGET_VARIANCE = "budget_variance"
    DEPENDENCY_BLOCKING = "dependency_blocking"
    SCOPE_CREEP = "scope_creep"


class SignalStatus(StrEnum):
    UNACKNOWLEDGED = "unacknowledged"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


# ── Details payloads ───────────────────────────────────────────────────


class AllocationPeriod(BaseModel):
    start_date: date
    end_date: date


class ResourceOverallocationDetails(BaseModel):
    kind: Literal["resource_overallocation"] = "resource_overallocation"
    resource_id: str
    total_allocation: float
    threshold: float
    overallocation_percent: float
    period: AllocationPeriod


class ScheduleSlipDetails(BaseModel):
    kind: Literal["schedule_slip"] = "schedule_slip"
    days_overdue: int
    threshold: float
    project_end_date: date
    overdue_tasks: int
    total_tasks: int
    completion_percentage: float


class LowCompletionDetails(BaseModel):
    kind: Literal["low_completion"] = "low_completion"
    completion_percentage: float
    threshold: float
    total_planned_effort: int
    total_completed_effort: int
    overdue_tasks: int
    total_tasks: int


class BudgetVarianceDetails(BaseModel):
    kind: Literal["budget_variance"] = "budget_variance"
    planned_budget: float
    actual_spent: float
    variance: float                 # planned - actual (negative when over budget)
    variance_percent: float
    threshold: float
    over_budget_amount: float


class DependencyBlockingDetails(BaseModel):
    kind: Literal["dependency_blocking"] = "dependency_blocking"
    work_item_id: str
    work_item_title: str
    days_blocked: int
    threshold: float
    blocked_since: datetime
    status: str = "blocked"


class AddedWorkItem(BaseModel):
    id: str
    title: str
    type: str
    added_at: datetime


class ScopeCreepDetails(BaseModel):
    kind: Literal["scope_creep"] = "scope_creep"
    baseline_date: datetime
    post_baseline_tasks: int
    threshold: float
    added_tasks: list[AddedWorkItem]
    scope_increase_percent: int


SignalDetails = Annotated[
    Union[
        ResourceOverallocationDetails,
        ScheduleSlipDetails,
        LowCompletionDetails,
        BudgetVarianceDetails,
        DependencyBlockingDetails,
        ScopeCreepDetails,
    ],
    Field(discriminator="kind"),
]

DETAIL_KINDS: dict[SignalType, frozenset[str]] = {
    SignalType.RESOURCE_OVERALLOCATION: frozenset({"resource_overallocation"}),
    SignalType.SCHEDULE_VARIANCE: frozenset({"schedule_slip", "low_completion"}),
    SignalType.BUDGET_VARIANCE: frozenset({"budget_variance"}),
    SignalType.DEPENDENCY_BLOCKING: frozenset({"dependency_blocking"}),
    SignalType.SCOPE_CREEP: frozenset({"scope_creep"}),
}


# ── API responses ──────────────────────────────────────────────────────


class RiskSignalResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    project_id: uuid.UUID
    work_item_id: Optional[uuid.UUID]
    signal_type: str
    severity: str
    risk_level: Optional[str]
    details: dict
    status: str
    acknowledged_by: Optional[str]
    acknowledged_at: Optional[datetime]
    resolved_by: Optional[str]
    resolved_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class RiskSignalListResponse(BaseModel):
    signals: list[RiskSignalResponse]
    total: int


class RiskProfile(BaseModel):
    project_id: uuid.UUID
    project_name: str
    overall_risk_score: float
    risk_counts: dict[str, int]
    severity_breakdown: dict[str, int]
    last_scan_date: Optional[datetime]
    next_scan_date: datetime


class OrganizationRiskStats(BaseModel):
    total_risks: int
    active_risks: int
    acknowledged_risks: int
    resolved_risks: int
    severity_breakdown: dict[str, int]
    risk_type_breakdown: dict[str, int]


class ProjectScanResponse(BaseModel):
    project_id: uuid.UUID
    findings: int
    signals: list[RiskSignalResponse]
