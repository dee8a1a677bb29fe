"""Pydantic schemas for conflicts and allocation pre-commit checks."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class AllocationProposal(BaseModel):
    """
    A new or edited allocation submitted for validation before it is saved.

    Validation of the date range and percentage lives in ConflictService so the
    same InvalidAllocationError surfaces for API and in-process callers.
    """

    resource_id: uuid.UUID
    project_id: uuid.UUID
    task_id: Optional[uuid.UUID] = None
    start_date: date
    end_date: date
    allocation_percentage: Optional[float] = None
    hours_per_day: Optional[float] = None
    allocation_id: Optional[uuid.UUID] = Field(
        default=None, description="Set when editing an existing allocation",
    )


class AffectedProject(BaseModel):
    project_id: Optional[str]
    task_id: Optional[str]
    allocation_percentage: float


class DayConflictResponse(BaseModel):
    date: date
    total_allocation: float
    severity: str
    affected_projects: list[AffectedProject]


class AllocationCheckResponse(BaseModel):
    resource_id: uuid.UUID
    allocation_percentage: float
    has_conflict: bool
    max_total: float
    conflicts: list[DayConflictResponse]


class ConflictResponse(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    resource_id: uuid.UUID
    conflict_date: date
    total_allocation_percentage: float
    severity: str
    affected_projects: list[AffectedProject]
    resolved: bool
    resolved_by: Optional[str]
    resolved_at: Optional[datetime]
    resolution_note: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class ConflictListResponse(BaseModel):
    conflicts: list[ConflictResponse]
    total: int


class ResolveConflictRequest(BaseModel):
    note: Optional[str] = Field(default=None, max_length=2000)
