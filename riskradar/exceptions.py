"""
RiskRadar Exceptions.

Error taxonomy:
- Not found (signal, conflict, project) → surfaced to the caller, HTTP 404
- Invalid input (thresholds, allocation proposals) → rejected at load/validation time
- Capacity violation on a proposed allocation → HTTP 409

Data-access failures are NOT represented here: rules and sweeps catch and log
them at unit granularity so one failure never halts a sweep.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Application error codes."""

    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"
    NOT_FOUND = "E1002"
    CONFLICT = "E1003"

    SIGNAL_NOT_FOUND = "E4000"
    CONFLICT_NOT_FOUND = "E4001"
    PROJECT_NOT_FOUND = "E4002"

    INVALID_THRESHOLD = "E6000"
    INVALID_ALLOCATION = "E6001"
    ALLOCATION_OVER_CAPACITY = "E6002"


class RiskRadarError(Exception):
    """Base exception for RiskRadar."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code.value,
            "details": self.details,
        }


# ── Not found ───────────────────────────────────────────────────────────


class NotFoundError(RiskRadarError):
    """A referenced record does not exist."""

    def __init__(self, resource: str, identifier: str, code: ErrorCode = ErrorCode.NOT_FOUND):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            code=code,
            status_code=404,
            details={"resource": resource, "identifier": identifier},
        )


class SignalNotFoundError(NotFoundError):
    def __init__(self, signal_id: str):
        super().__init__("Risk signal", str(signal_id), ErrorCode.SIGNAL_NOT_FOUND)


class ConflictNotFoundError(NotFoundError):
    def __init__(self, conflict_id: str):
        super().__init__("Conflict", str(conflict_id), ErrorCode.CONFLICT_NOT_FOUND)


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: str):
        super().__init__("Project", str(project_id), ErrorCode.PROJECT_NOT_FOUND)


# ── Invalid input ───────────────────────────────────────────────────────


class InvalidThresholdError(RiskRadarError):
    """Threshold configuration failed validation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_THRESHOLD,
            status_code=422,
            details=details,
        )


class InvalidAllocationError(RiskRadarError):
    """Allocation proposal has a malformed date range or percentage."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_ALLOCATION,
            status_code=422,
            details={"field": field} if field else None,
        )


class AllocationConflictError(RiskRadarError):
    """Proposed allocation would push the resource over capacity."""

    def __init__(self, resource_id: str, conflicts: list[dict]):
        self.conflicts = conflicts
        super().__init__(
            message="Cannot create allocation due to resource conflicts",
            code=ErrorCode.ALLOCATION_OVER_CAPACITY,
            status_code=409,
            details={"resource_id": str(resource_id), "conflicts": conflicts},
        )
