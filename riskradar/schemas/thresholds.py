"""Risk rule thresholds — an immutable value resolved before each scan."""

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from riskradar.config import Settings, settings
from riskradar.exceptions import InvalidThresholdError


class RiskThresholds(BaseModel):
    """
    Thresholds consumed by the five risk rules.

    Frozen: a scan receives one instance and nothing mutates it mid-scan.
    Per-organization overrides produce a new instance via with_overrides().
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    resource_overallocation: float = Field(default=100.0, gt=0)
    schedule_variance_days: float = Field(default=3.0, gt=0)
    schedule_completion_threshold: float = Field(default=50.0, ge=0, le=100)
    budget_variance_percent: float = Field(default=20.0, gt=0)
    dependency_blocking_days: float = Field(default=3.0, gt=0)
    scope_creep_tasks: float = Field(default=3.0, gt=0)
    scope_grace_days: int = Field(default=7, ge=0)
    low_completion_scale: float = Field(default=20.0, gt=0)

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "RiskThresholds":
        return cls.validated(
            {
                "resource_overallocation": source.resource_overallocation_threshold,
                "schedule_variance_days": source.schedule_variance_days,
                "schedule_completion_threshold": source.schedule_completion_threshold,
                "budget_variance_percent": source.budget_variance_percent,
                "dependency_blocking_days": source.dependency_blocking_days,
                "scope_creep_tasks": source.scope_creep_tasks,
                "scope_grace_days": source.scope_grace_days,
                "low_completion_scale": source.low_completion_severity_scale,
            }
        )

    @classmethod
    def validated(cls, values: Mapping[str, Any]) -> "RiskThresholds":
        """Build thresholds, turning pydantic errors into InvalidThresholdError."""
        try:
            return cls(**dict(values))
        except ValidationError as e:
            raise InvalidThresholdError(
                "Invalid risk threshold configuration",
                details={
                    "errors": [
                        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                        for err in e.errors()
                    ]
                },
            ) from e

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> "RiskThresholds":
        if not overrides:
            return self
        return self.validated({**self.model_dump(), **dict(overrides)})


class ThresholdOverrideRequest(BaseModel):
    """Partial update of an organization's thresholds (unset fields keep defaults)."""

    model_config = ConfigDict(extra="forbid")

    resource_overallocation: float | None = None
    schedule_variance_days: float | None = None
    schedule_completion_threshold: float | None = None
    budget_variance_percent: float | None = None
    dependency_blocking_days: float | None = None
    scope_creep_tasks: float | None = None
    scope_grace_days: int | None = None
    low_completion_scale: float | None = None

    def as_overrides(self) -> dict:
        return self.model_dump(exclude_none=True)
