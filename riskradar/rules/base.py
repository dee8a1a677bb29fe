"""
Base class and finding model for risk rules.

A rule reads through a data adapter (see services.scanner.RuleDataAdapter),
applies an immutable RiskThresholds value and returns RiskFinding objects.

Error isolation: a rule that fails logs `rule_failed` and returns [] so the
remaining rules and projects in the sweep still run.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel, Field, model_validator

from riskradar.db.models import utcnow
from riskradar.detection.severity import ConflictSeverity, RiskLevel, to_signal_severity
from riskradar.schemas.signal import DETAIL_KINDS, SignalDetails, SignalType
from riskradar.schemas.thresholds import RiskThresholds

logger = structlog.get_logger(__name__)


class RiskFinding(BaseModel):
    """One rule outcome, not yet persisted."""

    project_id: uuid.UUID
    project_name: str = ""
    signal_type: SignalType
    risk_level: RiskLevel
    details: SignalDetails
    work_item_id: Optional[uuid.UUID] = None
    detected_at: datetime = Field(default_factory=utcnow)
    requires_acknowledgment: bool = True

    @model_validator(mode="after")
    def _details_match_type(self) -> "RiskFinding":
        if self.details.kind not in DETAIL_KINDS[self.signal_type]:
            raise ValueError(
                f"details kind '{self.details.kind}' is not valid for {self.signal_type}"
            )
        return self

    @property
    def severity(self) -> ConflictSeverity:
        return to_signal_severity(self.risk_level)


class BaseRule(ABC):
    """Common plumbing for the five risk rules."""

    signal_type: SignalType

    def __init__(
        self,
        db: Any,
        thresholds: RiskThresholds,
        now: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.thresholds = thresholds
        self._now = now

    @property
    def name(self) -> str:
        return type(self).__name__

    def now(self) -> datetime:
        return self._now()

    def today(self) -> date:
        return self._now().date()

    async def evaluate(self, project_id: uuid.UUID, organization_id: uuid.UUID) -> list[RiskFinding]:
        """Run the rule; failures are logged and produce no findings."""
        try:
            findings = await self.detect(project_id, organization_id)
        except Exception as e:
            logger.error(
                "rule_failed",
                rule=self.name,
                project_id=str(project_id),
                error=str(e),
            )
            await self._recover()
            return []

        if findings:
            logger.info(
                "rule_findings",
                rule=self.name,
                project_id=str(project_id),
                count=len(findings),
            )
        return findings

    async def _recover(self) -> None:
        # Leave the shared session usable for the next rule
        reset = getattr(self.db, "reset", None)
        if reset is None:
            return
        try:
            await reset()
        except Exception as e:
            logger.warning("rule_session_reset_failed", rule=self.name, error=str(e))

    @abstractmethod
    async def detect(self, project_id: uuid.UUID, organization_id: uuid.UUID) -> list[RiskFinding]:
        """Rule body; may raise on data-access errors."""
