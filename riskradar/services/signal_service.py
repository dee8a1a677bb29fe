"""
Signal Service — persistence and lifecycle of risk signals.

Lifecycle: unacknowledged → acknowledged → resolved. Signals are never
deleted and never deduplicated: each scan that detects a condition adds a row.

Uses ORM for cross-database compatibility (SQLite dev + PostgreSQL prod).
"""

import uuid
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.db import queries as db_queries
from riskradar.db.models import RiskSignal, utcnow
from riskradar.detection.severity import (
    RISK_LEVEL_WEIGHTS,
    ConflictSeverity,
    RiskLevel,
    from_signal_severity,
)
from riskradar.exceptions import ProjectNotFoundError, SignalNotFoundError
from riskradar.rules.base import RiskFinding
from riskradar.schemas.signal import (
    OrganizationRiskStats,
    RiskProfile,
    SignalStatus,
    SignalType,
)

logger = structlog.get_logger(__name__)

NEXT_SCAN_INTERVAL = timedelta(days=1)


def _as_uuid(value) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class SignalService:
    """Creates risk signals from findings and manages their lifecycle."""

    def __init__(self, now: Callable[[], datetime] = utcnow):
        self._now = now

    async def create_signal(
        self,
        session: AsyncSession,
        organization_id: uuid.UUID,
        finding: RiskFinding,
    ) -> RiskSignal:
        """Persist one finding as a new unacknowledged signal."""
        signal = RiskSignal(
            organization_id=_as_uuid(organization_id),
            project_id=finding.project_id,
            work_item_id=finding.work_item_id,
            signal_type=finding.signal_type.value,
            severity=finding.severity.value,
            risk_level=finding.risk_level.value,
            details=finding.details.model_dump(mode="json"),
            status=SignalStatus.UNACKNOWLEDGED.value,
            created_at=finding.detected_at,
        )
        session.add(signal)
        await session.flush()

        logger.info(
            "risk_signal_created",
            signal_id=str(signal.id),
            project_id=str(finding.project_id),
            signal_type=signal.signal_type,
            severity=signal.severity,
        )
        return signal

    async def create_signals(
        self,
        session: AsyncSession,
        organization_id: uuid.UUID,
        findings: Sequence[RiskFinding],
    ) -> list[RiskSignal]:
        return [await self.create_signal(session, organization_id, f) for f in findings]

    async def acknowledge_signal(
        self,
        session: AsyncSession,
        signal_id: uuid.UUID,
        user_id: str,
        organization_id: Optional[uuid.UUID] = None,
    ) -> RiskSignal:
        """Mark a signal acknowledged. Repeated calls overwrite who/when."""
        signal = await self._get_owned(session, signal_id, organization_id)
        signal.status = SignalStatus.ACKNOWLEDGED.value
        signal.acknowledged_by = str(user_id)
        signal.acknowledged_at = self._now()
        await session.flush()

        logger.info("risk_signal_acknowledged", signal_id=str(signal_id), user_id=str(user_id))
        return signal

    async def resolve_signal(
        self,
        session: AsyncSession,
        signal_id: uuid.UUID,
        user_id: str,
        organization_id: Optional[uuid.UUID] = None,
    ) -> RiskSignal:
        """Mark a signal resolved. Allowed from any state."""
        signal = await self._get_owned(session, signal_id, organization_id)
        signal.status = SignalStatus.RESOLVED.value
        signal.resolved_by = str(user_id)
        signal.resolved_at = self._now()
        await session.flush()

        logger.info("risk_signal_resolved", signal_id=str(signal_id), user_id=str(user_id))
        return signal

    async def get_active_signals(
        self,
        session: AsyncSession,
        organization_id: uuid.UUID,
        project_id: Optional[uuid.UUID] = None,
        signal_type: Optional[str] = None,
        severity: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[RiskSignal], int]:
        """Unacknowledged signals for an organization, newest first, with total count."""
        stmt = select(RiskSignal).where(
            and_(
                RiskSignal.organization_id == _as_uuid(organization_id),
                RiskSignal.status == SignalStatus.UNACKNOWLEDGED.value,
            )
        )
        if project_id is not None:
            stmt = stmt.where(RiskSignal.project_id == _as_uuid(project_id))
        if signal_type:
            stmt = stmt.where(RiskSignal.signal_type == signal_type)
        if severity:
            stmt = stmt.where(RiskSignal.severity == severity)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await session.execute(count_stmt)).scalar_one()

        stmt = stmt.order_by(RiskSignal.created_at.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_risk_profile(
        self,
        session: AsyncSession,
        project_id: uuid.UUID,
        organization_id: Optional[uuid.UUID] = None,
    ) -> RiskProfile:
        """
        Aggregate a project's signals.

        overall_risk_score is the weighted average of risk-level weights
        (GREEN=1 .. CRITICAL=5) over every signal of the project; 0 when there
        are none. The severity breakdown is keyed by 5-tier risk level.
        """
        project = await db_queries.get_project(session, _as_uuid(project_id))
        if project is None or (
            organization_id is not None and project.organization_id != _as_uuid(organization_id)
        ):
            raise ProjectNotFoundError(str(project_id))

        signals = await db_queries.get_project_signals(session, project.id)

        risk_counts = {t.value: 0 for t in SignalType}
        severity_breakdown = {level.value: 0 for level in RiskLevel}
        weights = []
        for signal in signals:
            level = self._level_of(signal)
            risk_counts[signal.signal_type] = risk_counts.get(signal.signal_type, 0) + 1
            severity_breakdown[level.value] += 1
            weights.append(RISK_LEVEL_WEIGHTS[level])

        score = round(sum(weights) / len(weights), 2) if weights else 0.0
        last_scan = await db_queries.get_latest_signal_time(session, project.id)

        return RiskProfile(
            project_id=project.id,
            project_name=project.name,
            overall_risk_score=score,
            risk_counts=risk_counts,
            severity_breakdown=severity_breakdown,
            last_scan_date=last_scan,
            next_scan_date=self._now() + NEXT_SCAN_INTERVAL,
        )

    async def get_organization_stats(
        self, session: AsyncSession, organization_id: uuid.UUID
    ) -> OrganizationRiskStats:
        """Totals by status, severity and type across all of an organization's signals."""
        result = await session.execute(
            select(RiskSignal.status, RiskSignal.severity, RiskSignal.signal_type).where(
                RiskSignal.organization_id == _as_uuid(organization_id)
            )
        )
        rows = result.all()

        by_status = Counter(row.status for row in rows)
        severity_breakdown = {s.value: 0 for s in ConflictSeverity}
        severity_breakdown.update(Counter(row.severity for row in rows))
        type_breakdown = {t.value: 0 for t in SignalType}
        type_breakdown.update(Counter(row.signal_type for row in rows))

        return OrganizationRiskStats(
            total_risks=len(rows),
            active_risks=by_status.get(SignalStatus.UNACKNOWLEDGED.value, 0),
            acknowledged_risks=by_status.get(SignalStatus.ACKNOWLEDGED.value, 0),
            resolved_risks=by_status.get(SignalStatus.RESOLVED.value, 0),
            severity_breakdown=severity_breakdown,
            risk_type_breakdown=type_breakdown,
        )

    @staticmethod
    def _level_of(signal: RiskSignal) -> RiskLevel:
        if signal.risk_level:
            return RiskLevel(signal.risk_level)
        return from_signal_severity(signal.severity)

    @staticmethod
    async def _get_owned(
        session: AsyncSession,
        signal_id: uuid.UUID,
        organization_id: Optional[uuid.UUID],
    ) -> RiskSignal:
        signal = await db_queries.get_signal(session, _as_uuid(signal_id))
        if signal is None or (
            organization_id is not None and signal.organization_id != _as_uuid(organization_id)
        ):
            raise SignalNotFoundError(str(signal_id))
        return signal
