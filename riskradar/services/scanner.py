"""
Risk Scanner — runs every rule against one project.

Rules are read-only; findings are collected first and persisted by the caller
in one transaction, so a crashing rule never leaves a half-written scan.
"""

import uuid
from datetime import date, datetime
from typing import Callable, Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.db import queries as db_queries
from riskradar.db.models import utcnow
from riskradar.rules import DEFAULT_RULES, BaseRule, RiskFinding
from riskradar.schemas.thresholds import RiskThresholds

logger = structlog.get_logger(__name__)


class RuleDataAdapter:
    """
    Adapter that wraps db.queries functions with a bound session.

    Rules call self.db.get_project(project_id); this adapter provides that
    interface backed by the queries module.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_project(self, project_id: uuid.UUID):
        return await db_queries.get_project(self._session, project_id)

    async def get_work_items(self, project_id: uuid.UUID, statuses: Optional[list[str]] = None):
        return await db_queries.get_work_items(self._session, project_id, statuses)

    async def get_work_items_created_after(self, project_id: uuid.UUID, cutoff: datetime):
        return await db_queries.get_work_items_created_after(self._session, project_id, cutoff)

    async def get_project_allocations(self, project_id: uuid.UUID, organization_id: uuid.UUID):
        return await db_queries.get_project_allocations(self._session, project_id, organization_id)

    async def get_resource_allocations(
        self,
        organization_id: uuid.UUID,
        resource_id: uuid.UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ):
        return await db_queries.get_resource_allocations(
            self._session, organization_id, resource_id, start, end
        )

    async def get_project_budget(self, project_id: uuid.UUID):
        return await db_queries.get_project_budget(self._session, project_id)

    async def reset(self) -> None:
        """Roll back after a failed query so later rules can use the session."""
        await self._session.rollback()


class RiskScanner:
    """Runs the rule set for a project with one resolved RiskThresholds value."""

    def __init__(
        self,
        rules: Sequence[type[BaseRule]] = DEFAULT_RULES,
        now: Callable[[], datetime] = utcnow,
    ):
        self.rules = tuple(rules)
        self._now = now

    async def scan_project(
        self,
        session: AsyncSession,
        project_id: uuid.UUID,
        organization_id: uuid.UUID,
        thresholds: RiskThresholds,
    ) -> list[RiskFinding]:
        """
        Evaluate all rules for one project.

        Error isolation: a failing rule contributes nothing; the others still run.
        """
        adapter = RuleDataAdapter(session)
        findings: list[RiskFinding] = []

        for rule_cls in self.rules:
            rule = rule_cls(adapter, thresholds, now=self._now)
            findings.extend(await rule.evaluate(project_id, organization_id))

        logger.info(
            "project_scanned",
            project_id=str(project_id),
            organization_id=str(organization_id),
            findings=len(findings),
        )
        return findings
