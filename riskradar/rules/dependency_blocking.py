"""
Dependency Blocking Rule.

A work item in status `blocked` whose last update is older than the
threshold produces one finding. updated_at stands in for "blocked since".
"""

import math
import uuid

from riskradar.detection.severity import classify_risk_level
from riskradar.rules.base import BaseRule, RiskFinding
from riskradar.schemas.signal import DependencyBlockingDetails, SignalType

BLOCKED_STATUS = "blocked"
SECONDS_PER_DAY = 86400


class DependencyBlockingRule(BaseRule):
    signal_type = SignalType.DEPENDENCY_BLOCKING

    async def detect(self, project_id: uuid.UUID, organization_id: uuid.UUID) -> list[RiskFinding]:
        blocked = await self.db.get_work_items(project_id, statuses=[BLOCKED_STATUS])
        if not blocked:
            return []

        project = await self.db.get_project(project_id)
        project_name = project.name if project else ""
        threshold = self.thresholds.dependency_blocking_days
        now = self.now()

        findings = []
        for item in blocked:
            elapsed = (now - item.updated_at).total_seconds()
            days_blocked = math.ceil(elapsed / SECONDS_PER_DAY)
            if days_blocked <= threshold:
                continue

            findings.append(
                RiskFinding(
                    project_id=project_id,
                    project_name=project_name,
                    signal_type=self.signal_type,
                    risk_level=classify_risk_level(days_blocked, threshold),
                    work_item_id=item.id,
                    details=DependencyBlockingDetails(
                        work_item_id=str(item.id),
                        work_item_title=item.title,
                        days_blocked=days_blocked,
                        threshold=threshold,
                        blocked_since=item.updated_at,
                        status=item.status,
                    ),
                    detected_at=now,
                )
            )
        return findings
