"""
Scope Creep Rule.

Baseline = project creation + grace period. Work items created after the
baseline count as added scope; more than the threshold raises one finding.
"""

import uuid
from datetime import timedelta

from riskradar.detection.severity import classify_risk_level
from riskradar.rules.base import BaseRule, RiskFinding
from riskradar.schemas.signal import AddedWorkItem, ScopeCreepDetails, SignalType


class ScopeCreepRule(BaseRule):
    signal_type = SignalType.SCOPE_CREEP

    async def detect(self, project_id: uuid.UUID, organization_id: uuid.UUID) -> list[RiskFinding]:
        project = await self.db.get_project(project_id)
        if project is None:
            return []

        baseline = project.created_at + timedelta(days=self.thresholds.scope_grace_days)
        added = await self.db.get_work_items_created_after(project_id, baseline)
        threshold = self.thresholds.scope_creep_tasks

        if len(added) <= threshold:
            return []

        return [
            RiskFinding(
                project_id=project_id,
                project_name=project.name,
                signal_type=self.signal_type,
                risk_level=classify_risk_level(len(added), threshold),
                details=ScopeCreepDetails(
                    baseline_date=baseline,
                    post_baseline_tasks=len(added),
                    threshold=threshold,
                    added_tasks=[
                        AddedWorkItem(
                            id=str(item.id),
                            title=item.title,
                            type=item.type,
                            added_at=item.created_at,
                        )
                        for item in added
                    ],
                    scope_increase_percent=round(len(added) / threshold * 100),
                ),
                detected_at=self.now(),
            )
        ]
