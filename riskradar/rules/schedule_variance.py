"""
Schedule Variance Rule.

Two independent checks, both of which may fire in one scan:
1. Slip — project end date passed more than N days ago and the project is not complete
2. Low completion — done effort / planned effort below the completion threshold

Completion is 0 (not undefined) when no work item carries effort points.
"""

import uuid

from riskradar.detection.severity import classify_risk_level
from riskradar.rules.base import BaseRule, RiskFinding
from riskradar.schemas.signal import LowCompletionDetails, ScheduleSlipDetails, SignalType

DONE_STATUS = "done"
COMPLETED_PROJECT_STATUS = "completed"


class ScheduleVarianceRule(BaseRule):
    signal_type = SignalType.SCHEDULE_VARIANCE

    async def detect(self, project_id: uuid.UUID, organization_id: uuid.UUID) -> list[RiskFinding]:
        project = await self.db.get_project(project_id)
        if project is None or project.end_date is None:
            return []

        work_items = await self.db.get_work_items(project_id)
        today = self.today()
        slip_days = self.thresholds.schedule_variance_days

        planned_effort = 0
        completed_effort = 0
        overdue_tasks = 0
        for item in work_items:
            if item.effort_points:
                planned_effort += item.effort_points
                if item.status == DONE_STATUS:
                    completed_effort += item.effort_points

            if item.planned_end and item.status != DONE_STATUS and item.planned_end < today:
                if (today - item.planned_end).days > slip_days:
                    overdue_tasks += 1

        completion = completed_effort / planned_effort * 100 if planned_effort > 0 else 0.0
        days_overdue = (today - project.end_date).days if project.end_date < today else 0

        findings = []

        if days_overdue > slip_days and project.status != COMPLETED_PROJECT_STATUS:
            findings.append(
                RiskFinding(
                    project_id=project_id,
                    project_name=project.name,
                    signal_type=self.signal_type,
                    risk_level=classify_risk_level(days_overdue, slip_days),
                    details=ScheduleSlipDetails(
                        days_overdue=days_overdue,
                        threshold=slip_days,
                        project_end_date=project.end_date,
                        overdue_tasks=overdue_tasks,
                        total_tasks=len(work_items),
                        completion_percentage=round(completion, 2),
                    ),
                    detected_at=self.now(),
                )
            )

        completion_threshold = self.thresholds.schedule_completion_threshold
        if completion < completion_threshold:
            findings.append(
                RiskFinding(
                    project_id=project_id,
                    project_name=project.name,
                    signal_type=self.signal_type,
                    risk_level=classify_risk_level(
                        completion_threshold - completion,
                        self.thresholds.low_completion_scale,
                    ),
                    details=LowCompletionDetails(
                        completion_percentage=round(completion, 2),
                        threshold=completion_threshold,
                        total_planned_effort=planned_effort,
                        total_completed_effort=completed_effort,
                        overdue_tasks=overdue_tasks,
                        total_tasks=len(work_items),
                    ),
                    detected_at=self.now(),
                )
            )

        return findings
