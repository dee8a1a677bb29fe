"""
Budget Variance Rule.

Pass-through consumer of the financial system's planned vs. actual figures.
No budget row, or a non-positive planned budget, means nothing to compare.
"""

import uuid

from riskradar.detection.severity import classify_risk_level
from riskradar.rules.base import BaseRule, RiskFinding
from riskradar.schemas.signal import BudgetVarianceDetails, SignalType


class BudgetVarianceRule(BaseRule):
    signal_type = SignalType.BUDGET_VARIANCE

    async def detect(self, project_id: uuid.UUID, organization_id: uuid.UUID) -> list[RiskFinding]:
        budget = await self.db.get_project_budget(project_id)
        if budget is None or not budget.planned_budget or budget.planned_budget <= 0:
            return []

        planned = float(budget.planned_budget)
        actual = float(budget.actual_spent or 0)
        variance = planned - actual
        variance_percent = (actual - planned) / planned * 100
        threshold = self.thresholds.budget_variance_percent

        if variance_percent <= threshold:
            return []

        project = await self.db.get_project(project_id)
        return [
            RiskFinding(
                project_id=project_id,
                project_name=project.name if project else "",
                signal_type=self.signal_type,
                risk_level=classify_risk_level(variance_percent, threshold),
                details=BudgetVarianceDetails(
                    planned_budget=planned,
                    actual_spent=actual,
                    variance=round(variance, 2),
                    variance_percent=round(variance_percent, 2),
                    threshold=threshold,
                    over_budget_amount=round(abs(variance), 2),
                ),
                detected_at=self.now(),
            )
        ]
