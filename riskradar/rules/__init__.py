"""
Risk rules — each reads project data, applies thresholds, returns findings.

Rules run in this order for every project scan.
"""

from riskradar.rules.base import BaseRule, RiskFinding
from riskradar.rules.budget_variance import BudgetVarianceRule
from riskradar.rules.dependency_blocking import DependencyBlockingRule
from riskradar.rules.resource_overallocation import ResourceOverallocationRule
from riskradar.rules.schedule_variance import ScheduleVarianceRule
from riskradar.rules.scope_creep import ScopeCreepRule

DEFAULT_RULES: tuple[type[BaseRule], ...] = (
    ResourceOverallocationRule,
    ScheduleVarianceRule,
    BudgetVarianceRule,
    DependencyBlockingRule,
    ScopeCreepRule,
)

__all__ = [
    "BaseRule",
    "BudgetVarianceRule",
    "DEFAULT_RULES",
    "DependencyBlockingRule",
    "ResourceOverallocationRule",
    "RiskFinding",
    "ScheduleVarianceRule",
    "ScopeCreepRule",
]
