"""
Detection primitives — pure, synchronous, no I/O.

    overlap      half-open period overlap (risk rule 1)
    day_buckets  inclusive per-day capacity totals (conflicts, pre-commit checks)
    severity     4-tier conflict scale, 5-tier risk scale, and the mapping between them
"""

from riskradar.detection.day_buckets import (
    DayConflict,
    check_proposed_allocation,
    detect_day_conflicts,
    group_by_resource,
)
from riskradar.detection.overlap import (
    OverlapWindow,
    find_first_overallocation,
    intervals_overlap,
    total_concurrent_percentage,
)
from riskradar.detection.severity import (
    ConflictSeverity,
    RiskLevel,
    classify_conflict_severity,
    classify_risk_level,
    to_signal_severity,
)

__all__ = [
    "ConflictSeverity",
    "DayConflict",
    "OverlapWindow",
    "RiskLevel",
    "check_proposed_allocation",
    "classify_conflict_severity",
    "classify_risk_level",
    "detect_day_conflicts",
    "find_first_overallocation",
    "group_by_resource",
    "intervals_overlap",
    "to_signal_severity",
    "total_concurrent_percentage",
]
