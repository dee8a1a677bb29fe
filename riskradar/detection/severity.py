"""
Severity Classifier.

Two parallel scales:
- ConflictSeverity (4 tiers) — absolute daily allocation totals, used by conflicts
  and as the stored `severity` of risk signals.
- RiskLevel (5 tiers) — value/threshold ratio, produced by the risk rules.

to_signal_severity() maps 5 → 4 tiers. GREEN and YELLOW both land on LOW;
the collapse is kept as-is for compatibility with existing signal consumers.
"""

from enum import StrEnum


class ConflictSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(StrEnum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    ORANGE = "ORANGE"
    RED = "RED"
    CRITICAL = "CRITICAL"


# Weights for the project risk score (1 = lowest, 5 = highest)
RISK_LEVEL_WEIGHTS: dict[RiskLevel, int] = {
    RiskLevel.GREEN: 1,
    RiskLevel.YELLOW: 2,
    RiskLevel.ORANGE: 3,
    RiskLevel.RED: 4,
    RiskLevel.CRITICAL: 5,
}

CONFLICT_SEVERITY_RANK: dict[ConflictSeverity, int] = {
    ConflictSeverity.LOW: 1,
    ConflictSeverity.MEDIUM: 2,
    ConflictSeverity.HIGH: 3,
    ConflictSeverity.CRITICAL: 4,
}

_SIGNAL_SEVERITY_BY_LEVEL: dict[RiskLevel, ConflictSeverity] = {
    RiskLevel.GREEN: ConflictSeverity.LOW,
    RiskLevel.YELLOW: ConflictSeverity.LOW,
    RiskLevel.ORANGE: ConflictSeverity.MEDIUM,
    RiskLevel.RED: ConflictSeverity.HIGH,
    RiskLevel.CRITICAL: ConflictSeverity.CRITICAL,
}

# Inverse used for signals stored without a risk level; LOW reads back as YELLOW.
_LEVEL_BY_SIGNAL_SEVERITY: dict[ConflictSeverity, RiskLevel] = {
    ConflictSeverity.LOW: RiskLevel.YELLOW,
    ConflictSeverity.MEDIUM: RiskLevel.ORANGE,
    ConflictSeverity.HIGH: RiskLevel.RED,
    ConflictSeverity.CRITICAL: RiskLevel.CRITICAL,
}


def classify_conflict_severity(total_percentage: float) -> ConflictSeverity:
    """Classify a daily allocation total (percent) on the 4-tier scale."""
    if total_percentage <= 110:
        return ConflictSeverity.LOW
    if total_percentage <= 125:
        return ConflictSeverity.MEDIUM
    if total_percentage <= 150:
        return ConflictSeverity.HIGH
    return ConflictSeverity.CRITICAL


def classify_risk_level(value: float, threshold: float) -> RiskLevel:
    """Classify how far a metric exceeds its threshold on the 5-tier scale."""
    if threshold <= 0:
        raise ValueError(f"threshold must be positive, got {threshold}")

    ratio = value / threshold
    if ratio >= 3.0:
        return RiskLevel.CRITICAL
    if ratio >= 2.0:
        return RiskLevel.RED
    if ratio >= 1.5:
        return RiskLevel.ORANGE
    if ratio >= 1.0:
        return RiskLevel.YELLOW
    return RiskLevel.GREEN


def to_signal_severity(level: RiskLevel | str) -> ConflictSeverity:
    """Map a 5-tier risk level onto the 4-tier vocabulary used for storage."""
    return _SIGNAL_SEVERITY_BY_LEVEL[RiskLevel(level)]


def from_signal_severity(severity: ConflictSeverity | str) -> RiskLevel:
    return _LEVEL_BY_SIGNAL_SEVERITY[ConflictSeverity(severity)]
