"""
RiskRadar — resource overallocation and project risk detection.

Architecture:
    detection/   pure functions: interval overlap, day buckets, severity
    rules/       five risk rules over a data adapter and immutable thresholds
    services/    signal and conflict lifecycle, project scanner, scheduler
    api/         FastAPI routers (tenant from JWT)
    db/          async SQLAlchemy models and query functions
"""

__version__ = "1.0.0"
