"""
Resource Overallocation Rule.

For each resource allocated to the project, look at ALL of that resource's
allocations in the organization (overallocation is cross-project) and report
the first period whose concurrent total exceeds the threshold. Risk level
comes from the peak concurrent total, which may sit in a later window.
One finding per resource per scan.
"""

import uuid

import structlog

from riskradar.detection.overlap import find_first_overallocation, peak_concurrent_percentage
from riskradar.detection.severity import classify_risk_level
from riskradar.rules.base import BaseRule, RiskFinding
from riskradar.schemas.signal import AllocationPeriod, ResourceOverallocationDetails, SignalType

logger = structlog.get_logger(__name__)


class ResourceOverallocationRule(BaseRule):
    signal_type = SignalType.RESOURCE_OVERALLOCATION

    async def detect(self, project_id: uuid.UUID, organization_id: uuid.UUID) -> list[RiskFinding]:
        threshold = self.thresholds.resource_overallocation
        project_allocations = await self.db.get_project_allocations(project_id, organization_id)
        if not project_allocations:
            return []

        project = await self.db.get_project(project_id)
        project_name = project.name if project else ""

        resource_ids = list(dict.fromkeys(a.resource_id for a in project_allocations))
        findings = []

        for resource_id in resource_ids:
            allocations = await self.db.get_resource_allocations(organization_id, resource_id)
            window = find_first_overallocation(allocations, threshold)
            if window is None:
                continue

            total = window.total_percentage
            peak = peak_concurrent_percentage(allocations)
            findings.append(
                RiskFinding(
                    project_id=project_id,
                    project_name=project_name,
                    signal_type=self.signal_type,
                    risk_level=classify_risk_level(peak, threshold),
                    details=ResourceOverallocationDetails(
                        resource_id=str(resource_id),
                        total_allocation=round(total, 2),
                        threshold=threshold,
                        overallocation_percent=round(total - threshold, 2),
                        period=AllocationPeriod(
                            start_date=window.start_date,
                            end_date=window.end_date,
                        ),
                    ),
                    detected_at=self.now(),
                )
            )

        logger.debug(
            "resource_overallocation_checked",
            project_id=str(project_id),
            resources_scanned=len(resource_ids),
            overallocated=len(findings),
        )
        return findings
