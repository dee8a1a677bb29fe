"""
Signal Scheduler — runs in a separate process (riskradar-scheduler).

NOT inside the API process. Prevents background sweeps from blocking API requests.

Jobs:
1. Daily risk scan (cron, 06:00) — runs all rules per active project
2. Conflict sweep (every hour) — day-bucket detection over a rolling horizon
"""

import asyncio
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker

from riskradar.config import Settings, settings as default_settings
from riskradar.db import queries as db_queries
from riskradar.db.models import utcnow
from riskradar.detection.day_buckets import detect_day_conflicts, group_by_resource
from riskradar.services.conflict_service import ConflictService
from riskradar.services.scanner import RiskScanner
from riskradar.services.signal_service import SignalService
from riskradar.services.threshold_service import ThresholdService

logger = structlog.get_logger(__name__)


class SignalScheduler:
    """
    Background scheduler for risk scans and conflict sweeps.

    Each project (daily scan) and each resource (conflict sweep) gets its own
    session, so a failure rolls back only that unit and the sweep continues.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        config: Optional[Settings] = None,
        scanner: Optional[RiskScanner] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.config = config or default_settings
        self._now = now
        self.scanner = scanner or RiskScanner(now=now)
        self.signal_service = SignalService(now=now)
        self.conflict_service = ConflictService(
            capacity=self.config.full_capacity_percent,
            working_hours=self.config.working_hours_per_day,
            now=now,
        )
        self.threshold_service = ThresholdService()
        self.scheduler = AsyncIOScheduler()
        self._org_locks: dict[uuid.UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    def start(self):
        """Register and start all scheduled jobs."""
        self.scheduler.add_job(
            self.run_daily_risk_scan,
            CronTrigger(hour=self.config.daily_scan_hour, minute=self.config.daily_scan_minute),
            id="daily_risk_scan",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_conflict_sweep,
            IntervalTrigger(minutes=self.config.conflict_scan_interval_minutes),
            id="conflict_sweep",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("signal_scheduler_started")

    def stop(self):
        """Gracefully stop the scheduler."""
        self.scheduler.shutdown(wait=True)
        logger.info("signal_scheduler_stopped")

    # ── Daily risk scan ───────────────────────────────────────────────

    async def run_daily_risk_scan(self) -> int:
        """Scan every active project, grouped by organization. Returns risks detected."""
        logger.info("daily_risk_scan_started")
        async with self.session_factory() as session:
            projects = await db_queries.get_active_projects(session)

        by_org: dict[uuid.UUID, list[uuid.UUID]] = defaultdict(list)
        for project in projects:
            by_org[project.organization_id].append(project.id)

        total = 0
        for organization_id, project_ids in by_org.items():
            async with self._org_locks[organization_id]:
                total += await self._scan_organization(organization_id, project_ids)

        logger.info(
            "daily_risk_scan_completed",
            organizations=len(by_org),
            projects=len(projects),
            risks_detected=total,
        )
        return total

    async def _scan_organization(
        self, organization_id: uuid.UUID, project_ids: list[uuid.UUID]
    ) -> int:
        try:
            async with self.session_factory() as session:
                thresholds = await self.threshold_service.resolve(session, organization_id)
        except Exception as e:
            logger.error(
                "threshold_resolution_failed",
                organization_id=str(organization_id),
                error=str(e),
            )
            thresholds = self.threshold_service.defaults

        detected = 0
        for project_id in project_ids:
            try:
                detected += await self._scan_project(project_id, organization_id, thresholds)
            except Exception as e:
                logger.error(
                    "project_scan_failed",
                    project_id=str(project_id),
                    organization_id=str(organization_id),
                    error=str(e),
                )
                # DO NOT stop, continue with next project
        return detected

    async def _scan_project(self, project_id, organization_id, thresholds) -> int:
        async with self.session_factory() as session:
            findings = await self.scanner.scan_project(
                session, project_id, organization_id, thresholds
            )
            await self.signal_service.create_signals(session, organization_id, findings)
            await session.commit()
        return len(findings)

    # ── Conflict sweep ────────────────────────────────────────────────

    def horizon(self, today: Optional[date] = None) -> tuple[date, date]:
        start = today or self._now().date()
        return start, start + timedelta(days=self.config.conflict_horizon_days)

    async def run_conflict_sweep(self) -> int:
        """Detect over-capacity days in the horizon. Returns conflicts created."""
        window_start, window_end = self.horizon()
        logger.info(
            "conflict_sweep_started",
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat(),
        )
        async with self.session_factory() as session:
            allocations = await db_queries.get_allocations_in_window(
                session, window_start, window_end
            )
            stale = await db_queries.get_open_conflict_resources(
                session, window_start, window_end
            )

        org_allocations: dict[uuid.UUID, list] = defaultdict(list)
        for allocation in allocations:
            org_allocations[allocation.organization_id].append(allocation)

        by_org: dict[uuid.UUID, dict] = defaultdict(dict)
        for organization_id, grouped in org_allocations.items():
            by_org[organization_id].update(group_by_resource(grouped))
        # Open conflicts on resources with no allocations left still get auto-resolved
        for organization_id, resource_id in stale:
            by_org[organization_id].setdefault(resource_id, [])

        created = 0
        resources = 0
        for organization_id, org_resources in by_org.items():
            async with self._org_locks[organization_id]:
                for resource_id, resource_allocations in org_resources.items():
                    resources += 1
                    try:
                        created += await self._sweep_resource(
                            organization_id,
                            resource_id,
                            resource_allocations,
                            window_start,
                            window_end,
                        )
                    except Exception as e:
                        logger.error(
                            "resource_sweep_failed",
                            resource_id=str(resource_id),
                            organization_id=str(organization_id),
                            error=str(e),
                        )

        logger.info("conflict_sweep_completed", resources=resources, conflicts_created=created)
        return created

    async def _sweep_resource(
        self,
        organization_id: uuid.UUID,
        resource_id: uuid.UUID,
        allocations: list,
        window_start: date,
        window_end: date,
    ) -> int:
        day_conflicts = detect_day_conflicts(
            resource_id,
            allocations,
            window_start,
            window_end,
            capacity=self.conflict_service.capacity,
        )

        created = 0
        async with self.session_factory() as session:
            for day_conflict in day_conflicts:
                _, was_created = await self.conflict_service.upsert_conflict(
                    session,
                    organization_id,
                    resource_id,
                    day_conflict.day,
                    day_conflict.total_percentage,
                    day_conflict.severity,
                    day_conflict.affected_projects,
                )
                created += int(was_created)

            await self.conflict_service.auto_resolve_cleared(
                session,
                organization_id,
                resource_id,
                [c.day for c in day_conflicts],
                window_start,
                window_end,
            )
            await session.commit()
        return created
