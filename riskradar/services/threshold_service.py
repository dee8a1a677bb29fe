"""Per-organization threshold resolution: settings defaults + stored overrides."""

import uuid
from typing import Any, Mapping, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.db import queries as db_queries
from riskradar.db.models import RiskThresholdOverride, utcnow
from riskradar.exceptions import InvalidThresholdError
from riskradar.schemas.thresholds import RiskThresholds

logger = structlog.get_logger(__name__)


class ThresholdService:
    def __init__(self, defaults: Optional[RiskThresholds] = None):
        self.defaults = defaults or RiskThresholds.from_settings()

    async def resolve(self, session: AsyncSession, organization_id: uuid.UUID) -> RiskThresholds:
        """
        Thresholds for one organization.

        A malformed stored override is logged and ignored; the sweep runs on
        defaults instead of failing.
        """
        override = await db_queries.get_threshold_override(session, organization_id)
        if override is None or not override.overrides:
            return self.defaults

        try:
            return self.defaults.with_overrides(override.overrides)
        except InvalidThresholdError as e:
            logger.warning(
                "invalid_threshold_override",
                organization_id=str(organization_id),
                error=e.message,
                details=e.details,
            )
            return self.defaults

    async def set_overrides(
        self,
        session: AsyncSession,
        organization_id: uuid.UUID,
        overrides: Mapping[str, Any],
        user_id: Optional[str] = None,
    ) -> RiskThresholds:
        """Validate and store overrides; raises InvalidThresholdError when malformed."""
        resolved = self.defaults.with_overrides(overrides)

        row = await db_queries.get_threshold_override(session, organization_id)
        if row is None:
            row = RiskThresholdOverride(organization_id=organization_id)
            session.add(row)
        row.overrides = dict(overrides)
        row.updated_by = user_id
        row.updated_at = utcnow()
        await session.flush()

        logger.info(
            "threshold_overrides_updated",
            organization_id=str(organization_id),
            fields=sorted(overrides),
        )
        return resolved
