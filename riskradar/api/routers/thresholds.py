"""Per-organization risk threshold endpoints."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.api.deps import get_db, get_organization_id, get_user_id
from riskradar.schemas.thresholds import RiskThresholds, ThresholdOverrideRequest
from riskradar.services.threshold_service import ThresholdService

router = APIRouter(prefix="/api/v1/thresholds", tags=["thresholds"])


@router.get("", response_model=RiskThresholds)
async def get_thresholds(
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
):
    return await ThresholdService().resolve(db, organization_id)


@router.put("", response_model=RiskThresholds)
async def set_thresholds(
    body: ThresholdOverrideRequest,
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
    user_id: str = Depends(get_user_id),
):
    return await ThresholdService().set_overrides(
        db, organization_id, body.as_overrides(), user_id=user_id
    )
