"""
Risk Signal API Endpoints.

Provides:
- GET  /signals — active (unacknowledged) signals, newest first
- GET  /signals/stats — counts by status, severity and type
- POST /signals/{signal_id}/acknowledge
- POST /signals/{signal_id}/resolve
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.api.deps import get_db, get_organization_id, get_user_id
from riskradar.schemas.signal import (
    OrganizationRiskStats,
    RiskSignalListResponse,
    RiskSignalResponse,
)
from riskradar.services.signal_service import SignalService

router = APIRouter(prefix="/api/v1/signals", tags=["signals"])


@router.get("", response_model=RiskSignalListResponse)
async def list_active_signals(
    project_id: uuid.UUID | None = Query(default=None),
    signal_type: str | None = Query(default=None),
    severity: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
):
    signals, total = await SignalService().get_active_signals(
        db,
        organization_id,
        project_id=project_id,
        signal_type=signal_type,
        severity=severity,
        offset=offset,
        limit=limit,
    )
    return RiskSignalListResponse(
        signals=[RiskSignalResponse.model_validate(s) for s in signals],
        total=total,
    )


@router.get("/stats", response_model=OrganizationRiskStats)
async def signal_stats(
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
):
    return await SignalService().get_organization_stats(db, organization_id)


@router.post("/{signal_id}/acknowledge", response_model=RiskSignalResponse)
async def acknowledge_signal(
    signal_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
    user_id: str = Depends(get_user_id),
):
    signal = await SignalService().acknowledge_signal(
        db, signal_id, user_id, organization_id=organization_id
    )
    return RiskSignalResponse.model_validate(signal)


@router.post("/{signal_id}/resolve", response_model=RiskSignalResponse)
async def resolve_signal(
    signal_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
    user_id: str = Depends(get_user_id),
):
    signal = await SignalService().resolve_signal(
        db, signal_id, user_id, organization_id=organization_id
    )
    return RiskSignalResponse.model_validate(signal)
