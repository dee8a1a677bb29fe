"""
Project risk endpoints.

- GET  /projects/{project_id}/risk-profile
- POST /projects/{project_id}/scan — on-demand re-scan; persists and returns signals
"""

import uuid

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.api.deps import get_db, get_organization_id
from riskradar.db import queries as db_queries
from riskradar.exceptions import ProjectNotFoundError
from riskradar.schemas.signal import ProjectScanResponse, RiskProfile, RiskSignalResponse
from riskradar.services.scanner import RiskScanner
from riskradar.services.signal_service import SignalService
from riskradar.services.threshold_service import ThresholdService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.get("/{project_id}/risk-profile", response_model=RiskProfile)
async def risk_profile(
    project_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
):
    return await SignalService().get_risk_profile(db, project_id, organization_id=organization_id)


@router.post("/{project_id}/scan", response_model=ProjectScanResponse)
async def scan_project(
    project_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
):
    project = await db_queries.get_project(db, project_id)
    if project is None or project.organization_id != organization_id:
        raise ProjectNotFoundError(str(project_id))

    thresholds = await ThresholdService().resolve(db, organization_id)
    findings = await RiskScanner().scan_project(db, project_id, organization_id, thresholds)
    signals = await SignalService().create_signals(db, organization_id, findings)

    logger.info("on_demand_scan_completed", project_id=str(project_id), signals=len(signals))
    return ProjectScanResponse(
        project_id=project_id,
        findings=len(findings),
        signals=[RiskSignalResponse.model_validate(s) for s in signals],
    )
