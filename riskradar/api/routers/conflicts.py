"""
Resource conflict endpoints.

- GET  /conflicts?resource_id= — unresolved conflicts
- POST /conflicts/check — pre-commit validation of a proposed allocation
- POST /conflicts/{conflict_id}/resolve — manual dismissal
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.api.deps import get_db, get_organization_id, get_user_id
from riskradar.schemas.conflict import (
    AllocationCheckResponse,
    AllocationProposal,
    ConflictListResponse,
    ConflictResponse,
    ResolveConflictRequest,
)
from riskradar.services.conflict_service import ConflictService

router = APIRouter(prefix="/api/v1/conflicts", tags=["conflicts"])


@router.get("", response_model=ConflictListResponse)
async def list_conflicts(
    resource_id: uuid.UUID | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
):
    conflicts = await ConflictService().get_conflicts(db, organization_id, resource_id=resource_id)
    return ConflictListResponse(
        conflicts=[ConflictResponse.model_validate(c) for c in conflicts],
        total=len(conflicts),
    )


@router.post("/check", response_model=AllocationCheckResponse)
async def check_allocation(
    proposal: AllocationProposal,
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
):
    """409 with the conflicting days when the proposal exceeds capacity."""
    return await ConflictService().ensure_allocation_fits(db, organization_id, proposal)


@router.post("/{conflict_id}/resolve", response_model=ConflictResponse)
async def resolve_conflict(
    conflict_id: uuid.UUID,
    body: ResolveConflictRequest | None = None,
    db: AsyncSession = Depends(get_db),
    organization_id: uuid.UUID = Depends(get_organization_id),
    user_id: str = Depends(get_user_id),
):
    conflict = await ConflictService().resolve_conflict(
        db,
        conflict_id,
        user_id,
        note=body.note if body else None,
        organization_id=organization_id,
    )
    return ConflictResponse.model_validate(conflict)
