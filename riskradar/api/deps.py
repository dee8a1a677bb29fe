"""
FastAPI dependencies: DB session and tenant context.

Tenant isolation is explicit: every service call receives organization_id
taken from the verified token, and queries filter on it.
"""

import uuid
from typing import AsyncGenerator

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from riskradar.db.engine import get_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async DB session; commit on success, roll back on error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_organization_id(request: Request) -> uuid.UUID:
    """organization_id from request state (set by TenantMiddleware)."""
    organization_id = getattr(request.state, "organization_id", None)
    if not organization_id:
        raise HTTPException(status_code=401, detail="Missing tenant context")
    try:
        return uuid.UUID(str(organization_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid tenant context")


def get_user_id(request: Request) -> str:
    """user_id from request state (set by TenantMiddleware)."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing user context")
    return str(user_id)
