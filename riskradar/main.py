"""
RiskRadar — FastAPI Application.

Run: uvicorn riskradar.main:app --host 0.0.0.0 --port 8002

The API reads persisted signals and conflicts, triggers on-demand project
scans and validates proposed allocations. Periodic sweeps run in the
scheduler process (python -m riskradar.scheduler_main), not here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from riskradar import __version__
from riskradar.api.routers.conflicts import router as conflicts_router
from riskradar.api.routers.projects import router as projects_router
from riskradar.api.routers.signals import router as signals_router
from riskradar.api.routers.thresholds import router as thresholds_router
from riskradar.config import settings
from riskradar.db.engine import close_db, init_db
from riskradar.logging_config import configure_logging
from riskradar.middleware.error_handler import ErrorHandlerMiddleware
from riskradar.middleware.request_context import RequestContextMiddleware
from riskradar.middleware.tenant import TenantMiddleware

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown."""
    configure_logging()
    logger.info("riskradar_starting", version=settings.app_version)
    await init_db()
    yield
    await close_db()
    logger.info("riskradar_shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Resource overallocation and project risk detection.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # ── Middleware (last added = outermost) ──
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(TenantMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routes ──
    app.include_router(signals_router)
    app.include_router(projects_router)
    app.include_router(conflicts_router)
    app.include_router(thresholds_router)

    @app.get("/health", tags=["health"])
    async def health():
        """Liveness probe; does not check dependencies."""
        return {
            "status": "ok",
            "version": settings.app_version,
            "service": "riskradar",
        }

    return app


app = create_app()
