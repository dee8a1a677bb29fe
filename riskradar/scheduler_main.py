"""
Scheduler Entry Point — runs in a separate process.

Usage:
    python -m riskradar.scheduler_main

This does NOT run a web server. It runs the APScheduler
background loop for the daily risk scan and the hourly conflict sweep.
"""

import asyncio
import signal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from riskradar.config import settings
from riskradar.db.engine import create_engine_for
from riskradar.logging_config import configure_logging
from riskradar.services.scheduler import SignalScheduler

logger = structlog.get_logger(__name__)


async def main():
    """Initialize and run the scheduler."""
    configure_logging()
    logger.info("scheduler_starting", version=settings.app_version)

    # Smaller pool than the API: sweeps are sequential
    engine = create_engine_for(settings.async_database_url, pool_size=5, max_overflow=5)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    scheduler = SignalScheduler(session_factory=session_factory)

    if settings.run_initial_scan:
        logger.info("running_initial_scan")
        await scheduler.run_daily_risk_scan()
        await scheduler.run_conflict_sweep()

    scheduler.start()

    stop_event = asyncio.Event()

    def _handle_signal(signum, frame):
        logger.info("shutdown_signal_received", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    logger.info("scheduler_running", msg="Waiting for jobs... Ctrl+C to stop.")

    # Block until shutdown signal
    await stop_event.wait()

    scheduler.stop()
    await engine.dispose()
    logger.info("scheduler_shutdown_complete")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
