"""Background task keeping supplier views in line with the booking store."""

import asyncio
import logging
from datetime import UTC, datetime

from boda_backend.config import settings
from boda_backend.database import get_db_context
from boda_backend.services.projection_service import projection_service

logger = logging.getLogger(__name__)

# Flag to stop the background task
_stop_drift_check = False


async def run_projection_drift_check(trigger: str = "scheduled") -> int | None:
    """Rebuild every supplier view whose counts drifted from the store.

    Returns:
        Number of views repaired, or None if the check failed
    """
    started_at = datetime.now(UTC)
    logger.info(f"Starting projection drift check (trigger: {trigger})")

    try:
        async with get_db_context() as db:
            repaired = await projection_service.repair_drift(db)
    except Exception as e:
        logger.error(f"Projection drift check failed: {e}")
        return None

    duration_ms = int((datetime.now(UTC) - started_at).total_seconds() * 1000)
    logger.info(
        f"Projection drift check completed: repaired={len(repaired)}, duration={duration_ms}ms"
    )
    return len(repaired)


async def start_drift_check_scheduler() -> None:
    """Run the drift check on startup and then every configured interval."""
    global _stop_drift_check
    _stop_drift_check = False

    interval = settings.projection_drift_check_interval_seconds
    logger.info(f"Projection drift check scheduler started (every {interval}s)")

    trigger = "startup"
    while not _stop_drift_check:
        await run_projection_drift_check(trigger=trigger)
        trigger = "scheduled"

        # Sleep in short steps so a stop request is honoured quickly
        for _ in range(max(interval, 1)):
            if _stop_drift_check:
                break
            await asyncio.sleep(1)

    logger.info("Projection drift check scheduler stopped")


def stop_drift_check_scheduler() -> None:
    """Signal the drift check scheduler to stop."""
    global _stop_drift_check
    _stop_drift_check = True
