"""
Daily background job that downgrades expired PREMIUM memberships.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from config.settings import settings

logger = logging.getLogger(__name__)

_task: Optional[asyncio.Task] = None


def seconds_until_next_run(now: datetime, hour: int) -> float:
    """Seconds from `now` until the next occurrence of hour:00:00"""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def run_membership_check() -> int:
    """Run one expiry sweep in its own session"""
    from database import AsyncSessionLocal
    from services.payments_service import PaymentsService

    async with AsyncSessionLocal() as session:
        try:
            count = await PaymentsService(session).check_expired_memberships()
            await session.commit()
            return count
        except Exception:
            await session.rollback()
            raise


async def _loop():
    while True:
        delay = seconds_until_next_run(datetime.now(), settings.membership_check_hour)
        logger.info(f"Next membership expiry check in {delay:.0f}s")
        await asyncio.sleep(delay)
        try:
            await run_membership_check()
        except Exception as e:
            logger.error(f"Membership expiry check failed: {e}", exc_info=True)


def start_membership_expiry_job() -> asyncio.Task:
    global _task
    if _task is None or _task.done():
        _task = asyncio.create_task(_loop())
    return _task


async def stop_membership_expiry_job() -> None:
    global _task
    if _task is not None:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
        _task = None
