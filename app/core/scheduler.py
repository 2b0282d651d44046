"""
app/core/scheduler.py

Purpose: Background job scheduling

- AsyncIOScheduler bound to the application's event loop
- Registers the balance monitoring tick on a cron schedule
- Overlapping ticks are coalesced instead of running concurrently
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.services.monitor_service import BalanceMonitor
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

MONITOR_JOB_ID = "balance_monitor"


def create_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler(timezone="UTC")


def register_balance_monitor(
    scheduler: AsyncIOScheduler,
    monitor: BalanceMonitor,
    cron: Optional[str] = None
) -> None:
    """
    Registers the monitoring job with the scheduler.

    Args:
        scheduler: Scheduler to add the job to
        monitor: Monitor whose pass runs on every tick
        cron: Crontab expression (defaults to MONITOR_CRON)
    """
    expression = cron or settings.MONITOR_CRON
    scheduler.add_job(
        monitor.run_monitoring_pass,
        CronTrigger.from_crontab(expression, timezone="UTC"),
        id=MONITOR_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True
    )
    logger.info(f"⏰ Registered balance monitor job ({expression})")
