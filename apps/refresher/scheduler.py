"""
Who's-on refresh worker.

Rebuilds the dashboard snapshot on REFRESH_SCHEDULE_CRON, or once when RUN_ONCE
is truthy. Each refresh caches the snapshot in Redis and announces it on the
refresh channel.

    python -m apps.refresher
    RUN_ONCE=true python -m apps.refresher
"""

import asyncio
import logging
import os
import signal
import sys

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from apps.refresher.publisher import cache_snapshot, publish_refresh_event
from apps.refresher.refresh_job import run_refresh
from utils.config import settings
from utils.logging import setup_logging

setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

logger = logging.getLogger(__name__)

JOB_ID = "whoson_refresh"
TRUTHY_ENV_VALUES = ("true", "1", "yes")


def run_once_requested() -> bool:
    return os.getenv("RUN_ONCE", "false").strip().lower() in TRUTHY_ENV_VALUES


class RefreshScheduler:
    """Drives snapshot refreshes until a shutdown signal (or after one pass in run_once mode)."""

    def __init__(self, run_once: bool = False) -> None:
        self.run_once = run_once
        self.scheduler: AsyncIOScheduler | None = None
        self.shutdown_event = asyncio.Event()

    async def execute_refresh(self) -> None:
        """Fetch, cache and announce one snapshot. Failures are logged and re-raised."""
        logger.info("Refreshing who's-on snapshot (workgroup=%s)", settings.REFRESH_WORKGROUP or "all")

        try:
            snapshot = await run_refresh()
            key = await cache_snapshot(snapshot)
            await publish_refresh_event(snapshot, key)
        except Exception as e:
            logger.error("Snapshot refresh failed", extra={"error": str(e)}, exc_info=True)
            raise
        finally:
            if self.run_once:
                self.shutdown_event.set()

        metrics = snapshot.metrics
        logger.info(
            "Snapshot refreshed: key=%s, shifts=%d, clocked_in=%d, partial=%s, duration_ms=%d",
            key,
            metrics.grouped_shift_count,
            metrics.clocked_in_count,
            snapshot.partial,
            metrics.total_duration_ms,
        )

    def _request_shutdown(self, signum: int, frame: object) -> None:
        logger.info("Received signal %d, stopping refresh worker", signum)
        self.shutdown_event.set()

    def _schedule(self) -> AsyncIOScheduler:
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self.execute_refresh,
            trigger=CronTrigger.from_crontab(settings.REFRESH_SCHEDULE_CRON),
            id=JOB_ID,
            name="Who's-on snapshot refresh",
            replace_existing=True,
            max_instances=1,
        )
        scheduler.start()

        job = scheduler.get_job(JOB_ID)
        logger.info(
            "Refresh scheduled: cron=%s, next_run=%s",
            settings.REFRESH_SCHEDULE_CRON,
            getattr(job, "next_run_time", None),
        )
        return scheduler

    async def start(self) -> None:
        signal.signal(signal.SIGINT, self._request_shutdown)
        signal.signal(signal.SIGTERM, self._request_shutdown)

        if self.run_once:
            await self.execute_refresh()
            return

        self.scheduler = self._schedule()
        await self.shutdown_event.wait()

        self.scheduler.shutdown(wait=True)
        logger.info("Refresh worker stopped")


async def main() -> None:
    scheduler = RefreshScheduler(run_once=run_once_requested())

    try:
        await scheduler.start()
    except Exception as e:
        logger.error("Refresh worker failed", extra={"error": str(e)}, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
