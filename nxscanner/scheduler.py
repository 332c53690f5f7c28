"""Background expiry of day-scoped scan records."""

from __future__ import annotations

import asyncio
import logging

from .config import LedgerConfig
from .db import ScanLedger

logger = logging.getLogger(__name__)


class ExpiryScheduler:
    """Periodically evicts ledger rows whose ``expires_at`` has passed.

    Uses APScheduler's asyncio scheduler, so ``start()`` must be called from
    inside a running event loop.
    """

    def __init__(self, ledger: ScanLedger, config: LedgerConfig) -> None:
        """
        Raises:
            ImportError: If apscheduler is not installed.
        """
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.interval import IntervalTrigger
        except ImportError:
            raise ImportError(
                "apscheduler is required: pip install 'apscheduler>=3.10,<4'"
            )

        self._ledger = ledger
        self._config = config
        self._scheduler = AsyncIOScheduler()
        self._IntervalTrigger = IntervalTrigger
        self._running = False

    def setup_jobs(self) -> None:
        """Register the expiry sweep unless it is disabled in config."""
        interval = self._config.purge_interval_seconds
        if interval <= 0:
            logger.info("Expiry sweep disabled")
            return

        self._scheduler.add_job(
            self._job_purge_expired,
            trigger=self._IntervalTrigger(seconds=interval),
            id="purge_expired",
            name="Evict expired scans",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        logger.info("Expiry sweep registered: every %ds", interval)

    def start(self) -> None:
        self.setup_jobs()
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler started")

    def stop(self) -> None:
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            # Pending jobs (scheduler not started) have no next_run_time yet
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(next_run) if next_run else None,
            })
        return jobs

    async def _job_purge_expired(self) -> None:
        try:
            count = await asyncio.to_thread(self._ledger.purge_expired)
            if count > 0:
                logger.info("Evicted %d expired scans", count)
        except Exception:
            logger.exception("Expiry sweep failed")
