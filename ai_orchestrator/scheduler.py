"""
Scheduled Task Module

Uses APScheduler to run the client's background maintenance: rate limit
window pruning, expired cache purging and periodic metrics aggregation.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ai_orchestrator.config import Settings
from ai_orchestrator.services.monitoring import MonitoringSink
from ai_orchestrator.services.rate_limiter import SlidingWindowRateLimiter
from ai_orchestrator.services.response_cache import ResponseCache

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """
    Maintenance Scheduler

    One scheduler per client instance; jobs never block request handling and
    stop when the owning client shuts down.
    """

    def __init__(
        self,
        settings: Settings,
        rate_limiter: SlidingWindowRateLimiter,
        cache: ResponseCache,
        monitoring: MonitoringSink,
    ):
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.monitoring = monitoring
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    async def sweep_rate_limit_windows(self) -> None:
        """
        Scheduled Window Pruning Task

        Discards rate limit events older than the longest configured horizon.
        """
        try:
            removed = self.rate_limiter.sweep()
            if removed:
                logger.debug("Rate limit sweep task completed: %s events removed", removed)
        except Exception as e:
            logger.error("Rate limit sweep task failed: %s", e, exc_info=True)

    async def purge_expired_cache(self) -> None:
        """
        Scheduled Cache Purge Task

        Removes expired and invalidated cache entries.
        """
        try:
            removed = self.cache.purge_expired()
            if removed:
                logger.info("Cache purge task completed: %s entries removed", removed)
        except Exception as e:
            logger.error("Cache purge task failed: %s", e, exc_info=True)

    async def collect_metrics(self) -> None:
        """Scheduled Metrics Aggregation Task"""
        try:
            self.monitoring.collect_metrics()
        except Exception as e:
            logger.error("Metrics collection task failed: %s", e, exc_info=True)

    def start(self) -> None:
        """
        Start Scheduled Task Scheduler

        Must be called from a running event loop. Calling it again while
        running is a no-op.
        """
        if self._scheduler is not None:
            logger.warning("Scheduler already started")
            return

        settings = self.settings
        scheduler = AsyncIOScheduler()

        scheduler.add_job(
            self.sweep_rate_limit_windows,
            trigger=IntervalTrigger(seconds=settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS),
            id="sweep_rate_limit_windows",
            name="Prune rate limit windows",
            replace_existing=True,
        )

        if settings.FEATURE_CACHING:
            scheduler.add_job(
                self.purge_expired_cache,
                trigger=IntervalTrigger(seconds=settings.CACHE_PURGE_INTERVAL_SECONDS),
                id="purge_expired_cache",
                name="Purge expired cache entries",
                replace_existing=True,
            )

        if settings.FEATURE_ANALYTICS:
            scheduler.add_job(
                self.collect_metrics,
                trigger=IntervalTrigger(seconds=settings.METRICS_INTERVAL_SECONDS),
                id="collect_metrics",
                name="Collect service metrics",
                replace_existing=True,
            )

        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Scheduler started: jobs=%s",
            ", ".join(job.id for job in scheduler.get_jobs()),
        )

    def shutdown(self) -> None:
        """
        Shutdown Scheduled Task Scheduler

        Idempotent; pending jobs are not run.
        """
        if self._scheduler is None:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler shutdown completed")

    def restart(self, settings: Settings) -> None:
        """Re-create jobs with new intervals and toggles if currently running"""
        self.settings = settings
        if self._scheduler is None:
            return
        self.shutdown()
        self.start()

    def job_ids(self) -> list[str]:
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]
