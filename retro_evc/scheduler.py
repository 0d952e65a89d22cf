"""
Scheduler module for the Retro EVC weather backend.

Runs every feed on its own fixed interval:
- Each job runs once immediately, then every interval until exit
- Jobs run on a worker pool, so a slow feed never delays another
- A tick that overruns its interval does not block the next one; the
  next tick simply starts another fetch alongside it
"""

import logging
from datetime import datetime, timezone
from dataclasses import asdict
from typing import Callable, Dict, List, Optional, Protocol

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .feeds import DataQuality, FetchResult

logger = logging.getLogger(__name__)

MAX_WORKERS = 10
MAX_OVERLAPPING_TICKS = 3


class Tickable(Protocol):
    """Anything the scheduler can run: a named job with an interval."""
    name: str
    interval_seconds: float

    def tick(self) -> FetchResult:
        ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FeedScheduler:
    """
    Periodic runner for feed jobs.

    The APScheduler instance and the clock are injectable; tests pass a
    recording scheduler and never start real timers.
    """

    def __init__(
        self,
        scheduler: Optional[BaseScheduler] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.scheduler = scheduler or BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(MAX_WORKERS)},
            timezone=timezone.utc,
        )
        self._clock = clock
        self._is_running = False
        self._jobs: Dict[str, Tickable] = {}
        self._last_results: Dict[str, FetchResult] = {}

    def schedule(self, job: Tickable, interval_seconds: Optional[float] = None) -> None:
        """Run a job now and then every interval_seconds."""
        interval = interval_seconds or job.interval_seconds
        self._jobs[job.name] = job

        self.scheduler.add_job(
            self.run_job,
            trigger=IntervalTrigger(seconds=interval),
            args=[job],
            id=f"{job.name}_job",
            name=f"{job.name} feed",
            next_run_time=self._clock(),
            max_instances=MAX_OVERLAPPING_TICKS,
            coalesce=False,
            misfire_grace_time=None,
            replace_existing=True,
        )
        logger.info(f"Scheduled {job.name} every {interval:g}s")

    def run_job(self, job: Tickable) -> FetchResult:
        """Run one tick; nothing a tick raises escapes to the scheduler."""
        try:
            result = job.tick()
        except Exception as e:
            logger.exception(f"{job.name} tick failed: {e}")
            result = FetchResult(
                feed=job.name,
                success=False,
                documents=0,
                failed_documents=0,
                records_updated=0,
                fetch_time=self._clock().isoformat(),
                duration_ms=0,
                data_quality=DataQuality.UNAVAILABLE.value,
                errors=[str(e)],
            )
        self._last_results[job.name] = result
        return result

    def start(self) -> None:
        """Start the scheduler."""
        if self._is_running:
            logger.warning("Scheduler already running")
            return
        self.scheduler.start()
        self._is_running = True
        logger.info(f"Scheduler started with {len(self._jobs)} feeds")

    def stop(self) -> None:
        """Stop the scheduler."""
        if not self._is_running:
            return
        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("Scheduler stopped")

    def get_last_results(self) -> List[FetchResult]:
        """Get results from last tick of every feed."""
        return list(self._last_results.values())

    def get_scheduler_status(self) -> dict:
        """Get scheduler status information."""
        feeds = {}
        for name, job in self._jobs.items():
            scheduled = self.scheduler.get_job(f"{name}_job")
            next_run = getattr(scheduled, "next_run_time", None) if scheduled else None
            last = self._last_results.get(name)
            feeds[name] = {
                "interval_seconds": job.interval_seconds,
                "next_run": next_run.isoformat() if next_run else None,
                "last_result": asdict(last) if last else None,
            }
        return {
            "is_running": self._is_running,
            "feeds": feeds,
        }

    @property
    def is_running(self) -> bool:
        return self._is_running
