"""APScheduler wrapper that keeps the cache warm between reads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..logging_conf import configure_logging

WARMUP_JOB_ID = "newsgate::warmup"


class WarmupScheduler:
    """Run a refresh coroutine on a fixed interval inside the running loop.

    Refreshes go through the cache manager, so a tick that lands while a
    cycle is already running joins it instead of starting a second one.
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self.scheduler = scheduler or AsyncIOScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_warmup(
        self,
        refresh: Callable[[], Awaitable[object]],
        interval_seconds: float,
        *,
        run_immediately: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        trigger = IntervalTrigger(seconds=float(interval_seconds))
        extra = {"next_run_time": datetime.now(timezone.utc)} if run_immediately else {}
        self.scheduler.add_job(
            refresh,
            trigger=trigger,
            id=WARMUP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **extra,
        )
        self.logger.info("job_scheduled", job=WARMUP_JOB_ID, interval=interval_seconds)

    def remove_warmup(self) -> None:
        if self.scheduler.get_job(WARMUP_JOB_ID) is None:
            self.logger.warning("job_remove_failed", job=WARMUP_JOB_ID)
            return
        self.scheduler.remove_job(WARMUP_JOB_ID)

    def list_jobs(self) -> list[dict]:
        return [
            {
                "id": job.id,
                "next_run_time": getattr(job, "next_run_time", None),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]


__all__ = ["WARMUP_JOB_ID", "WarmupScheduler"]
