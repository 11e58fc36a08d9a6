"""Cron-driven job dispatcher.

Expressions have six fields, ``second minute hour day month day_of_week``,
using APScheduler's ``CronTrigger`` field grammar (``*/5``, ``1-5``,
``mon-fri``, ...) and are evaluated in one configured time zone. Each due
job runs as its own task; the dispatch loop never awaits job bodies, so a
slow job cannot delay the others. A job still running when it comes due
again is skipped for that occurrence.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from apscheduler.triggers.cron import CronTrigger

from stockcrawler.errors import CacheLockError, SchedulerConfigError
from stockcrawler.notifier import BaseNotifier

logger = logging.getLogger(__name__)

CRON_FIELDS = ("second", "minute", "hour", "day", "month", "day_of_week")


def parse_cron(cron_expr: str, tz: tzinfo) -> CronTrigger:
    parts = cron_expr.split()
    if len(parts) != len(CRON_FIELDS):
        raise SchedulerConfigError(
            f"Cron expression '{cron_expr}' must have {len(CRON_FIELDS)} fields "
            f"({' '.join(CRON_FIELDS)})"
        )
    try:
        return CronTrigger(timezone=tz, **dict(zip(CRON_FIELDS, parts)))
    except ValueError as exc:
        raise SchedulerConfigError(f"Invalid cron expression '{cron_expr}': {exc}") from exc


@dataclass
class ScheduledJob:
    cron_expr: str
    task_id: str
    task: Callable[[], Awaitable[Any]]
    trigger: CronTrigger
    next_fire: datetime | None = None
    running: asyncio.Task | None = field(default=None, repr=False)

    @property
    def is_running(self) -> bool:
        return self.running is not None and not self.running.done()


class Scheduler:
    """Dispatches registered jobs at their cron times.

    Args:
        tz: IANA zone name or tzinfo all expressions are evaluated in.
        tick_seconds: Dispatch interval; must not exceed one second.
        notifier: Receives the one-time startup message.
        clock: Returns the current aware datetime (injectable for tests).
        drain_timeout: Seconds ``run`` waits for in-flight jobs after a stop
            request before cancelling them.
    """

    def __init__(
        self,
        tz: str | tzinfo = "Asia/Taipei",
        tick_seconds: float = 0.5,
        notifier: BaseNotifier | None = None,
        clock: Callable[[], datetime] | None = None,
        drain_timeout: float = 300.0,
    ) -> None:
        if not 0 < tick_seconds <= 1:
            raise SchedulerConfigError(f"tick_seconds must be in (0, 1], got {tick_seconds}")
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self.tick_seconds = tick_seconds
        self.notifier = notifier
        self.drain_timeout = drain_timeout
        self._clock = clock or (lambda: datetime.now(self.tz))
        self._jobs: dict[str, ScheduledJob] = {}
        self._stop = asyncio.Event()
        self._fatal: BaseException | None = None

    @property
    def jobs(self) -> list[ScheduledJob]:
        return list(self._jobs.values())

    def register(
        self,
        cron_expr: str,
        task_id: str,
        task: Callable[[], Awaitable[Any]],
    ) -> ScheduledJob:
        """Add a job; raises ``SchedulerConfigError`` on a bad expression or duplicate id."""
        if task_id in self._jobs:
            raise SchedulerConfigError(f"Job '{task_id}' is already registered")
        trigger = parse_cron(cron_expr, self.tz)
        job = ScheduledJob(cron_expr, task_id, task, trigger)
        job.next_fire = trigger.get_next_fire_time(None, self._now())
        self._jobs[task_id] = job
        logger.info("Registered job %s (%s), next run at %s", task_id, cron_expr, job.next_fire)
        return job

    # ---- dispatch ----

    def _now(self, now: datetime | None = None) -> datetime:
        now = now or self._clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def tick(self, now: datetime | None = None) -> list[str]:
        """Start every job due at ``now``; returns the ids started."""
        now = self._now(now)
        started = []
        for job in self._jobs.values():
            if job.next_fire is None or job.next_fire > now:
                continue
            fired = job.next_fire
            # occurrences missed while the loop was busy collapse into this one
            job.next_fire = job.trigger.get_next_fire_time(
                None, max(now, fired + timedelta(microseconds=1))
            )
            if job.is_running:
                logger.warning("Job %s is still running; skipping run due at %s", job.task_id, fired)
                continue
            job.running = asyncio.create_task(self._run_job(job), name=job.task_id)
            started.append(job.task_id)
        return started

    async def _run_job(self, job: ScheduledJob) -> None:
        logger.info("Job %s started", job.task_id)
        try:
            await job.task()
        except CacheLockError as exc:
            if exc.fatal:
                logger.critical("Job %s hit a poisoned cache; stopping: %s", job.task_id, exc)
                self._fatal = self._fatal or exc
                self.request_stop()
                return
            logger.error("Job %s failed: %s", job.task_id, exc)
        except asyncio.CancelledError:
            logger.warning("Job %s cancelled", job.task_id)
            raise
        except Exception:
            logger.exception("Job %s failed", job.task_id)
        else:
            logger.info("Job %s finished", job.task_id)

    # ---- lifecycle ----

    def request_stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        """Dispatch until ``request_stop``; drains in-flight jobs before returning.

        Re-raises a fatal ``CacheLockError`` raised by any job.
        """
        now = self._now()
        for job in self._jobs.values():
            job.next_fire = job.trigger.get_next_fire_time(None, now)
        logger.info("Scheduler armed with %d job(s)", len(self._jobs))
        await self._announce_start()

        while not self._stop.is_set():
            self.tick()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.tick_seconds)
            except asyncio.TimeoutError:
                pass

        await self._drain()
        if self._fatal is not None:
            raise self._fatal

    async def _announce_start(self) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.send(f"stockcrawler started with {len(self._jobs)} job(s)")
        except Exception as exc:
            logger.error("Failed to send startup notification: %s", exc)

    async def _drain(self) -> None:
        in_flight = [job.running for job in self._jobs.values() if job.is_running]
        if not in_flight:
            return
        logger.info("Waiting up to %ss for %d running job(s)", self.drain_timeout, len(in_flight))
        _, pending = await asyncio.wait(in_flight, timeout=self.drain_timeout)
        for task in pending:
            logger.warning("Cancelling job %s", task.get_name())
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
