# src/hubbot/services/plugin/scheduler.py
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from inspect import isawaitable
from typing import Awaitable, Callable, List, Optional, Set

from croniter import croniter

from hubbot.domain.capability import Task
from hubbot.services.errors import CapabilityDefinitionError, ScheduleRunError

log = logging.getLogger("hubbot.plugin.scheduler")


@dataclass(eq=False)
class ScheduledJob:
    task: Task
    runs: int = 0
    failures: int = 0
    last_error: Optional[ScheduleRunError] = None
    runner: Optional[asyncio.Task] = None
    firings: Set[asyncio.Task] = field(default_factory=set)

    @property
    def active(self) -> bool:
        return self.runner is not None and not self.runner.done()


class TaskScheduler:
    """
    Runs cron-scheduled tasks on the current event loop.
    A failing run is logged and counted; the schedule keeps firing.
    """

    def __init__(
        self,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._sleep = sleep
        self._now = now
        self._jobs: List[ScheduledJob] = []

    @property
    def jobs(self) -> List[ScheduledJob]:
        return list(self._jobs)

    def prepare(self, task: Task) -> ScheduledJob:
        """Validate ``task`` and build its job without starting it."""
        if not croniter.is_valid(task.cron):
            pkg = task.pkg.name if task.pkg is not None else None
            raise CapabilityDefinitionError(f"task {task.name!r}: invalid cron expression {task.cron!r}", package=pkg)
        return ScheduledJob(task=task)

    def start(self, job: ScheduledJob) -> ScheduledJob:
        if job.runner is not None:
            return job
        job.runner = asyncio.get_running_loop().create_task(self._loop(job), name=f"hubbot-task:{job.task.name}")
        self._jobs.append(job)
        return job

    def schedule(self, task: Task) -> ScheduledJob:
        return self.start(self.prepare(task))

    async def _loop(self, job: ScheduledJob) -> None:
        schedule = croniter(job.task.cron, self._now())
        while True:
            nxt = schedule.get_next(datetime)
            delay = max(0.0, (nxt - self._now()).total_seconds())
            await self._sleep(delay)
            firing = asyncio.create_task(self._fire(job))
            job.firings.add(firing)
            firing.add_done_callback(job.firings.discard)

    async def _fire(self, job: ScheduledJob) -> None:
        task = job.task
        if task.log:
            log.info("task.run", extra={"extra": {"task": task.name}})
        try:
            res = task.handler()
            if isawaitable(res):
                await res
        except Exception as exc:
            job.failures += 1
            pkg = task.pkg.name if task.pkg is not None else None
            err = ScheduleRunError(f"task {task.name!r} failed: {exc}", package=pkg)
            err.__cause__ = exc
            job.last_error = err
            log.error("task.failed", exc_info=exc, extra={"extra": {"task": task.name, "package": pkg}})
        finally:
            job.runs += 1

    def cancel(self, job: ScheduledJob) -> None:
        if job.runner is not None:
            job.runner.cancel()
        for firing in list(job.firings):
            firing.cancel()
        if job in self._jobs:
            self._jobs.remove(job)

    def cancel_all(self) -> None:
        for job in list(self._jobs):
            self.cancel(job)
