"""Cron-driven trigger that starts collection runs inside the active window."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable

from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from hotelrates.config import ScheduleConfig
from hotelrates.errors import ConfigError, RunFatalError, StoreConnectionError
from hotelrates.logging_config import get_logger
from hotelrates.orchestrator import RunOrchestrator
from hotelrates.window import current_time, is_active, resolve_timezone

LOGGER = get_logger(__name__)

JOB_ID = "hotel-rate-run"

FaultHandler = Callable[[BaseException], None]
Clock = Callable[[], datetime | None]


def build_cron_trigger(expression: str, timezone: str) -> CronTrigger:
    """Parse a five-field crontab expression, raising ConfigError when invalid."""

    tz = resolve_timezone(timezone)
    try:
        return CronTrigger.from_crontab(expression, timezone=tz)
    except ValueError as exc:
        raise ConfigError(f"Invalid SCHEDULER_CRON {expression!r}: {exc}") from exc


class ScheduleTrigger:
    """Fires on the cron schedule and starts a run when allowed.

    A tick is skipped when the active window is closed or a run is still in
    progress; skipped ticks are not retried. Runs are started as tasks so a
    tick never waits for the run it started.
    """

    def __init__(
        self,
        orchestrator: RunOrchestrator,
        config: ScheduleConfig,
        *,
        on_fault: FaultHandler | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._config = config
        self._trigger = build_cron_trigger(config.cron_expression, config.timezone)
        self._on_fault = on_fault
        self._clock = clock or (lambda: None)
        self._scheduler: AsyncIOScheduler | None = None
        self.active_task: asyncio.Task[None] | None = None

    @property
    def trigger(self) -> CronTrigger:
        return self._trigger

    def set_fault_handler(self, handler: FaultHandler) -> None:
        self._on_fault = handler

    def window_open(self) -> bool:
        now = current_time(self._config.timezone, clock=self._clock())
        return is_active(now, self._config.window_start, self._config.window_end)

    def start(self) -> None:
        scheduler = AsyncIOScheduler(timezone=resolve_timezone(self._config.timezone))
        scheduler.add_job(
            self._fire,
            self._trigger,
            id=JOB_ID,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=60,
        )
        scheduler.add_listener(self._job_failed, EVENT_JOB_ERROR)
        scheduler.start()
        self._scheduler = scheduler
        LOGGER.info(
            "Scheduler started | cron=%s tz=%s window=%s-%s",
            self._config.cron_expression,
            self._config.timezone,
            self._config.window_start.strftime("%H:%M"),
            self._config.window_end.strftime("%H:%M"),
        )
        if self._config.run_on_start:
            self.tick()

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        try:
            self._scheduler.shutdown(wait=False)
        finally:
            self._scheduler = None
        LOGGER.info("Scheduler stopped")

    def _job_failed(self, event: JobExecutionEvent) -> None:
        # APScheduler catches job exceptions itself; route them to the fault handler.
        LOGGER.critical("Scheduled job %s failed: %r", event.job_id, event.exception)
        if self._on_fault is not None and event.exception is not None:
            self._on_fault(event.exception)

    async def _fire(self) -> None:
        # Must stay a coroutine: AsyncIOScheduler runs plain callables in a thread pool.
        self.tick()

    def tick(self) -> asyncio.Task[None] | None:
        """Start a run if the window is open and no run is active."""

        if not self.window_open():
            LOGGER.info(
                "Outside active window (%s-%s); skipping tick",
                self._config.window_start.strftime("%H:%M"),
                self._config.window_end.strftime("%H:%M"),
            )
            return None

        if self._orchestrator.is_running:
            LOGGER.warning("Previous run still in progress; skipping tick")
            return None

        task = asyncio.get_running_loop().create_task(self._run_guarded(), name="hotel-rate-run")
        task.add_done_callback(self._task_done)
        self.active_task = task
        return task

    async def _run_guarded(self) -> None:
        try:
            await self._orchestrator.run()
        except RunFatalError as exc:
            LOGGER.error("Run aborted: %s; will retry on next tick", exc)
        except StoreConnectionError as exc:
            LOGGER.error("Run skipped, store unavailable: %s; will retry on next tick", exc)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        if self.active_task is task:
            self.active_task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        LOGGER.critical("Unhandled error in collection run: %r", exc)
        if self._on_fault is not None:
            self._on_fault(exc)
