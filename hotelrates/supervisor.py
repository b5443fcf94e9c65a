"""Process-lifetime supervision: signals, unhandled errors and emergency stop."""

from __future__ import annotations

import asyncio
import signal
from typing import Any, Protocol

from hotelrates.logging_config import get_logger
from hotelrates.orchestrator import RunOrchestrator
from hotelrates.scheduling import ScheduleTrigger

LOGGER = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1

_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ClosableStore(Protocol):
    def close(self) -> None: ...


class ProcessSupervisor:
    """Single owner of shutdown for the running process.

    Built once at startup and handed to :meth:`install`, which registers the
    signal handlers and the event loop exception handler against this
    instance. A termination signal requests a stop with exit code 0; an
    unhandled error requests one with exit code 1. :meth:`wait` returns the
    exit code after the emergency stop has released the browser and closed
    the store.
    """

    def __init__(
        self,
        orchestrator: RunOrchestrator,
        store: ClosableStore,
        *,
        trigger: ScheduleTrigger | None = None,
        cleanup_timeout: float = 15.0,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._trigger = trigger
        self._cleanup_timeout = cleanup_timeout
        self._stop_requested = asyncio.Event()
        self._stopped = False
        self.exit_code = EXIT_OK
        self.reason: str | None = None

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        for signum in _HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(signum, self.handle_signal, signum)
            except (NotImplementedError, RuntimeError):
                # Windows event loops do not support add_signal_handler.
                signal.signal(
                    signum,
                    lambda num, _frame: loop.call_soon_threadsafe(self.handle_signal, num),
                )
        loop.set_exception_handler(self._handle_loop_exception)
        if self._trigger is not None:
            self._trigger.set_fault_handler(self.handle_fault)
        LOGGER.debug("Supervisor installed")

    def handle_signal(self, signum: int) -> None:
        name = signal.Signals(signum).name
        LOGGER.warning("Received %s; stopping scheduler", name)
        self.request_stop(EXIT_OK, f"signal {name}")

    def handle_fault(self, exc: BaseException) -> None:
        LOGGER.critical(
            "Unhandled error; emergency stop",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        self.request_stop(EXIT_ERROR, f"unhandled error: {exc!r}")

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        if isinstance(exc, BaseException):
            self.handle_fault(exc)
            return
        LOGGER.critical("Unhandled event loop error: %s", context.get("message"))
        self.request_stop(EXIT_ERROR, str(context.get("message") or "event loop error"))

    def request_stop(self, exit_code: int, reason: str) -> None:
        # An error always wins over a clean signal that arrived first.
        self.exit_code = max(self.exit_code, exit_code)
        if self.reason is None or exit_code == EXIT_ERROR:
            self.reason = reason
        self._stop_requested.set()

    async def wait(self) -> int:
        await self._stop_requested.wait()
        await self.emergency_stop()
        return self.exit_code

    async def emergency_stop(self) -> None:
        """Stop scheduling, abandon the active run and release resources."""

        if self._stopped:
            return
        self._stopped = True
        LOGGER.warning("Stopping: %s", self.reason or "requested")

        task = None
        if self._trigger is not None:
            task = self._trigger.active_task
            try:
                self._trigger.shutdown()
            except Exception as exc:
                LOGGER.warning("Scheduler shutdown failed: %s", exc)

        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task}, timeout=self._cleanup_timeout)

        try:
            await asyncio.wait_for(self._orchestrator.collector.cleanup(), self._cleanup_timeout)
        except Exception as exc:
            LOGGER.warning("Collector cleanup failed during stop: %s", exc)

        try:
            self._store.close()
        except Exception as exc:
            LOGGER.warning("Store close failed during stop: %s", exc)

        LOGGER.info("Shutdown complete (exit code %d)", self.exit_code)
