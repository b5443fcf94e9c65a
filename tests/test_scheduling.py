import asyncio
from datetime import datetime, time, timezone

import pytest

from hotelrates.config import ScheduleConfig
from hotelrates.errors import ConfigError, RunFatalError, StoreConnectionError
from hotelrates.scheduling import JOB_ID, ScheduleTrigger, build_cron_trigger

# 10:00 in Asia/Jakarta
INSIDE = datetime(2024, 5, 1, 3, 0, tzinfo=timezone.utc)
# 03:00 in Asia/Jakarta
OUTSIDE = datetime(2024, 4, 30, 20, 0, tzinfo=timezone.utc)


class StubOrchestrator:
    def __init__(self, error=None, running=False):
        self.error = error
        self.is_running = running
        self.calls = 0

    async def run(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return None


def _config(**overrides):
    values = {"cron_expression": "*/5 * * * *", "run_on_start": False}
    values.update(overrides)
    return ScheduleConfig(**values)


def test_invalid_cron_raises_config_error() -> None:
    with pytest.raises(ConfigError):
        build_cron_trigger("every five minutes", "Asia/Jakarta")
    with pytest.raises(ConfigError):
        ScheduleTrigger(StubOrchestrator(), _config(cron_expression="61 * * * *"))


def test_valid_cron_uses_configured_timezone() -> None:
    trigger = build_cron_trigger("0 6 * * *", "Asia/Jakarta")
    assert str(trigger.timezone) == "Asia/Jakarta"


def test_tick_skips_outside_window() -> None:
    orchestrator = StubOrchestrator()
    trigger = ScheduleTrigger(orchestrator, _config(), clock=lambda: OUTSIDE)

    assert trigger.window_open() is False
    assert trigger.tick() is None
    assert orchestrator.calls == 0


def test_tick_respects_wrapping_window() -> None:
    trigger = ScheduleTrigger(
        StubOrchestrator(),
        _config(window_start=time(23, 0), window_end=time(6, 0)),
        clock=lambda: OUTSIDE,
    )
    assert trigger.window_open() is True


def test_tick_skips_while_run_in_progress() -> None:
    orchestrator = StubOrchestrator(running=True)
    trigger = ScheduleTrigger(orchestrator, _config(), clock=lambda: INSIDE)
    assert trigger.tick() is None
    assert orchestrator.calls == 0


def test_tick_starts_run_inside_window() -> None:
    orchestrator = StubOrchestrator()
    trigger = ScheduleTrigger(orchestrator, _config(), clock=lambda: INSIDE)

    async def scenario():
        task = trigger.tick()
        assert task is not None
        assert trigger.active_task is task
        await task
        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert orchestrator.calls == 1
    assert trigger.active_task is None


@pytest.mark.parametrize(
    "error",
    [RunFatalError("boom", target_name="A", category="Bali"), StoreConnectionError("down")],
)
def test_run_level_errors_do_not_reach_fault_handler(error) -> None:
    faults = []
    trigger = ScheduleTrigger(
        StubOrchestrator(error=error), _config(), on_fault=faults.append, clock=lambda: INSIDE
    )

    async def scenario():
        task = trigger.tick()
        await task
        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert faults == []


def test_unexpected_error_is_forwarded_to_fault_handler() -> None:
    faults = []
    error = RuntimeError("unexpected")
    trigger = ScheduleTrigger(StubOrchestrator(error=error), _config(), clock=lambda: INSIDE)
    trigger.set_fault_handler(faults.append)

    async def scenario():
        task = trigger.tick()
        await asyncio.wait({task})
        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert faults == [error]


def test_start_registers_job_and_runs_on_start() -> None:
    orchestrator = StubOrchestrator()
    trigger = ScheduleTrigger(orchestrator, _config(run_on_start=True), clock=lambda: INSIDE)

    async def scenario():
        trigger.start()
        task = trigger.active_task
        assert task is not None
        await task
        trigger.shutdown()

    asyncio.run(scenario())
    assert orchestrator.calls == 1


def test_error_inside_scheduled_job_reaches_fault_handler() -> None:
    error = RuntimeError("clock unavailable")

    def broken_clock():
        raise error

    trigger = ScheduleTrigger(StubOrchestrator(), _config(), clock=broken_clock)

    async def scenario():
        faulted = asyncio.Event()
        faults = []

        def on_fault(exc):
            faults.append(exc)
            faulted.set()

        trigger.set_fault_handler(on_fault)
        trigger.start()
        try:
            trigger._scheduler.modify_job(JOB_ID, next_run_time=datetime.now(timezone.utc))
            await asyncio.wait_for(faulted.wait(), timeout=5)
        finally:
            trigger.shutdown()
        return faults

    assert asyncio.run(scenario()) == [error]
