"""The collection run state machine."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Protocol, Sequence

from hotelrates.classify import KNOWN_CATEGORIES, group_targets
from hotelrates.collector import Collector
from hotelrates.config import ScheduleConfig
from hotelrates.errors import RunFatalError, StoreConnectionError
from hotelrates.logging_config import get_logger
from hotelrates.models import RunRecord, Target
from hotelrates.monitoring import MetricsEmitter, ping_healthcheck
from hotelrates.summary import ResultAggregator, RunSummary, render_summary

LOGGER = get_logger(__name__)

Sleeper = Callable[[float], Awaitable[object]]


class TargetSource(Protocol):
    def check_connection(self) -> bool: ...

    def reconnect(self) -> bool: ...

    def get_targets(self, max_count: int | None = None) -> list[Target]: ...


class RunOrchestrator:
    """Runs one collection pass at a time over every hotel in the store.

    A run is either idle or running. ``run()`` called while a run is active
    returns immediately without touching the store or the collector. Hotels
    are grouped by city and collected sequentially, pausing between hotels
    and between cities. A hotel with no price is recorded as a failure and
    the run moves on; an exception from the collector aborts the rest of the
    run after logging a partial summary.
    """

    def __init__(
        self,
        store: TargetSource,
        collector: Collector,
        config: ScheduleConfig,
        *,
        categories: Sequence[str] = KNOWN_CATEGORIES,
        metrics: MetricsEmitter | None = None,
        healthcheck_url: str | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._store = store
        self._collector = collector
        self._config = config
        self._categories = tuple(categories)
        self._metrics = metrics or MetricsEmitter.in_directory(None)
        self._healthcheck_url = healthcheck_url
        self._sleep = sleep
        self._running = False
        self.current_run: RunRecord | None = None
        self.last_run: RunRecord | None = None
        self.last_summary: RunSummary | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def collector(self) -> Collector:
        return self._collector

    async def run(self) -> RunRecord | None:
        """Execute one run; returns its record, or None when skipped."""

        if self._running:
            LOGGER.warning("Collection run already in progress; skipping")
            return None

        self._running = True
        aggregator = ResultAggregator()
        record = aggregator.record
        self.current_run = record
        run_id = record.started_at.strftime("%Y%m%dT%H%M%S")
        self._metrics.emit("run_started", run_id=run_id)
        LOGGER.info("Starting collection run", extra={"run_id": run_id})

        try:
            self._ensure_store(run_id)

            targets = self._store.get_targets(self._config.max_targets_per_run)
            if not targets:
                LOGGER.info("No hotels in store; nothing to do", extra={"run_id": run_id})
                self._metrics.emit("run_finished", run_id=run_id, total=0)
                return record

            aggregator.set_total(len(targets))
            grouped = group_targets(targets, self._categories)
            LOGGER.info(
                "Collecting %d hotel(s) across %d city group(s): %s",
                len(targets),
                len(grouped),
                ", ".join(grouped),
                extra={"run_id": run_id},
            )

            await self._collect_groups(grouped, aggregator, run_id)

            summary = aggregator.summarize()
            self._emit_summary(summary)
            self._metrics.emit(
                "run_finished",
                run_id=run_id,
                total=summary.total,
                success=summary.success,
                failure=summary.failure,
            )
            await asyncio.to_thread(ping_healthcheck, self._healthcheck_url)
            return record
        finally:
            self._running = False
            try:
                await self._collector.cleanup()
            except Exception as exc:  # cleanup must not mask the run outcome
                LOGGER.warning("Collector cleanup failed: %s", exc, extra={"run_id": run_id})
            record.finalize()
            self.last_run = record
            self.current_run = None
            LOGGER.info(
                "Run ended after %.2fs | success=%d failure=%d",
                record.duration_seconds or 0.0,
                record.success_count,
                record.failure_count,
                extra={"run_id": run_id},
            )

    def _ensure_store(self, run_id: str) -> None:
        if self._store.check_connection():
            return
        LOGGER.warning("Store unreachable at run start; reconnecting once", extra={"run_id": run_id})
        if self._store.reconnect():
            return
        self._metrics.emit("run_aborted", run_id=run_id, reason="store_unreachable")
        raise StoreConnectionError("store unreachable after one reconnect attempt")

    async def _collect_groups(
        self,
        grouped: dict[str, list[Target]],
        aggregator: ResultAggregator,
        run_id: str,
    ) -> None:
        last_group = len(grouped) - 1
        for group_index, (category, targets) in enumerate(grouped.items()):
            aggregator.start_category(category)
            LOGGER.info(
                "City %s: %d hotel(s)",
                category,
                len(targets),
                extra={"run_id": run_id, "category": category},
            )

            for index, target in enumerate(targets):
                await self._collect_one(target, category, aggregator, run_id, index, len(targets))
                if index < len(targets) - 1:
                    LOGGER.debug(
                        "Waiting %.0fs before next hotel",
                        self._config.item_delay_seconds,
                        extra={"run_id": run_id, "category": category},
                    )
                    await self._sleep(self._config.item_delay_seconds)

            if group_index < last_group:
                LOGGER.info(
                    "Waiting %.0fs before next city",
                    self._config.group_delay_seconds,
                    extra={"run_id": run_id},
                )
                await self._sleep(self._config.group_delay_seconds)

    async def _collect_one(
        self,
        target: Target,
        category: str,
        aggregator: ResultAggregator,
        run_id: str,
        index: int,
        count: int,
    ) -> None:
        extra = {"run_id": run_id, "category": category, "target": target.name}
        LOGGER.info("[%d/%d] Collecting %s", index + 1, count, target.name, extra=extra)

        try:
            value = await self._collector.collect(target.id, target.name, target.search_key)
        except Exception as exc:
            aggregator.record_failure(target, category)
            LOGGER.error("Collection fault, aborting run: %s", exc, extra=extra)
            self._emit_summary(aggregator.partial_summarize())
            self._metrics.emit(
                "target_finished",
                run_id=run_id,
                target=target.name,
                category=category,
                success=False,
            )
            self._metrics.emit(
                "run_aborted",
                run_id=run_id,
                reason="collection_fault",
                target=target.name,
                category=category,
            )
            raise RunFatalError(
                f"collection of {target.name!r} failed: {exc}",
                target_name=target.name,
                category=category,
            ) from exc

        if value is None:
            aggregator.record_failure(target, category)
            LOGGER.warning("No rate collected for %s", target.name, extra=extra)
        else:
            aggregator.record_success(target, category, value)
            LOGGER.info(
                "Collected %s: %s",
                target.name,
                value.price_text or "price unavailable",
                extra=extra,
            )
        self._metrics.emit(
            "target_finished",
            run_id=run_id,
            target=target.name,
            category=category,
            success=value is not None,
        )

    def _emit_summary(self, summary: RunSummary) -> None:
        self.last_summary = summary
        for line in render_summary(summary):
            LOGGER.info(line)
