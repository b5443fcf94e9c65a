"""Run metrics and healthcheck pings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import requests

from hotelrates.logging_config import get_logger

LOGGER = get_logger(__name__)

RUNS_FILE = "runs.jsonl"
SUMMARY_FILE = "summary.json"

# event name -> counter bumped in the summary snapshot
_RUN_COUNTERS = {
    "run_started": "runs_started",
    "run_finished": "runs_finished",
    "run_aborted": "runs_aborted",
}


def _empty_counters() -> dict[str, Any]:
    counters: dict[str, Any] = {name: 0 for name in _RUN_COUNTERS.values()}
    counters.update(targets_succeeded=0, targets_failed=0, last_event=None)
    return counters


def _load_snapshot(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        LOGGER.warning("Ignoring unreadable metrics summary %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


@dataclass
class MetricsEmitter:
    """Append run events to a JSONL file and keep rolling counters beside it.

    A disabled emitter accepts every call and writes nothing.
    """

    events_path: Path
    snapshot_path: Path
    enabled: bool = True
    _counters: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def in_directory(cls, directory: Path | None) -> "MetricsEmitter":
        if directory is None:
            return cls(Path(RUNS_FILE), Path(SUMMARY_FILE), enabled=False)
        return cls(directory / RUNS_FILE, directory / SUMMARY_FILE)

    def __post_init__(self) -> None:
        self._counters = _empty_counters()
        if self.enabled:
            self._counters.update(_load_snapshot(self.snapshot_path))

    def emit(self, event: str, **fields: Any) -> None:
        if not self.enabled:
            return
        record = {"ts": datetime.now(timezone.utc).isoformat(), "event": event, **fields}
        try:
            self.events_path.parent.mkdir(parents=True, exist_ok=True)
            with self.events_path.open("a", encoding="utf-8") as stream:
                stream.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
        except OSError as exc:
            LOGGER.warning("Failed to append metrics event %s: %s", event, exc)
            return
        self._count(record)

    def _count(self, record: dict[str, Any]) -> None:
        event = record["event"]
        if event in _RUN_COUNTERS:
            key = _RUN_COUNTERS[event]
        elif event == "target_finished":
            key = "targets_succeeded" if record.get("success") else "targets_failed"
        else:
            key = None
        if key is not None:
            self._counters[key] = int(self._counters.get(key) or 0) + 1
        self._counters["last_event"] = record["ts"]

        try:
            self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
            self.snapshot_path.write_text(
                json.dumps(self._counters, ensure_ascii=False, indent=2), encoding="utf-8"
            )
        except OSError as exc:
            LOGGER.warning("Failed to write metrics summary: %s", exc)

    def summary(self) -> dict[str, Any]:
        return dict(self._counters)


def ping_healthcheck(url: str | None, *, timeout: float = 5.0) -> bool:
    """GET *url* after a completed run; never raises."""

    if not url:
        LOGGER.debug("healthcheck: disabled")
        return False
    parsed = urlparse(url)
    host = parsed.netloc or parsed.path
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        LOGGER.warning("Healthcheck ping failed for host=%s: %s", host, exc)
        return False
    if response.status_code >= 400:
        LOGGER.warning("Healthcheck returned status %s for host=%s", response.status_code, host)
        return False
    LOGGER.info("healthcheck ok | host=%s status=%s", host, response.status_code)
    return True
