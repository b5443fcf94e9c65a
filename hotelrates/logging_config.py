"""Logging setup shared by every hotelrates module."""

from __future__ import annotations

import logging
import os
import sys

_DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_CONTEXT_FIELDS = ("run_id", "category", "target", "search_key", "url", "reason")

_configured = False


class ContextFormatter(logging.Formatter):
    """Append structured ``extra=`` fields to the rendered message."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        pairs = []
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is None or value == "":
                continue
            pairs.append(f"{key}={value}")
        if not pairs:
            return message
        return f"{message} | {' '.join(pairs)}"


def configure_logging(level: str | int | None = None) -> None:
    """Install the stream handler on the package logger once."""

    global _configured
    if _configured:
        return

    if level is None:
        level = os.getenv("HOTELRATES_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(_DEFAULT_FORMAT))

    root = logging.getLogger("hotelrates")
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False

    # APScheduler is chatty at INFO about every job execution.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger under the ``hotelrates`` hierarchy."""

    if not name.startswith("hotelrates"):
        name = f"hotelrates.{name}"
    return logging.getLogger(name)
