"""Daily active-window checks for the scheduler."""

from __future__ import annotations

import re
from datetime import datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from hotelrates.errors import ConfigError

_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def parse_hhmm(text: str | time) -> time:
    """Parse ``HH:MM`` into a :class:`datetime.time`, raising ConfigError on junk."""

    if isinstance(text, time):
        return text.replace(second=0, microsecond=0)
    if not isinstance(text, str):
        raise ConfigError(f"Invalid time value: {text!r}")

    match = _HHMM_RE.match(text)
    if not match:
        raise ConfigError(f"Invalid time {text!r}; expected HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ConfigError(f"Invalid time {text!r}; out of range")
    return time(hour, minute)


def is_active(now: str | time, start: str | time, end: str | time) -> bool:
    """Return True when *now* falls inside the window [start, end].

    A window whose start is after its end wraps past midnight, so
    ``23:00-06:00`` covers late evening and early morning. Comparison is done
    at minute resolution.
    """

    current = parse_hhmm(now)
    begin = parse_hhmm(start)
    finish = parse_hhmm(end)

    if begin <= finish:
        return begin <= current <= finish
    return current >= begin or current <= finish


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone {name!r}") from exc


def current_time(tz_name: str, *, clock: datetime | None = None) -> time:
    """Wall-clock time of day in *tz_name*."""

    tz = resolve_timezone(tz_name)
    moment = clock.astimezone(tz) if clock is not None else datetime.now(tz)
    return moment.time().replace(second=0, microsecond=0)
