"""Environment-driven configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import time
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from hotelrates.classify import KNOWN_CATEGORIES, load_categories
from hotelrates.errors import ConfigError
from hotelrates.window import parse_hhmm, resolve_timezone

DEFAULT_TIMEZONE = "Asia/Jakarta"
DEFAULT_START_TIME = "06:00"
DEFAULT_END_TIME = "23:00"
DEFAULT_ITEM_DELAY_SECONDS = 30.0
DEFAULT_GROUP_DELAY_SECONDS = 60.0
DEFAULT_DATABASE_URL = "sqlite:///hotel_rates.sqlite"

_FALSE_VALUES = {"0", "false", "no", "off"}


def env_flag(value: str | None, default: bool) -> bool:
    """Interpret an environment string as a boolean; blank means *default*."""

    if value is None or not value.strip():
        return default
    return value.strip().lower() not in _FALSE_VALUES


def _env_seconds(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{name} must not be negative")
    return value


def _env_positive_int(environ: Mapping[str, str], name: str) -> int | None:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be a positive integer")
    return value


def database_url_from_env(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    return (env.get("HOTELRATES_DATABASE_URL") or "").strip() or DEFAULT_DATABASE_URL


@dataclass(frozen=True)
class ScheduleConfig:
    """Static run policy, loaded once at process start."""

    cron_expression: str
    timezone: str = DEFAULT_TIMEZONE
    window_start: time = field(default_factory=lambda: parse_hhmm(DEFAULT_START_TIME))
    window_end: time = field(default_factory=lambda: parse_hhmm(DEFAULT_END_TIME))
    item_delay_seconds: float = DEFAULT_ITEM_DELAY_SECONDS
    group_delay_seconds: float = DEFAULT_GROUP_DELAY_SECONDS
    max_targets_per_run: int | None = None
    run_on_start: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ScheduleConfig":
        env = os.environ if environ is None else environ

        cron_expression = (env.get("SCHEDULER_CRON") or "").strip()
        if not cron_expression:
            raise ConfigError(
                "SCHEDULER_CRON is not set; provide a cron expression such as '0 * * * *'"
            )

        timezone = (env.get("SCHEDULER_TIMEZONE") or "").strip() or DEFAULT_TIMEZONE
        resolve_timezone(timezone)

        return cls(
            cron_expression=cron_expression,
            timezone=timezone,
            window_start=parse_hhmm(env.get("SCHEDULER_START_TIME") or DEFAULT_START_TIME),
            window_end=parse_hhmm(env.get("SCHEDULER_END_TIME") or DEFAULT_END_TIME),
            item_delay_seconds=_env_seconds(env, "DELAY_BETWEEN_HOTELS", DEFAULT_ITEM_DELAY_SECONDS),
            group_delay_seconds=_env_seconds(env, "DELAY_BETWEEN_CITIES", DEFAULT_GROUP_DELAY_SECONDS),
            max_targets_per_run=_env_positive_int(env, "MAX_HOTELS_PER_RUN"),
            run_on_start=env_flag(env.get("SCHEDULER_RUN_ON_START"), True),
        )


@dataclass(frozen=True)
class AppSettings:
    """Everything the entry point needs besides the schedule."""

    schedule: ScheduleConfig
    database_url: str = DEFAULT_DATABASE_URL
    categories: tuple[str, ...] = KNOWN_CATEGORIES
    metrics_dir: Path | None = None
    healthcheck_url: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppSettings":
        env = os.environ if environ is None else environ

        categories = KNOWN_CATEGORIES
        categories_path = (env.get("HOTELRATES_CATEGORIES_PATH") or "").strip()
        if categories_path:
            categories = load_categories(Path(categories_path))

        metrics_dir = (env.get("HOTELRATES_METRICS_DIR") or "").strip()
        healthcheck_url = (env.get("HOTELRATES_HEALTHCHECK_URL") or "").strip()

        return cls(
            schedule=ScheduleConfig.from_env(env),
            database_url=database_url_from_env(env),
            categories=categories,
            metrics_dir=Path(metrics_dir) if metrics_dir else None,
            healthcheck_url=healthcheck_url or None,
        )


def load_settings(dotenv_path: str | os.PathLike[str] | None = None) -> AppSettings:
    """Load ``.env`` into the process environment and build settings from it."""

    load_dotenv(dotenv_path)
    return AppSettings.from_env()
