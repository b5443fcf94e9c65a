"""Playwright launch options read from the environment."""

from __future__ import annotations

import os
import shlex
from typing import Any

from playwright.async_api import Browser, Playwright

from hotelrates.config import env_flag
from hotelrates.logging_config import get_logger

LOGGER = get_logger(__name__)

_SUPPORTED_ENGINES = ("firefox", "chromium", "webkit")


def _env_millis(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-integer %s=%s", name, raw)
        return default


def headless_enabled() -> bool:
    """Return True if the browser should run without a window."""

    return env_flag(os.getenv("HOTELRATES_HEADLESS"), True)


def browser_engine() -> str:
    """Browser engine to launch; Firefox unless overridden."""

    value = (os.getenv("HOTELRATES_BROWSER") or "firefox").strip().lower()
    if value not in _SUPPORTED_ENGINES:
        LOGGER.warning("Unsupported HOTELRATES_BROWSER=%s; using firefox", value)
        return "firefox"
    return value


def navigation_timeout_ms() -> int:
    return max(_env_millis("HOTELRATES_NAV_TIMEOUT_MS", 60000), 1000)


def slow_mo_ms() -> int | None:
    value = _env_millis("HOTELRATES_SLOW_MO_MS", 0)
    return value if value > 0 else None


def user_agent() -> str | None:
    return (os.getenv("USER_AGENT") or "").strip() or None


def _proxy_config() -> dict[str, str] | None:
    raw = os.getenv("HOTELRATES_PROXY")
    if not raw:
        return None
    if "://" not in raw:
        return {"server": f"http://{raw}"}
    return {"server": raw}


def launch_kwargs() -> dict[str, Any]:
    """Return kwargs passed to ``<engine>.launch``."""

    kwargs: dict[str, Any] = {
        "headless": headless_enabled(),
        "timeout": navigation_timeout_ms(),
    }

    extra_args = os.getenv("HOTELRATES_BROWSER_ARGS")
    if extra_args:
        kwargs["args"] = shlex.split(extra_args)

    proxy = _proxy_config()
    if proxy:
        kwargs["proxy"] = proxy

    slow_mo = slow_mo_ms()
    if slow_mo:
        kwargs["slow_mo"] = slow_mo

    return kwargs


def context_kwargs() -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "viewport": {"width": 1440, "height": 900},
        "locale": "id-ID",
    }
    agent = user_agent()
    if agent:
        kwargs["user_agent"] = agent
    return kwargs


async def launch_browser(playwright: Playwright) -> Browser:
    """Launch the configured engine."""

    engine = getattr(playwright, browser_engine())
    return await engine.launch(**launch_kwargs())
