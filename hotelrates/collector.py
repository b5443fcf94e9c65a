"""Per-hotel rate collection through a Playwright browser session."""

from __future__ import annotations

import asyncio
import random
from typing import Any, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright
from tenacity import retry, stop_after_attempt, wait_random_exponential

import hotelrates.selectors as selectors
from hotelrates.errors import CollectionFault, PageLoadError
from hotelrates.logging_config import get_logger
from hotelrates.models import CollectedValue
from hotelrates.playwright_env import context_kwargs, launch_browser, navigation_timeout_ms
from hotelrates.pricing import find_price_text, parse_amount
from hotelrates.storage.store import TargetStore

LOGGER = get_logger(__name__)


class Collector(Protocol):
    """What the orchestrator needs from a collector."""

    async def collect(
        self, target_id: int, target_name: str, search_key: str
    ) -> CollectedValue | None: ...

    async def cleanup(self) -> None: ...


async def _pause(min_ms: int = 300, max_ms: int = 900) -> None:
    await asyncio.sleep(random.uniform(min_ms / 1000, max_ms / 1000))


async def _inner_text_safe(locator: Any, timeout: int = 3000) -> str | None:
    try:
        result = await locator.inner_text(timeout=timeout)
    except PlaywrightError:
        return None
    if result is None:
        return None
    return result.strip() or None


class TravelokaCollector:
    """Searches one hotel per call and persists the result via the store.

    Each call owns a fresh browser which is closed before the call returns.
    A hotel that cannot be found or priced is a miss (``None``); a browser
    or navigation failure raises :class:`CollectionFault`.
    """

    def __init__(self, store: TargetStore | None = None) -> None:
        self._store = store
        self._playwright: Any | None = None
        self._browser: Any | None = None

    async def collect(
        self, target_id: int, target_name: str, search_key: str
    ) -> CollectedValue | None:
        extra = {"target": target_name, "search_key": search_key}
        log_id = self._store.start_scrape_log(target_id, search_key) if self._store is not None else None

        try:
            page = await self._open_session()
            await self._open_search_page(page, search_key)
            await self._dismiss_overlays(page)
            await self._submit_search(page, search_key)
            value = await self._extract_first_result(page, search_key)
        except CollectionFault as exc:
            self._record_error(log_id, str(exc))
            raise
        except PlaywrightError as exc:
            self._record_error(log_id, str(exc))
            raise CollectionFault(f"browser session failed: {exc}", search_key=search_key) from exc
        finally:
            await self.cleanup()

        amount = parse_amount(value.price_text) if value is not None else None
        if value is None or amount is None:
            LOGGER.info("No priced result for hotel", extra=extra)
            self._record_error(log_id, "hotel data missing or price unavailable")
            return None

        if log_id is not None and self._store is not None:
            self._store.mark_scrape_success(log_id, float(amount))
        LOGGER.info("Collected %s at %s", value.name, value.price_text, extra=extra)
        return value

    async def cleanup(self) -> None:
        """Close the browser and driver; safe to call when nothing is open."""

        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None

        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as exc:
                LOGGER.warning("Failed to close browser: %s", exc)
        if playwright is not None:
            try:
                await playwright.stop()
            except PlaywrightError as exc:
                LOGGER.warning("Failed to stop Playwright: %s", exc)

    async def _open_session(self) -> Any:
        await self.cleanup()
        self._playwright = await async_playwright().start()
        self._browser = await launch_browser(self._playwright)
        context = await self._browser.new_context(**context_kwargs())
        context.set_default_timeout(navigation_timeout_ms())
        return await context.new_page()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_random_exponential(multiplier=0.5, max=5),
        reraise=True,
    )
    async def _open_search_page(self, page: Any, search_key: str) -> None:
        try:
            response = await page.goto(selectors.SEARCH_URL, wait_until="domcontentloaded")
        except PlaywrightError as exc:
            raise PageLoadError(url=selectors.SEARCH_URL, search_key=search_key) from exc
        if response is not None and response.status >= 400:
            raise PageLoadError(url=selectors.SEARCH_URL, search_key=search_key)
        await _pause(1500, 3000)

    async def _dismiss_overlays(self, page: Any) -> None:
        close_buttons = page.locator(selectors.DIALOG_CLOSE)
        try:
            count = await close_buttons.count()
        except PlaywrightError:
            return
        for index in range(count):
            try:
                await close_buttons.nth(index).click(timeout=2000)
            except PlaywrightError:
                continue

    async def _submit_search(self, page: Any, search_key: str) -> None:
        field = page.locator(selectors.SEARCH_INPUT).first
        try:
            await field.click(timeout=30000)
            await field.fill("")
            await field.type(search_key, delay=50)
        except PlaywrightError as exc:
            raise CollectionFault(
                f"search input unavailable: {exc}", search_key=search_key, url=page.url
            ) from exc

        await _pause(1500, 2500)
        suggestion = page.locator(selectors.AUTOCOMPLETE_ITEM).first
        try:
            await suggestion.click(timeout=10000)
        except PlaywrightError:
            LOGGER.debug("No autocomplete suggestion; submitting raw query", extra={"search_key": search_key})
            await field.press("Enter")

        submit = page.locator(selectors.SEARCH_SUBMIT).first
        try:
            await submit.click(timeout=5000)
        except PlaywrightError:
            pass

        try:
            await page.wait_for_load_state("domcontentloaded")
        except PlaywrightError:
            pass

    async def _extract_first_result(self, page: Any, search_key: str) -> CollectedValue | None:
        try:
            await page.wait_for_selector(selectors.HOTEL_NAME, timeout=15000)
        except PlaywrightError:
            LOGGER.debug("Result list did not render", extra={"search_key": search_key, "url": page.url})
            return None

        name = await _inner_text_safe(page.locator(selectors.HOTEL_NAME).first)
        if not name:
            return None

        price_text = await _inner_text_safe(page.locator(selectors.HOTEL_PRICE).first)
        location = await _inner_text_safe(page.locator(selectors.HOTEL_LOCATION).first, timeout=1500)
        return CollectedValue(name=name, price_text=find_price_text(price_text), location=location)

    def _record_error(self, log_id: int | None, message: str) -> None:
        if log_id is None or self._store is None:
            return
        self._store.mark_scrape_error(log_id, message)
