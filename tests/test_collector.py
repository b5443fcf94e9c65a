import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

import hotelrates.selectors as selectors
from hotelrates import collector as collector_module
from hotelrates.collector import TravelokaCollector
from hotelrates.errors import CollectionFault, PageLoadError
from hotelrates.models import CollectedValue


class RecordingStore:
    def __init__(self):
        self.started = []
        self.successes = []
        self.errors = []

    def start_scrape_log(self, hotel_id, search_key):
        self.started.append((hotel_id, search_key))
        return len(self.started)

    def mark_scrape_success(self, log_id, price):
        self.successes.append((log_id, price))
        return True

    def mark_scrape_error(self, log_id, message):
        self.errors.append((log_id, message))
        return True


class FakeClosable:
    def __init__(self):
        self.closed = 0

    async def close(self):
        self.closed += 1

    async def stop(self):
        self.closed += 1


def _collector(monkeypatch, *, extracted=None, submit_error=None):
    store = RecordingStore()
    collector = TravelokaCollector(store)
    browser = FakeClosable()

    async def open_session():
        collector._browser = browser
        return object()

    async def noop(*_args):
        return None

    async def submit(page, search_key):
        if submit_error is not None:
            raise submit_error

    async def extract(page, search_key):
        return extracted

    monkeypatch.setattr(collector, "_open_session", open_session)
    monkeypatch.setattr(collector, "_open_search_page", noop)
    monkeypatch.setattr(collector, "_dismiss_overlays", noop)
    monkeypatch.setattr(collector, "_submit_search", submit)
    monkeypatch.setattr(collector, "_extract_first_result", extract)
    return collector, store, browser


def test_collect_success_persists_price(monkeypatch) -> None:
    value = CollectedValue("Ashley Sabang", "Rp 1.500.000", location="Jakarta Pusat")
    collector, store, browser = _collector(monkeypatch, extracted=value)

    result = asyncio.run(collector.collect(7, "Ashley Sabang", "Ashley Sabang Jakarta"))

    assert result == value
    assert store.started == [(7, "Ashley Sabang Jakarta")]
    assert store.successes == [(1, 1500000.0)]
    assert store.errors == []
    assert browser.closed == 1


@pytest.mark.parametrize(
    "extracted",
    [
        None,
        CollectedValue("Lodge", None),
        CollectedValue("Lodge", "Sold out"),
        CollectedValue("Lodge", "Sisa 2 kamar"),
    ],
)
def test_collect_miss_returns_none_and_marks_error(monkeypatch, extracted) -> None:
    collector, store, browser = _collector(monkeypatch, extracted=extracted)

    assert asyncio.run(collector.collect(3, "Lodge", "Lodge Medan")) is None
    assert store.successes == []
    assert [log_id for log_id, _ in store.errors] == [1]
    assert browser.closed == 1


def test_browser_error_becomes_collection_fault(monkeypatch) -> None:
    collector, store, browser = _collector(
        monkeypatch, submit_error=PlaywrightError("Target page, context or browser has been closed")
    )

    with pytest.raises(CollectionFault) as excinfo:
        asyncio.run(collector.collect(1, "Inn", "Inn Solo"))

    assert excinfo.value.search_key == "Inn Solo"
    assert isinstance(excinfo.value.__cause__, PlaywrightError)
    assert len(store.errors) == 1
    assert browser.closed == 1


def test_collect_without_store(monkeypatch) -> None:
    collector = TravelokaCollector()

    async def noop(*_args):
        return object()

    async def extract(page, search_key):
        return CollectedValue("Villa", "Rp 900.000")

    for name in ("_open_session", "_open_search_page", "_dismiss_overlays", "_submit_search"):
        monkeypatch.setattr(collector, name, noop)
    monkeypatch.setattr(collector, "_extract_first_result", extract)

    assert asyncio.run(collector.collect(1, "Villa", "Villa Bali")) == CollectedValue("Villa", "Rp 900.000")


class _FailingPage:
    def __init__(self):
        self.attempts = 0
        self.url = "about:blank"

    async def goto(self, url, wait_until=None):
        self.attempts += 1
        raise PlaywrightError("net::ERR_NAME_NOT_RESOLVED")


def test_search_page_retries_then_raises_page_load_error(monkeypatch) -> None:
    async def no_pause(*_args):
        return None

    monkeypatch.setattr(collector_module, "_pause", no_pause)
    page = _FailingPage()

    with pytest.raises(PageLoadError) as excinfo:
        asyncio.run(TravelokaCollector()._open_search_page(page, "Hotel Santika Bandung"))

    assert page.attempts == 3
    assert "PAGE_LOAD_FAILED" in str(excinfo.value)
    assert "search_key=Hotel Santika Bandung" in str(excinfo.value)


def test_cleanup_is_idempotent() -> None:
    collector = TravelokaCollector()
    browser, driver = FakeClosable(), FakeClosable()
    collector._browser = browser
    collector._playwright = driver

    async def scenario():
        await collector.cleanup()
        await collector.cleanup()

    asyncio.run(scenario())
    assert browser.closed == 1
    assert driver.closed == 1


class _TextLocator:
    def __init__(self, text):
        self.text = text

    @property
    def first(self):
        return self

    async def inner_text(self, timeout=None):
        if self.text is None:
            raise PlaywrightError("element not found")
        return self.text


class _ResultPage:
    url = "https://www.traveloka.com/id-id/hotel/search"

    def __init__(self, texts):
        self.texts = texts

    async def wait_for_selector(self, selector, timeout=None):
        return None

    def locator(self, selector):
        return _TextLocator(self.texts.get(selector))


def test_extract_first_result_keeps_only_marked_price() -> None:
    page = _ResultPage(
        {
            selectors.HOTEL_NAME: "Hotel Tentrem",
            selectors.HOTEL_PRICE: "Sisa 2 kamar\nRp 1.200.000",
            selectors.HOTEL_LOCATION: "Jetis, Yogyakarta",
        }
    )

    value = asyncio.run(TravelokaCollector()._extract_first_result(page, "Hotel Tentrem Yogyakarta"))

    assert value == CollectedValue("Hotel Tentrem", "Rp 1.200.000", location="Jetis, Yogyakarta")


def test_extract_first_result_drops_unmarked_price_text() -> None:
    page = _ResultPage({selectors.HOTEL_NAME: "Hotel Tentrem", selectors.HOTEL_PRICE: "Sisa 2 kamar"})

    value = asyncio.run(TravelokaCollector()._extract_first_result(page, "Hotel Tentrem Yogyakarta"))

    assert value == CollectedValue("Hotel Tentrem", None)
