"""Typed errors raised across the hotel rate collection pipeline."""

from __future__ import annotations


class HotelRatesError(Exception):
    """Base class for all application errors."""


class ConfigError(HotelRatesError, ValueError):
    """Raised when configuration is missing or malformed."""


class StoreConnectionError(HotelRatesError, ConnectionError):
    """Raised when the store stays unreachable after a reconnect attempt."""


class CollectionFault(HotelRatesError):
    """Raised by a collector when its browser session fails irrecoverably."""

    def __init__(
        self,
        message: str = "collection session failed",
        *,
        search_key: str | None = None,
        url: str | None = None,
    ) -> None:
        self.search_key = search_key
        self.url = url
        super().__init__(message)


class PageLoadError(CollectionFault):
    """Raised when the search page cannot be opened."""

    def __init__(self, *, url: str, search_key: str | None = None) -> None:
        super().__init__(
            f"PAGE_LOAD_FAILED url={url} search_key={search_key or 'unknown'}",
            search_key=search_key,
            url=url,
        )


class RunFatalError(HotelRatesError):
    """Raised when a collection fault aborts the remainder of a run."""

    def __init__(self, message: str, *, target_name: str | None = None, category: str | None = None) -> None:
        self.target_name = target_name
        self.category = category
        super().__init__(message)
