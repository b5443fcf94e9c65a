"""Plain data types passed between the store, collector and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Target:
    """A hotel to collect, as returned by the store at run start."""

    id: int
    name: str
    search_key: str
    last_price: float | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class CollectedValue:
    """What the collector read from the source for one target."""

    name: str
    price_text: str | None
    location: str | None = None


@dataclass(frozen=True)
class Outcome:
    target: Target
    category: str
    value: CollectedValue | None
    collected_at: datetime = field(default_factory=utcnow)

    @property
    def succeeded(self) -> bool:
        return self.value is not None


@dataclass
class RunRecord:
    """Mutable state of the run currently in progress."""

    started_at: datetime = field(default_factory=utcnow)
    ended_at: datetime | None = None
    total_targets: int = 0
    success_count: int = 0
    failure_count: int = 0
    results: dict[str, list[Outcome]] = field(default_factory=dict)

    def finalize(self, when: datetime | None = None) -> None:
        self.ended_at = when or utcnow()

    @property
    def duration_seconds(self) -> float | None:
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()
