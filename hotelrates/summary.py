"""Per-run result accumulation and the console summary."""

from __future__ import annotations

from dataclasses import dataclass, field

from hotelrates.models import CollectedValue, Outcome, RunRecord, Target
from hotelrates.pricing import format_rupiah, parse_amount


@dataclass(frozen=True)
class PricePoint:
    target_name: str
    category: str
    amount: int
    price_text: str


@dataclass(frozen=True)
class RunSummary:
    total: int
    success: int
    failure: int
    success_rate: float | None
    results: dict[str, list[Outcome]] = field(default_factory=dict)
    cheapest: PricePoint | None = None
    priciest: PricePoint | None = None
    mean_price: float | None = None
    priced_count: int = 0
    partial: bool = False


class ResultAggregator:
    """Collects outcomes for one run and derives its summary."""

    def __init__(self, record: RunRecord | None = None) -> None:
        self.record = record if record is not None else RunRecord()

    def set_total(self, total: int) -> None:
        self.record.total_targets = total

    def start_category(self, category: str) -> None:
        self.record.results.setdefault(category, [])

    def record_success(self, target: Target, category: str, value: CollectedValue) -> Outcome:
        outcome = Outcome(target=target, category=category, value=value)
        self.record.results.setdefault(category, []).append(outcome)
        self.record.success_count += 1
        return outcome

    def record_failure(self, target: Target, category: str) -> Outcome:
        outcome = Outcome(target=target, category=category, value=None)
        self.record.results.setdefault(category, []).append(outcome)
        self.record.failure_count += 1
        return outcome

    def summarize(self, *, partial: bool = False) -> RunSummary:
        record = self.record
        total = record.total_targets
        rate = record.success_count / total if total else None

        priced: list[PricePoint] = []
        for category, outcomes in record.results.items():
            for outcome in outcomes:
                if not outcome.succeeded:
                    continue
                amount = parse_amount(outcome.value.price_text)
                if amount is None:
                    continue
                priced.append(
                    PricePoint(
                        target_name=outcome.value.name or outcome.target.name,
                        category=category,
                        amount=amount,
                        price_text=outcome.value.price_text or "",
                    )
                )

        cheapest = min(priced, key=lambda point: point.amount) if priced else None
        priciest = max(priced, key=lambda point: point.amount) if priced else None
        mean = sum(point.amount for point in priced) / len(priced) if priced else None

        return RunSummary(
            total=total,
            success=record.success_count,
            failure=record.failure_count,
            success_rate=rate,
            results={category: list(outcomes) for category, outcomes in record.results.items()},
            cheapest=cheapest,
            priciest=priciest,
            mean_price=mean,
            priced_count=len(priced),
            partial=partial,
        )

    def partial_summarize(self) -> RunSummary:
        return self.summarize(partial=True)


def render_summary(summary: RunSummary) -> list[str]:
    """Human-readable summary lines; not a machine contract."""

    title = "PARTIAL RUN SUMMARY" if summary.partial else "RUN SUMMARY"
    lines = [title, "=" * 50]
    lines.append(f"Total hotels: {summary.total}")
    lines.append(f"Succeeded: {summary.success}")
    lines.append(f"Failed: {summary.failure}")
    if summary.success_rate is not None:
        lines.append(f"Success rate: {summary.success_rate * 100:.1f}%")

    for category, outcomes in summary.results.items():
        lines.append("")
        lines.append(f"{category}: {len(outcomes)} hotel(s)")
        for outcome in outcomes:
            if outcome.value is None:
                lines.append(f"  - {outcome.target.name}: failed")
            else:
                price = outcome.value.price_text or "price unavailable"
                label = outcome.value.name or outcome.target.name
                if outcome.value.location:
                    label = f"{label} ({outcome.value.location})"
                lines.append(f"  - {label}: {price}")

    lines.append("")
    lines.append("PRICE ANALYSIS")
    if summary.cheapest is None or summary.priciest is None:
        lines.append("No parsable prices collected")
        return lines

    lines.append(
        f"Cheapest: {summary.cheapest.target_name} ({summary.cheapest.category}) "
        f"{summary.cheapest.price_text}"
    )
    lines.append(
        f"Most expensive: {summary.priciest.target_name} ({summary.priciest.category}) "
        f"{summary.priciest.price_text}"
    )
    lines.append(
        f"Average over {summary.priced_count} hotel(s): {format_rupiah(summary.mean_price)}"
    )
    return lines
