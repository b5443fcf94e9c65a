from hotelrates.models import CollectedValue, Target
from hotelrates.summary import ResultAggregator, render_summary


def _target(idx: int, key: str) -> Target:
    return Target(id=idx, name=f"Hotel {idx}", search_key=key)


def test_summary_counts_and_price_stats() -> None:
    aggregator = ResultAggregator()
    aggregator.set_total(4)
    aggregator.start_category("Jakarta")
    aggregator.record_success(
        _target(1, "Hotel 1 Jakarta"), "Jakarta", CollectedValue("Hotel 1", "Rp 1.500.000")
    )
    aggregator.record_success(
        _target(2, "Hotel 2 Jakarta"), "Jakarta", CollectedValue("Hotel 2", "Rp 500.000")
    )
    aggregator.start_category("Bali")
    aggregator.record_success(_target(3, "Hotel 3 Bali"), "Bali", CollectedValue("Hotel 3", None))
    aggregator.record_failure(_target(4, "Hotel 4 Bali"), "Bali")

    summary = aggregator.summarize()

    assert (summary.total, summary.success, summary.failure) == (4, 3, 1)
    assert summary.success_rate == 0.75
    assert list(summary.results) == ["Jakarta", "Bali"]
    assert summary.cheapest is not None and summary.cheapest.amount == 500000
    assert summary.priciest is not None and summary.priciest.target_name == "Hotel 1"
    assert summary.mean_price == 1000000
    assert summary.priced_count == 2
    assert summary.partial is False


def test_render_summary_lines() -> None:
    aggregator = ResultAggregator()
    aggregator.set_total(2)
    aggregator.record_success(
        _target(1, "Hotel 1 Solo"), "Solo", CollectedValue("Hotel 1", "Rp 300.000", location="Laweyan")
    )
    aggregator.record_failure(_target(2, "Hotel 2 Solo"), "Solo")

    lines = render_summary(aggregator.summarize())

    assert lines[0] == "RUN SUMMARY"
    assert "Success rate: 50.0%" in lines
    assert "  - Hotel 1 (Laweyan): Rp 300.000" in lines
    assert "  - Hotel 2: failed" in lines
    assert "Average over 1 hotel(s): Rp 300.000" in lines


def test_partial_summary_without_prices() -> None:
    aggregator = ResultAggregator()
    aggregator.set_total(3)
    aggregator.record_failure(_target(1, "Hotel 1 Medan"), "Medan")

    summary = aggregator.partial_summarize()
    lines = render_summary(summary)

    assert summary.partial is True
    assert summary.cheapest is None and summary.mean_price is None
    assert lines[0] == "PARTIAL RUN SUMMARY"
    assert lines[-1] == "No parsable prices collected"


def test_empty_run_has_no_success_rate() -> None:
    summary = ResultAggregator().summarize()
    assert summary.total == 0
    assert summary.success_rate is None
    assert not any(line.startswith("Success rate") for line in render_summary(summary))


def test_price_stats_ignore_digits_outside_the_amount() -> None:
    aggregator = ResultAggregator()
    aggregator.set_total(2)
    aggregator.record_success(
        _target(1, "Hotel 88 Batu"), "Batu", CollectedValue("Hotel 88", "Hotel 88 Rp 500.000")
    )
    aggregator.record_success(
        _target(2, "Villa Batu"), "Batu", CollectedValue("Villa", "Rp 700.000")
    )

    summary = aggregator.summarize()

    assert summary.cheapest is not None and summary.cheapest.amount == 500000
    assert summary.mean_price == 600000
