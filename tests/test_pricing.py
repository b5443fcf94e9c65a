import pytest

from hotelrates.pricing import find_price_text, format_rupiah, parse_amount


def test_parse_amount_strips_rupiah_separators() -> None:
    assert parse_amount("Rp 1.500.000") == 1500000


def test_parse_amount_distinguishes_missing_from_zero() -> None:
    assert parse_amount(None) is None
    assert parse_amount("N/A") is None
    assert parse_amount("") is None
    assert parse_amount("Rp 0") == 0


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("IDR 850,000 / night", 850000),
        ("Mulai dari Rp. 432.100", 432100),
        ("Harga Rp 1.250.000 Rp 999.000", 1250000),
        ("Hotel 88 Rp 500.000", 500000),
        ("Rp1.750.000", 1750000),
    ],
)
def test_parse_amount_uses_first_currency_substring(text: str, expected: int) -> None:
    assert parse_amount(text) == expected


def test_format_rupiah() -> None:
    assert format_rupiah(1500000) == "Rp 1.500.000"
    assert format_rupiah(987.6) == "Rp 988"
    assert format_rupiah(None) == "n/a"


@pytest.mark.parametrize("text", ["Sisa 2 kamar", "Sharp 2 nights", "$120", "4.5 / 5"])
def test_parse_amount_requires_currency_marker(text: str) -> None:
    assert parse_amount(text) is None
    assert find_price_text(text) is None


def test_find_price_text_extracts_marked_amount() -> None:
    assert find_price_text("Mulai dari Rp 432.100 /malam") == "Rp 432.100"
    assert find_price_text(None) is None
