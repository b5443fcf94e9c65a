"""Currency string helpers."""

from __future__ import annotations

import re

_CURRENCY_PATTERN = re.compile(
    r"\b(?:Rp\.?|IDR)\s*\d[\d.,]*",
    re.IGNORECASE | re.UNICODE,
)
_NON_DIGIT = re.compile(r"\D")


def find_price_text(text: str | None) -> str | None:
    """Return the first ``Rp``/``IDR`` amount in *text*, or None when there is none."""

    if not text:
        return None
    match = _CURRENCY_PATTERN.search(str(text))
    return match.group(0).strip() if match else None


def parse_amount(text: str | None) -> int | None:
    """Return the whole-unit amount of the first ``Rp``/``IDR`` substring.

    ``"Rp 1.500.000"`` becomes ``1500000``. Separators are dropped rather than
    interpreted, matching the way the source site prints rupiah. Digits that
    are not preceded by a currency marker are not a price, so ``"Sisa 2
    kamar"`` gives None (not 0).
    """

    price_text = find_price_text(text)
    if price_text is None:
        return None

    digits = _NON_DIGIT.sub("", price_text)
    if not digits:
        return None
    return int(digits)


def format_rupiah(amount: float | int | None) -> str:
    """Render *amount* the Indonesian way, ``Rp 1.500.000``."""

    if amount is None:
        return "n/a"
    whole = int(round(amount))
    return "Rp " + f"{whole:,}".replace(",", ".")
