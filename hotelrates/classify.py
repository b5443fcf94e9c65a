"""City classification for hotel search keys."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import yaml

from hotelrates.errors import ConfigError
from hotelrates.models import Target

UNKNOWN_CATEGORY = "Unknown"

# Order matters: the first name contained in the key wins.
KNOWN_CATEGORIES: tuple[str, ...] = (
    "Jakarta",
    "Bandung",
    "Surabaya",
    "Yogyakarta",
    "Malang",
    "Batu",
    "Bali",
    "Medan",
    "Palembang",
    "Semarang",
    "Solo",
    "Magelang",
    "Salatiga",
)


def classify(search_key: str | None, categories: Sequence[str] = KNOWN_CATEGORIES) -> str:
    """Return the first category that appears in *search_key* (case-sensitive)."""

    if not search_key:
        return UNKNOWN_CATEGORY
    for category in categories:
        if category in search_key:
            return category
    return UNKNOWN_CATEGORY


def group_targets(
    targets: Iterable[Target],
    categories: Sequence[str] = KNOWN_CATEGORIES,
) -> dict[str, list[Target]]:
    """Partition *targets* by category, keeping first-seen category order."""

    grouped: dict[str, list[Target]] = {}
    for target in targets:
        grouped.setdefault(classify(target.search_key, categories), []).append(target)
    return grouped


def load_categories(path: Path) -> tuple[str, ...]:
    """Read an ordered category list from a YAML file with a ``categories`` key."""

    if not path.exists():
        raise ConfigError(f"Category file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    raw = data.get("categories") if isinstance(data, dict) else None
    if not isinstance(raw, list):
        raise ConfigError(f"No categories list defined in {path}")
    cleaned = tuple(str(entry).strip() for entry in raw if str(entry or "").strip())
    if not cleaned:
        raise ConfigError(f"No categories defined in {path}")
    return cleaned
