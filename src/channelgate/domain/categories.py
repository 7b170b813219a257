"""Category and display helpers for live listings."""

from __future__ import annotations

from typing import Iterable

from channelgate.domain.entities.catalog import LiveItem

DEFAULT_CATEGORY = "Live TV"

# Order matters: first keyword contained in the name wins.
_CATEGORY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("sports", "Sports"),
    ("premier", "Premier Sports"),
    ("sky", "Sky Sports"),
    ("espn", "ESPN"),
    ("fox", "Fox Sports"),
    ("tnt", "TNT Sports"),
    ("liga", "La Liga"),
)


def extract_category_from_name(channel_name: str) -> str:
    """Derive a display category from a channel name.

    >>> extract_category_from_name("ESPN 2 HD")
    'ESPN'
    >>> extract_category_from_name("Random Channel")
    'Live TV'
    """
    lowered = channel_name.lower()
    for keyword, category in _CATEGORY_KEYWORDS:
        if keyword in lowered:
            return category
    return DEFAULT_CATEGORY


def generate_categories(items: Iterable[LiveItem]) -> list[str]:
    """Distinct categories of *items* in first-seen order."""
    seen: dict[str, None] = {}
    for item in items:
        if item.category:
            seen.setdefault(item.category, None)
    return list(seen)


def popular_channel_ids(items: Iterable[LiveItem], limit: int = 5) -> list[str]:
    """Ids of the first *limit* items, used as preload targets."""
    if limit <= 0:
        return []
    ids: list[str] = []
    for item in items:
        ids.append(item.id)
        if len(ids) >= limit:
            break
    return ids
