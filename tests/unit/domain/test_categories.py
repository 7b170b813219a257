"""Tests for category and display helpers."""

from __future__ import annotations

import pytest

from channelgate.domain.categories import (
    DEFAULT_CATEGORY,
    extract_category_from_name,
    generate_categories,
    popular_channel_ids,
)
from channelgate.domain.entities.catalog import LiveItem


def _item(item_id: str, category: str) -> LiveItem:
    return LiveItem(
        id=item_id,
        match=f"Match {item_id}",
        category=category,
        start="2025-03-01T18:00:00Z",
        end="2025-03-02T18:00:00Z",
    )


class TestExtractCategoryFromName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Premier Sports 1", "Sports"),
            ("Premier League TV", "Premier Sports"),
            ("SKY Cinema", "Sky Sports"),
            ("ESPN Deportes", "ESPN"),
            ("Fox 501", "Fox Sports"),
            ("TNT 2", "TNT Sports"),
            ("LaLiga TV", "La Liga"),
            ("BBC One", DEFAULT_CATEGORY),
            ("", DEFAULT_CATEGORY),
        ],
    )
    def test_keyword_mapping(self, name: str, expected: str) -> None:
        assert extract_category_from_name(name) == expected


class TestGenerateCategories:
    def test_distinct_in_first_seen_order(self) -> None:
        items = [
            _item("1", "ESPN"),
            _item("2", "Sports"),
            _item("3", "ESPN"),
            _item("4", ""),
        ]
        assert generate_categories(items) == ["ESPN", "Sports"]

    def test_empty(self) -> None:
        assert generate_categories([]) == []


class TestPopularChannelIds:
    def test_first_n(self) -> None:
        items = [_item(str(i), "Sports") for i in range(10)]
        assert popular_channel_ids(items, limit=3) == ["0", "1", "2"]

    def test_fewer_items_than_limit(self) -> None:
        assert popular_channel_ids([_item("a", "x")], limit=5) == ["a"]

    def test_non_positive_limit(self) -> None:
        assert popular_channel_ids([_item("a", "x")], limit=0) == []
