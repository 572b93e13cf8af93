"""Tests for part navigation and URL synchronization"""

from typing import Tuple

import pytest

from lessonboard.models.video import VideoPart
from lessonboard.services.navigation import (
    build_navigation,
    parse_page,
    part_url,
    resolve_page,
    resolve_part,
    sync_page,
)


def make_parts(count: int) -> Tuple[VideoPart, ...]:
    return tuple(VideoPart(page=i, title=f"Part {i}", duration="10:00") for i in range(1, count + 1))


class TestParsePage:
    """Test parsing of the raw page value"""

    @pytest.mark.parametrize(
        "raw,expected",
        [(None, 1), ("2", 2), ("2x", 2), ("abc", 1), ("0", 1), ("-4", 1), ("", 1)],
    )
    def test_parse_page(self, raw: object, expected: int) -> None:
        assert parse_page(raw) == expected

    def test_not_clamped_to_parts(self) -> None:
        assert parse_page("50") == 50


class TestResolvePage:
    """Test clamping a page into the part range"""

    @pytest.mark.parametrize(
        "requested,count,expected",
        [(1, 3, 1), (2, 3, 2), (3, 3, 3), (5, 3, 3), (0, 3, 1), (-1, 3, 1), (4, 1, 1)],
    )
    def test_resolve_page(self, requested: int, count: int, expected: int) -> None:
        assert resolve_page(requested, count) == expected

    def test_result_always_in_range(self) -> None:
        for count in range(1, 6):
            for requested in range(-3, 10):
                assert 1 <= resolve_page(requested, count) <= count


class TestResolvePart:
    """Test resolution of the requested page to a part"""

    def test_out_of_range_page_is_clamped(self) -> None:
        parts = make_parts(3)
        resolution = resolve_part(parts, "5")

        assert resolution.valid_page == 3
        assert resolution.requested_page == 5
        assert resolution.current_part == parts[2]
        assert resolution.needs_sync is True

    def test_missing_page_defaults_to_first(self) -> None:
        parts = make_parts(3)
        resolution = resolve_part(parts, None)

        assert resolution.valid_page == 1
        assert resolution.current_part == parts[0]
        assert resolution.needs_sync is False

    def test_canonical_page_needs_no_sync(self) -> None:
        resolution = resolve_part(make_parts(3), "2")
        assert resolution.valid_page == 2
        assert resolution.needs_sync is False

    @pytest.mark.parametrize("raw", ["1", "01", "2abc", "abc"])
    def test_non_canonical_values_need_sync(self, raw: str) -> None:
        assert resolve_part(make_parts(3), raw).needs_sync is True

    def test_explicit_first_page_is_removed(self) -> None:
        """page=1 is the default and is dropped from the URL"""
        resolution = resolve_part(make_parts(3), "1")
        assert resolution.valid_page == 1
        assert resolution.needs_sync is True

    def test_no_parts(self) -> None:
        resolution = resolve_part((), "3")
        assert resolution.valid_page == 1
        assert resolution.current_part is None
        assert resolution.has_part is False
        assert resolution.needs_sync is True

    def test_no_parts_without_page(self) -> None:
        resolution = resolve_part((), None)
        assert resolution.current_part is None
        assert resolution.needs_sync is False

    def test_current_part_matches_valid_page(self) -> None:
        parts = make_parts(4)
        for raw in [None, "0", "1", "2", "3", "4", "9", "x"]:
            resolution = resolve_part(parts, raw)
            assert resolution.current_part is not None
            assert resolution.current_part.page == resolution.valid_page


class TestSyncPage:
    """Test canonical URL computation"""

    def test_sets_page(self) -> None:
        assert sync_page("/videos/power-electronics/v1?page=5", 3) == "/videos/power-electronics/v1?page=3"

    def test_first_page_removes_param(self) -> None:
        assert sync_page("/videos/power-electronics/v1?page=1", 1) == "/videos/power-electronics/v1"

    def test_keeps_other_params(self) -> None:
        assert sync_page("/v?sidebar=open&page=9&x=1", 2) == "/v?sidebar=open&x=1&page=2"

    def test_adds_page_when_absent(self) -> None:
        assert sync_page("/v", 4) == "/v?page=4"

    def test_idempotent(self) -> None:
        for url in ["/v", "/v?page=7", "/v?a=1&page=0", "/v?page=2&b=2"]:
            for page in [1, 2, 5]:
                once = sync_page(url, page)
                assert sync_page(once, page) == once


class TestBuildNavigation:
    """Test the navigation state of a video view"""

    def test_corrects_out_of_range_url(self) -> None:
        navigation = build_navigation(make_parts(3), "5", "/videos/power-electronics/v1?page=5")

        assert navigation.current_page == 3
        assert navigation.canonical_url == "/videos/power-electronics/v1?page=3"
        assert navigation.resolution.needs_sync is True

    def test_previous_and_next(self) -> None:
        parts = make_parts(3)

        first = build_navigation(parts, None, "/v")
        assert first.previous_part is None
        assert first.next_part == parts[1]

        middle = build_navigation(parts, "2", "/v?page=2")
        assert middle.previous_part == parts[0]
        assert middle.next_part == parts[2]

        last = build_navigation(parts, "3", "/v?page=3")
        assert last.previous_part == parts[1]
        assert last.next_part is None

    def test_progress(self) -> None:
        parts = make_parts(4)
        assert build_navigation(parts, None, "/v").progress_percent == 25
        assert build_navigation(parts, "4", "/v?page=4").progress_percent == 100

    def test_progress_without_parts(self) -> None:
        navigation = build_navigation((), None, "/v")
        assert navigation.progress_percent == 0
        assert navigation.previous_part is None
        assert navigation.next_part is None

    def test_sidebar_flag(self) -> None:
        assert build_navigation(make_parts(1), None, "/v", sidebar_open=True).sidebar_open is True


def test_part_url() -> None:
    assert part_url("/videos/power-electronics/v1", 1) == "/videos/power-electronics/v1"
    assert part_url("/videos/power-electronics/v1", 2) == "/videos/power-electronics/v1?page=2"
