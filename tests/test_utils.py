"""Tests for shared utility functions."""

from datetime import date, datetime, timedelta, timezone

from booking_engine.utils import (
    at_minutes,
    dates_between,
    dedupe_tags,
    minutes_to_time,
    normalize_phone,
    overlaps,
    time_to_minutes,
    to_naive_local,
)


class TestNormalizePhone:
    def test_strips_spaces(self):
        assert normalize_phone("0412 345 678") == "0412345678"

    def test_preserves_leading_plus(self):
        assert normalize_phone("+44 (20) 7946-0958") == "+442079460958"

    def test_strips_whitespace(self):
        assert normalize_phone("  0412345678  ") == "0412345678"


class TestTimeConversion:
    def test_time_to_minutes(self):
        assert time_to_minutes("09:05") == 545

    def test_minutes_to_time_pads(self):
        assert minutes_to_time(545) == "09:05"

    def test_at_minutes(self):
        assert at_minutes(date(2030, 1, 7), 615) == datetime(2030, 1, 7, 10, 15)


class TestOverlaps:
    def test_overlapping_intervals(self):
        a = datetime(2030, 1, 7, 10, 0)
        assert overlaps(a, a.replace(hour=11), a.replace(minute=30), a.replace(hour=12))

    def test_touching_endpoints_do_not_overlap(self):
        a = datetime(2030, 1, 7, 10, 0)
        assert not overlaps(a, a.replace(hour=11), a.replace(hour=11), a.replace(hour=12))

    def test_containment_overlaps(self):
        a = datetime(2030, 1, 7, 10, 0)
        assert overlaps(a, a.replace(hour=12), a.replace(hour=11), a.replace(hour=11, minute=5))


class TestDatesBetween:
    def test_inclusive(self):
        days = dates_between(date(2030, 1, 7), date(2030, 1, 9))
        assert days == [date(2030, 1, 7), date(2030, 1, 8), date(2030, 1, 9)]

    def test_reversed_range_is_empty(self):
        assert dates_between(date(2030, 1, 9), date(2030, 1, 7)) == []


class TestToNaiveLocal:
    def test_naive_unchanged(self):
        value = datetime(2030, 1, 7, 10, 0)
        assert to_naive_local(value) is value

    def test_aware_converted_to_local_wall_time(self):
        local = datetime(2030, 1, 7, 10, 0)
        assert to_naive_local(local.astimezone()) == local

    def test_offset_is_applied(self):
        aware = datetime(2030, 1, 7, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_naive_local(aware) == aware.astimezone().replace(tzinfo=None)
        assert to_naive_local(aware).tzinfo is None


class TestDedupeTags:
    def test_keeps_first_seen_order(self):
        assert dedupe_tags(["cut", "color", "cut"]) == ["cut", "color"]

    def test_strips_and_drops_blanks(self):
        assert dedupe_tags([" cut ", "", "  ", "cut"]) == ["cut"]
