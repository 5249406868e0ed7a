from datetime import datetime, timezone

from utils.timestamps import parse_timestamp, timestamp_or_now


def test_parses_common_shapes():
    expected = datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert parse_timestamp(expected) == expected
    assert parse_timestamp("2024-03-01T00:00:00Z") == expected
    assert parse_timestamp({"seconds": expected.timestamp()}) == expected
    assert parse_timestamp({"_seconds": expected.timestamp(), "_nanoseconds": 0}) == expected
    assert parse_timestamp(expected.timestamp() * 1000) == expected


def test_naive_datetimes_are_treated_as_utc():
    assert parse_timestamp(datetime(2024, 1, 1)).tzinfo is timezone.utc


def test_unreadable_values_are_none():
    for bad in (None, "", "not a date", {"foo": 1}, True, []):
        assert parse_timestamp(bad) is None


def test_now_fallback_is_opt_in():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    assert timestamp_or_now("garbage", now=now) == now
