"""Unit tests for event timestamp formatting."""

from datetime import datetime

import pytest

from jobtrack.utils.timestamp import format_timestamp, now_exact

NOW = datetime(2025, 11, 13, 18, 45, 40)


@pytest.mark.unit
def test_absolute_format_drops_microseconds():
    assert format_timestamp("2025-11-13T18:45:40.572549") == "2025-11-13 18:45:40"


@pytest.mark.unit
@pytest.mark.parametrize(
    "iso_timestamp, expected",
    [
        ("2025-11-13T18:45:40", "0s ago"),
        ("2025-11-13T18:45:10", "30s ago"),
        ("2025-11-13T18:30:40", "15m ago"),
        ("2025-11-13T16:40:00", "2h ago"),
        ("2025-11-08T18:45:40", "5d ago"),
        ("2025-11-13T18:50:40", "5m from now"),
    ],
)
def test_relative_format_uses_largest_unit(iso_timestamp, expected):
    assert format_timestamp(iso_timestamp, relative=True, now=NOW) == expected


@pytest.mark.unit
@pytest.mark.parametrize("value", ["not a time", ""])
def test_unparseable_timestamp_returned_unchanged(value):
    assert format_timestamp(value) == value
    assert format_timestamp(value, relative=True) == value


@pytest.mark.unit
def test_now_exact_round_trips():
    assert isinstance(datetime.fromisoformat(now_exact()), datetime)
