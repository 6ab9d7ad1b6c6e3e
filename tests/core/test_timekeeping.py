"""TimeAccumulator and format_duration unit tests"""

from datetime import UTC, datetime, timedelta

import pytest
from shopfloor.core.exceptions import InvalidIntervalError
from shopfloor.core.timekeeping import TimeAccumulator, format_duration

T0 = datetime(2025, 1, 1, 8, 0, tzinfo=UTC)


class TestElapsedSince:
    def test_positive_interval(self):
        assert TimeAccumulator.elapsed_since(T0, T0 + timedelta(seconds=90)) == 90.0

    def test_zero_interval(self):
        assert TimeAccumulator.elapsed_since(T0, T0) == 0.0

    def test_sub_second_precision(self):
        elapsed = TimeAccumulator.elapsed_since(T0, T0 + timedelta(milliseconds=1500))
        assert elapsed == pytest.approx(1.5)

    def test_now_before_start_rejected(self):
        """Clock skew is an error, never clamped to zero"""
        with pytest.raises(InvalidIntervalError) as exc_info:
            TimeAccumulator.elapsed_since(T0, T0 - timedelta(seconds=1))
        assert exc_info.value.start == T0
        assert exc_info.value.recoverable is True


class TestAccumulate:
    def test_adds_to_prior_total(self):
        total = TimeAccumulator.accumulate(100.0, T0, T0 + timedelta(seconds=50))
        assert total == 150.0

    def test_invalid_interval_propagates(self):
        with pytest.raises(InvalidIntervalError):
            TimeAccumulator.accumulate(100.0, T0, T0 - timedelta(seconds=5))


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "00:00:00"),
            (59.9, "00:00:59"),
            (3661, "01:01:01"),
            (100 * 3600, "100:00:00"),
            (-5, "00:00:00"),
            (float("nan"), "00:00:00"),
        ],
    )
    def test_rendering(self, seconds, expected):
        assert format_duration(seconds) == expected
