"""
Tests for duration formatting and listing output.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gbworkouts.models import Workout
from gbworkouts.report import format_duration, format_workout_line, print_workouts


class TestFormatDuration:

    @pytest.mark.parametrize("d,expected", [
        (timedelta(0), "00:00:00"),
        (timedelta(seconds=45), "00:00:45"),
        (timedelta(hours=1, minutes=2, seconds=3), "01:02:03"),
        (timedelta(hours=27, seconds=1), "27:00:01"),
        (timedelta(seconds=59, milliseconds=999), "00:00:59"),
        (timedelta(seconds=-90), "00:01:30"),
    ])
    def test_formats(self, d, expected):
        assert format_duration(d) == expected

    def test_unknown(self):
        assert format_duration(None) == "unknown"


class TestListing:

    W = Workout(start=datetime(2026, 1, 29, 7, 25, 59, tzinfo=timezone.utc),
                duration=timedelta(minutes=31), source="db:ACTIVITY")

    def test_plain_line_is_duration_only(self):
        assert format_workout_line(1, self.W) == "00:31:00"

    def test_detail_line(self):
        assert format_workout_line(2, self.W, details=True) == (
            "2\t2026-01-29T07:25:59+00:00\t00:31:00\tdb:ACTIVITY"
        )

    def test_print_respects_count(self, capsys):
        print_workouts([self.W, self.W, self.W], count=2)
        assert capsys.readouterr().out == "00:31:00\n00:31:00\n"
