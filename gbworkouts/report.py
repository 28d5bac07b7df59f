from datetime import timedelta

from gbworkouts.ingest.values import whole_seconds
from gbworkouts.models import Workout

UNKNOWN_DURATION = "unknown"


def format_duration(d: timedelta | None) -> str:
    """Format a duration as HH:MM:SS, or 'unknown' when missing."""
    if d is None:
        return UNKNOWN_DURATION
    secs = abs(whole_seconds(d))
    h = secs // 3600
    m = (secs % 3600) // 60
    s = secs % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_workout_line(index: int, w: Workout, details: bool = False) -> str:
    dur = format_duration(w.duration)
    if details:
        return f"{index}\t{w.start.isoformat()}\t{dur}\t{w.source}"
    return dur


def print_workouts(workouts: list[Workout], count: int, details: bool = False):
    for i, w in enumerate(workouts[:count], start=1):
        print(format_workout_line(i, w, details))
