"""Deduplicate workouts found in both the database and the GPX files.

The two sources record the same session with slightly different clock
precision, so records are matched on their start minute rather than the
exact instant.
"""

import math

from gbworkouts.models import Workout

BUCKET_SECONDS = 60


def bucket_key(w: Workout) -> int:
    """Start time truncated to whole minutes since the epoch."""
    return math.floor(w.start.timestamp()) // BUCKET_SECONDS


def choose_better(existing: Workout, candidate: Workout) -> bool:
    """True if candidate should replace existing in its bucket.

    Policy: a known duration wins over an unknown one; when both or neither
    are known, a database record wins over any other source. Anything else
    keeps the existing record.
    """
    if existing.duration is None and candidate.duration is not None:
        return True
    if existing.duration is not None and candidate.duration is None:
        return False
    return candidate.is_db and not existing.is_db


def merge_by_start_minute(workouts, prefer=choose_better) -> list[Workout]:
    """One workout per start-minute bucket, newest first.

    Input is ordered by (start, source) before bucketing so the result does
    not depend on how the source lists were concatenated.
    """
    ordered = sorted(workouts, key=lambda w: (w.start, w.source), reverse=True)

    by_key: dict[int, Workout] = {}
    for w in ordered:
        key = bucket_key(w)
        existing = by_key.get(key)
        if existing is None or prefer(existing, w):
            by_key[key] = w

    return sorted(by_key.values(), key=lambda w: w.start, reverse=True)
