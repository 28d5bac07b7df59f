"""Convert raw SQLite cells and GPX text into UTC datetimes and durations.

Catalog columns hold timestamps in whatever form the writing app chose:
epoch integers in s/ms/us/ns, floats, RFC3339 strings or naive local-format
strings. Everything here returns None for values it cannot interpret so the
caller can drop the row instead of failing the scan.
"""

import math
import re
from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# (exclusive lower bound, unit, divisor to seconds)
EPOCH_UNITS = [
    (1_000_000_000_000_000_000, "ns", 1_000_000_000),
    (1_000_000_000_000_000, "us", 1_000_000),
    (1_000_000_000_000, "ms", 1_000),
]

NAIVE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S")

# Full date, full time with seconds, and either Z or a +hh:mm offset
RFC3339_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2}(?:\.\d+)?)([Zz]|[+-]\d{2}:\d{2})$"
)

# Integer durations at or above this are taken as milliseconds
DURATION_MS_THRESHOLD = 1_000_000

EARLIEST_START = datetime(2010, 1, 1, tzinfo=timezone.utc)
MAX_FUTURE = timedelta(days=1)
MIN_DURATION_S = 30
MAX_DURATION_S = 24 * 60 * 60


def parse_rfc3339(text: str) -> datetime | None:
    """Parse an RFC3339 timestamp into UTC. Naive and other ISO 8601 forms are rejected."""
    match = RFC3339_RE.match(text.strip())
    if not match:
        return None
    date, time, offset = match.groups()
    if offset in ("Z", "z"):
        offset = "+00:00"
    try:
        dt = datetime.fromisoformat(f"{date}T{time}{offset}")
    except ValueError:
        return None
    return dt.astimezone(timezone.utc)


def _parse_int(s: str) -> int | None:
    """int() without Python's '_' digit separators."""
    if "_" in s:
        return None
    try:
        return int(s)
    except ValueError:
        return None


def epoch_unit(value: int) -> str:
    """Infer the unit of an epoch integer from its magnitude."""
    for bound, unit, _ in EPOCH_UNITS:
        if value > bound:
            return unit
    return "s"


def epoch_to_utc(value: int) -> datetime | None:
    if value <= 0:
        return None
    secs = value
    for bound, _, divisor in EPOCH_UNITS:
        if value > bound:
            secs = value // divisor
            break
    try:
        return EPOCH + timedelta(seconds=secs)
    except OverflowError:
        return None


def float_to_int_trunc(value: float) -> int | None:
    if not math.isfinite(value):
        return None
    return math.trunc(value)


def parse_datetime_value(value) -> datetime | None:
    """Interpret a start/end cell as a UTC datetime."""
    if value is None or isinstance(value, (bytes, bytearray, memoryview)):
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return epoch_to_utc(value)
    if isinstance(value, float):
        i = float_to_int_trunc(value)
        return epoch_to_utc(i) if i is not None else None
    if isinstance(value, str):
        s = value.strip()

        dt = parse_rfc3339(s)
        if dt is not None:
            return dt

        for fmt in NAIVE_FORMATS:
            try:
                return datetime.strptime(s, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                pass

        i = _parse_int(s)
        return epoch_to_utc(i) if i is not None else None
    return None


def _float_seconds_to_duration(value: float) -> timedelta | None:
    if not math.isfinite(value) or math.copysign(1.0, value) < 0:
        return None
    ms = float_to_int_trunc(round(value * 1000.0))
    if ms is None:
        return None
    return timedelta(milliseconds=ms)


def parse_duration_value(value) -> timedelta | None:
    """Interpret a duration cell: ints are seconds (or ms when large), floats are seconds."""
    if value is None or isinstance(value, (bytes, bytearray, memoryview)):
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        if value < 0:
            return None
        if value >= DURATION_MS_THRESHOLD:
            return timedelta(milliseconds=value)
        return timedelta(seconds=value)
    if isinstance(value, float):
        return _float_seconds_to_duration(value)
    if isinstance(value, str):
        s = value.strip()
        if "_" in s:
            return None
        i = _parse_int(s)
        if i is not None:
            return parse_duration_value(i)
        try:
            return _float_seconds_to_duration(float(s))
        except (ValueError, OverflowError):
            return None
    return None


def whole_seconds(d: timedelta) -> int:
    """Seconds in d, truncated toward zero."""
    return math.trunc(d.total_seconds())


def plausible_start(dt: datetime, now: datetime | None = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return EARLIEST_START <= dt <= now + MAX_FUTURE


def plausible_duration(d: timedelta) -> bool:
    return MIN_DURATION_S <= whole_seconds(d) <= MAX_DURATION_S
