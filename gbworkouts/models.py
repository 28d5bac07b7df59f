from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

E7_SCALE = 10_000_000.0
INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

DB_SOURCE_PREFIX = "db:"
GPX_SOURCE_PREFIX = "gpx:"


@dataclass(frozen=True)
class Workout:
    start: datetime
    duration: Optional[timedelta] = None
    source: str = ""

    @property
    def is_db(self) -> bool:
        return self.source.startswith(DB_SOURCE_PREFIX)


@dataclass(frozen=True)
class GeoPoint:
    idx: int
    time: datetime
    lat: float
    lon: float
    ele: Optional[float] = None


@dataclass(frozen=True)
class TableCandidate:
    table: str
    start_col: str
    end_col: Optional[str] = None
    dur_col: Optional[str] = None
    type_col: Optional[str] = None
    score: int = 0


def e7_to_degrees(value: Optional[int]) -> Optional[float]:
    """Convert a 1e7-scaled coordinate to degrees; None if it does not fit an int32."""
    if value is None or not INT32_MIN <= value <= INT32_MAX:
        return None
    return value / E7_SCALE


@dataclass
class WorkoutSummary:
    start: datetime
    end: datetime
    activity_kind: int
    device_id: int
    user_id: int
    name: Optional[str] = None

    base_longitude_e7: Optional[int] = None
    base_latitude_e7: Optional[int] = None
    base_altitude: Optional[int] = None

    gpx_track_android: Optional[str] = None
    raw_details_android: Optional[str] = None

    summary_data_raw: Optional[str] = None
    summary_data_json: Any = None
    raw_summary_data: Optional[bytes] = None
    raw_details: Optional[bytes] = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def base_lon(self) -> Optional[float]:
        return e7_to_degrees(self.base_longitude_e7)

    @property
    def base_lat(self) -> Optional[float]:
        return e7_to_degrees(self.base_latitude_e7)
