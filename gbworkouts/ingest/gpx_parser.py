"""Streaming GPX parsing for Gadgetbridge track files.

Both entry points make a single forward pass with iterparse and detach every
element from its parent once handled, so large tracks are never materialized
as a tree.
"""

import enum
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta
from pathlib import Path

from gbworkouts.errors import GpxParseError
from gbworkouts.ingest.values import parse_rfc3339
from gbworkouts.models import GeoPoint

# Gadgetbridge filename timestamps use underscores instead of colons:
# 2026-01-29T08_25_59+01_00
FILENAME_TS_RE = re.compile(r"(\d{4}-\d{2}-\d{2}T\d{2}_\d{2}_\d{2}[+-]\d{2}_\d{2})")

TIME_TAG = "time"
POINT_TAG = "trkpt"
ELEVATION_TAG = "ele"


def parse_start_from_filename(file_name: str) -> datetime | None:
    """Extract the UTC start time encoded in a track file name, or None."""
    match = FILENAME_TS_RE.search(file_name)
    if not match:
        return None
    return parse_rfc3339(match.group(1).replace("_", ":"))


def _local_name(tag: str) -> str:
    """Strip the '{namespace}' prefix iterparse puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _parse_float(text: str | None) -> float | None:
    if text is None:
        return None
    try:
        return float(text.strip())
    except ValueError:
        return None


def iter_detached(path):
    """iterparse start/end events, dropping each element from the tree once its end is handled.

    Only the chain of currently open elements stays in memory.
    """
    open_elems = []
    for event, elem in ET.iterparse(str(path), events=("start", "end")):
        if event == "start":
            open_elems.append(elem)
            yield event, elem
            continue
        open_elems.pop()
        yield event, elem
        elem.clear()
        if open_elems:
            open_elems[-1].remove(elem)


def duration_from_gpx(path) -> timedelta | None:
    """Return max(time) - min(time) over all <time> elements, or None.

    Empty and malformed files yield None rather than an error.
    """
    path = Path(path)
    if path.stat().st_size == 0:
        return None

    min_t = None
    max_t = None
    try:
        for event, elem in iter_detached(path):
            if event == "end" and _local_name(elem.tag) == TIME_TAG and elem.text:
                dt = parse_rfc3339(elem.text)
                if dt is not None:
                    min_t = dt if min_t is None else min(min_t, dt)
                    max_t = dt if max_t is None else max(max_t, dt)
    except ET.ParseError:
        return None

    if min_t is not None and max_t is not None and max_t > min_t:
        return max_t - min_t
    return None


class ScanState(enum.Enum):
    OUTSIDE_POINT = "outside_point"
    IN_POINT = "in_point"
    IN_POINT_TIME = "in_point_time"
    IN_POINT_ELEVATION = "in_point_elevation"


class _PointScanner:
    """Per-point state machine fed with iterparse start/end events."""

    def __init__(self):
        self.state = ScanState.OUTSIDE_POINT
        self.points: list[GeoPoint] = []
        self._reset()

    def _reset(self):
        self.lat = None
        self.lon = None
        self.time = None
        self.ele = None

    def start(self, elem):
        name = _local_name(elem.tag)
        if name == POINT_TAG:
            self.state = ScanState.IN_POINT
            self._reset()
            self.lat = _parse_float(elem.get("lat"))
            self.lon = _parse_float(elem.get("lon"))
        elif self.state == ScanState.IN_POINT:
            if name == TIME_TAG:
                self.state = ScanState.IN_POINT_TIME
            elif name == ELEVATION_TAG:
                self.state = ScanState.IN_POINT_ELEVATION

    def end(self, elem):
        name = _local_name(elem.tag)
        if name == TIME_TAG and self.state == ScanState.IN_POINT_TIME:
            if elem.text:
                dt = parse_rfc3339(elem.text)
                if dt is not None:
                    self.time = dt
            self.state = ScanState.IN_POINT
        elif name == ELEVATION_TAG and self.state == ScanState.IN_POINT_ELEVATION:
            ele = _parse_float(elem.text)
            if ele is not None:
                self.ele = ele
            self.state = ScanState.IN_POINT
        elif name == POINT_TAG:
            self.state = ScanState.OUTSIDE_POINT
            if self.lat is not None and self.lon is not None and self.time is not None:
                self.points.append(GeoPoint(
                    idx=len(self.points),
                    time=self.time,
                    lat=self.lat,
                    lon=self.lon,
                    ele=self.ele,
                ))
            self._reset()


def parse_gpx_points(path) -> list[GeoPoint]:
    """Parse all complete <trkpt> entries (lat, lon and time present) in file order.

    Raises GpxParseError on malformed markup. An empty file yields [].
    """
    path = Path(path)
    if path.stat().st_size == 0:
        return []

    scanner = _PointScanner()
    try:
        for event, elem in iter_detached(path):
            if event == "start":
                scanner.start(elem)
            else:
                scanner.end(elem)
    except ET.ParseError as e:
        raise GpxParseError(f"GPX XML parse error: {path}", {"error": str(e)}) from e

    return scanner.points
