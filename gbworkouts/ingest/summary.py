"""Read Gadgetbridge's fixed BASE_ACTIVITY_SUMMARY table into WorkoutSummary records."""

import json
import sqlite3
from datetime import datetime, timedelta

from gbworkouts.errors import CatalogError
from gbworkouts.export import map_raw_details_to_export
from gbworkouts.ingest.db_scan import catalog_path, open_catalog
from gbworkouts.ingest.values import EPOCH
from gbworkouts.models import DB_SOURCE_PREFIX, Workout, WorkoutSummary

SUMMARY_TABLE = "BASE_ACTIVITY_SUMMARY"

SUMMARY_SQL = """
    SELECT
        _id,
        NAME,
        START_TIME,
        END_TIME,
        ACTIVITY_KIND,
        BASE_LONGITUDE,
        BASE_LATITUDE,
        BASE_ALTITUDE,
        GPX_TRACK,
        RAW_DETAILS_PATH,
        DEVICE_ID,
        USER_ID,
        SUMMARY_DATA,
        RAW_SUMMARY_DATA
    FROM BASE_ACTIVITY_SUMMARY
    ORDER BY START_TIME DESC
"""


def _ms_to_utc(ms) -> datetime | None:
    if not isinstance(ms, int):
        return None
    try:
        return EPOCH + timedelta(milliseconds=ms)
    except OverflowError:
        return None


def _text(value) -> str | None:
    """Text cell, or None when it was not valid UTF-8."""
    return value if isinstance(value, str) else None


def _parse_summary_json(raw):
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


def _read_side_file(path) -> bytes | None:
    if path is None:
        return None
    try:
        return path.read_bytes()
    except OSError:
        return None


def table_exists(conn, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name=? LIMIT 1", (table,)
    ).fetchone()
    return row is not None


def read_base_activity_summary(export_dir, store_raw_details: bool = False,
                               verbose: bool = False) -> list[WorkoutSummary]:
    """Read every BASE_ACTIVITY_SUMMARY row, newest first.

    Returns [] when the export has no database. Raises CatalogError when the
    database cannot be read or lacks the summary table.
    """
    db_path = catalog_path(export_dir)
    if not db_path.exists():
        return []

    conn = open_catalog(db_path)
    try:
        if not table_exists(conn, SUMMARY_TABLE):
            raise CatalogError(f"SQLite DB does not contain {SUMMARY_TABLE}: {db_path}")
        rows = conn.execute(SUMMARY_SQL).fetchall()
    except sqlite3.Error as e:
        raise CatalogError(f"Reading {SUMMARY_TABLE}: {db_path}", {"error": str(e)}) from e
    finally:
        conn.close()

    out = []
    for r in rows:
        (row_id, name, start_ms, end_ms, kind, lon_e7, lat_e7, alt,
         gpx_track, raw_details_path, device_id, user_id, summary_raw, raw_summary) = r
        name, gpx_track, raw_details_path, summary_raw = (
            _text(name), _text(gpx_track), _text(raw_details_path), _text(summary_raw))

        start = _ms_to_utc(start_ms)
        end = _ms_to_utc(end_ms)
        if start is None or end is None:
            if verbose:
                print(f"  SKIP  summary #{row_id}: bad start/end ({start_ms}, {end_ms})")
            continue

        raw_details = None
        if store_raw_details:
            raw_details = _read_side_file(map_raw_details_to_export(export_dir, raw_details_path))

        out.append(WorkoutSummary(
            name=name,
            start=start,
            end=end,
            activity_kind=kind if kind is not None else 0,
            base_longitude_e7=lon_e7,
            base_latitude_e7=lat_e7,
            base_altitude=alt,
            gpx_track_android=gpx_track,
            raw_details_android=raw_details_path,
            device_id=device_id or 0,
            user_id=user_id or 0,
            summary_data_raw=summary_raw,
            summary_data_json=_parse_summary_json(summary_raw),
            raw_summary_data=raw_summary,
            raw_details=raw_details,
        ))

    return out


def collect_from_summary(export_dir, verbose: bool = False) -> dict:
    """Workouts from the fixed summary table, shaped like collect_from_db's result."""
    summaries = read_base_activity_summary(export_dir, verbose=verbose)
    workouts = []
    for s in summaries:
        duration = s.duration if s.end > s.start else None
        workouts.append(Workout(
            start=s.start,
            duration=duration,
            source=f"{DB_SOURCE_PREFIX}{SUMMARY_TABLE} kind={s.activity_kind}",
        ))
    if verbose:
        print(f"DB: {len(workouts)} workouts from {SUMMARY_TABLE}")
    return {"workouts": workouts, "tables": 1 if summaries else 0,
            "candidates": [], "selected": SUMMARY_TABLE if summaries else None}
