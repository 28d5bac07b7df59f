"""Import fixed-schema workout summaries and their GPX points into the SQLite store."""

import json

from gbworkouts.analysis.distance import refresh_workout_distances
from gbworkouts.db import ensure_schema, get_connection
from gbworkouts.errors import GpxParseError
from gbworkouts.export import map_gpx_to_export, open_export
from gbworkouts.ingest.gpx_parser import parse_gpx_points
from gbworkouts.ingest.summary import read_base_activity_summary
from gbworkouts.ingest.values import whole_seconds
from gbworkouts.models import INT32_MAX, GeoPoint, WorkoutSummary


def duration_seconds(s: WorkoutSummary) -> int:
    return min(abs(whole_seconds(s.duration)), INT32_MAX)


def upsert_workout(conn, s: WorkoutSummary) -> int:
    """Insert or update a workout keyed by (device_id, start_time). Returns its row id."""
    start_iso = s.start.isoformat()
    summary_json = json.dumps(s.summary_data_json) if s.summary_data_json is not None else None

    conn.execute(
        """INSERT INTO workouts
           (device_id, user_id, activity_kind, start_time, end_time, duration_s,
            name, base_longitude_e7, base_latitude_e7, base_altitude,
            base_lon, base_lat, gpx_track_android, raw_details_android,
            summary_data_raw, summary_data_json, raw_summary_data, raw_details,
            updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, datetime('now'))
           ON CONFLICT(device_id, start_time) DO UPDATE SET
               user_id=excluded.user_id,
               activity_kind=excluded.activity_kind,
               end_time=excluded.end_time,
               duration_s=excluded.duration_s,
               name=excluded.name,
               base_longitude_e7=excluded.base_longitude_e7,
               base_latitude_e7=excluded.base_latitude_e7,
               base_altitude=excluded.base_altitude,
               base_lon=excluded.base_lon,
               base_lat=excluded.base_lat,
               gpx_track_android=excluded.gpx_track_android,
               raw_details_android=excluded.raw_details_android,
               summary_data_raw=excluded.summary_data_raw,
               summary_data_json=excluded.summary_data_json,
               raw_summary_data=excluded.raw_summary_data,
               raw_details=excluded.raw_details,
               updated_at=excluded.updated_at""",
        (s.device_id, s.user_id, s.activity_kind, start_iso, s.end.isoformat(),
         duration_seconds(s), s.name, s.base_longitude_e7, s.base_latitude_e7,
         s.base_altitude, s.base_lon, s.base_lat, s.gpx_track_android,
         s.raw_details_android, s.summary_data_raw, summary_json,
         s.raw_summary_data, s.raw_details),
    )
    row = conn.execute(
        "SELECT id FROM workouts WHERE device_id = ? AND start_time = ?",
        (s.device_id, start_iso),
    ).fetchone()
    return row[0]


def replace_points(conn, workout_id: int, points: list[GeoPoint]):
    """Replace all stored points of a workout in one transaction."""
    with conn:
        conn.execute("DELETE FROM workout_points WHERE workout_id = ?", (workout_id,))
        conn.executemany(
            """INSERT INTO workout_points (workout_id, idx, t, lat, lon, ele)
               VALUES (?, ?, ?, ?, ?, ?)""",
            [(workout_id, p.idx, p.time.isoformat(), p.lat, p.lon, p.ele) for p in points],
        )


def _import_points(conn, export_dir, s: WorkoutSummary, workout_id: int,
                   result: dict, dry_run: bool, verbose: bool):
    gpx_path = map_gpx_to_export(export_dir, s.gpx_track_android)
    if gpx_path is None:
        return
    if not gpx_path.exists():
        result["missing_gpx"] += 1
        result["details"].append({"file": str(gpx_path), "status": "missing"})
        if verbose:
            print(f"  WARN  GPX referenced by DB is missing: {gpx_path}")
        return

    try:
        points = parse_gpx_points(gpx_path)
    except GpxParseError as e:
        result["errors"] += 1
        result["details"].append({"file": str(gpx_path), "status": "error", "error": str(e)})
        if verbose:
            print(f"  ERROR {gpx_path.name}: {e}")
        return

    if not points:
        return
    if not dry_run:
        replace_points(conn, workout_id, points)
    result["with_points"] += 1
    result["points"] += len(points)


def ingest_export(config: dict, export_path, with_points: bool = True,
                  store_raw_details: bool = True, dry_run: bool = False,
                  verbose: bool = False) -> dict:
    """Upsert every summary of an export (dir or ZIP) into the store.

    Returns dict with keys: upserted, with_points, points, missing_gpx,
    errors, distances, details.
    """
    result = {"upserted": 0, "with_points": 0, "points": 0, "missing_gpx": 0,
              "errors": 0, "distances": 0, "details": []}

    with open_export(export_path, verbose=verbose) as export_dir:
        summaries = read_base_activity_summary(export_dir, store_raw_details, verbose=verbose)
        if verbose:
            print(f"Found {len(summaries)} workout summaries")

        conn = get_connection(config)
        try:
            ensure_schema(conn)
            for s in summaries:
                workout_id = 0
                if not dry_run:
                    workout_id = upsert_workout(conn, s)
                    conn.commit()
                result["upserted"] += 1
                if verbose:
                    print(f"  {'DRY' if dry_run else 'UPSERT'} {s.start.isoformat()} "
                          f"kind={s.activity_kind} device={s.device_id}")

                if with_points:
                    _import_points(conn, export_dir, s, workout_id, result, dry_run, verbose)

            if not dry_run:
                result["distances"] = refresh_workout_distances(conn)
        finally:
            conn.close()

    return result
