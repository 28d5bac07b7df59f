"""Run both extraction pipelines over an export and reconcile the results."""

from gbworkouts.errors import NoWorkoutsFound
from gbworkouts.ingest.db_scan import DEFAULT_MIN_ROWS, DEFAULT_ROW_LIMIT, collect_from_db
from gbworkouts.ingest.gpx_scan import collect_from_gpx
from gbworkouts.ingest.summary import collect_from_summary
from gbworkouts.reconcile.merge import merge_by_start_minute


def collect_workouts(export_dir, use_db: bool = True, use_gpx: bool = True,
                     summary_table: bool = False, row_limit: int = DEFAULT_ROW_LIMIT,
                     min_rows: int = DEFAULT_MIN_ROWS, now=None,
                     verbose: bool = False) -> dict:
    """Collect, merge and rank workouts from an export directory.

    Returns dict with keys: workouts (merged, newest first), gpx, db.
    Raises NoWorkoutsFound when neither source yields anything.
    """
    gpx_result = None
    db_result = None
    found = []

    if use_gpx:
        gpx_result = collect_from_gpx(export_dir, verbose=verbose)
        found.extend(gpx_result["workouts"])

    if use_db:
        if summary_table:
            db_result = collect_from_summary(export_dir, verbose=verbose)
        else:
            db_result = collect_from_db(export_dir, row_limit=row_limit, min_rows=min_rows,
                                        now=now, verbose=verbose)
        found.extend(db_result["workouts"])

    merged = merge_by_start_minute(found)
    if not merged:
        raise NoWorkoutsFound(
            "No workouts found. Check that you passed the Gadgetbridge export root directory.",
            {"export": str(export_dir)},
        )

    if verbose:
        print(f"Merged {len(found)} record(s) into {len(merged)} workout(s)")

    return {"workouts": merged, "gpx": gpx_result, "db": db_result}
