"""Collect workouts from the GPX files in an export's files/ directory."""

from pathlib import Path

from gbworkouts.ingest.gpx_parser import duration_from_gpx, parse_start_from_filename
from gbworkouts.models import GPX_SOURCE_PREFIX, Workout


def _scan_gpx_files(files_dir: Path) -> list[Path]:
    """Recursively glob for .gpx files (case-insensitive), sorted by name."""
    return sorted(
        [f for f in files_dir.rglob("*") if f.is_file() and f.suffix.lower() == ".gpx"],
        key=lambda p: p.name,
    )


def collect_from_gpx(export_dir, verbose: bool = False) -> dict:
    """Build one Workout per GPX file whose name carries a start timestamp.

    Returns dict with keys: workouts (newest first), seen, bad_name, empty,
    duration_known, duration_unknown, details.
    """
    files_dir = Path(export_dir) / "files"
    result = {"workouts": [], "seen": 0, "bad_name": 0, "empty": 0,
              "duration_known": 0, "duration_unknown": 0, "details": []}

    if not files_dir.is_dir():
        if verbose:
            print(f"No files/ directory in {export_dir}, skipping GPX scan")
        return result

    gpx_files = _scan_gpx_files(files_dir)
    if verbose:
        print(f"Found {len(gpx_files)} .gpx file(s) in {files_dir}")

    workouts = []
    for path in gpx_files:
        result["seen"] += 1
        size = path.stat().st_size

        start = parse_start_from_filename(path.name)
        if start is None:
            result["bad_name"] += 1
            result["details"].append({"file": str(path), "size": size, "status": "bad_name"})
            if verbose:
                print(f"  SKIP  {path.name} (no timestamp in filename)")
            continue

        if size == 0:
            result["empty"] += 1
            if verbose:
                print(f"  EMPTY {path.name}")

        duration = duration_from_gpx(path)
        if duration is None:
            result["duration_unknown"] += 1
            status = "duration_unknown"
        else:
            result["duration_known"] += 1
            status = "ok"
        result["details"].append({"file": str(path), "size": size, "status": status})
        if verbose and duration is None and size > 0:
            print(f"  WARN  {path.name} ({size} bytes): duration unknown")

        workouts.append(Workout(start=start, duration=duration,
                                source=f"{GPX_SOURCE_PREFIX}{path.name}"))

    workouts.sort(key=lambda w: w.start, reverse=True)
    result["workouts"] = workouts

    if verbose:
        print(f"GPX: seen={result['seen']} bad_name={result['bad_name']} "
              f"empty={result['empty']} duration_known={result['duration_known']} "
              f"duration_unknown={result['duration_unknown']}")
    return result
