"""Find and read the workout table of a Gadgetbridge SQLite catalog of unknown schema."""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from gbworkouts.errors import CatalogError
from gbworkouts.ingest.scorer import adjusted_score, score_catalog, select_best
from gbworkouts.ingest.values import (
    parse_datetime_value,
    parse_duration_value,
    plausible_duration,
    plausible_start,
)
from gbworkouts.models import DB_SOURCE_PREFIX, TableCandidate, Workout

DEFAULT_ROW_LIMIT = 500
DEFAULT_MIN_ROWS = 3


def catalog_path(export_dir) -> Path:
    return Path(export_dir) / "database" / "Gadgetbridge"


def _decode_text(raw: bytes):
    # Invalid UTF-8 stays bytes so only that cell's row is dropped
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw


def open_catalog(db_path: Path) -> sqlite3.Connection:
    """Open the export database read-only."""
    try:
        conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise CatalogError(f"Opening SQLite DB: {db_path}", {"error": str(e)}) from e
    conn.text_factory = _decode_text
    return conn


def quote_ident(ident: str) -> str:
    return '"' + ident.replace('"', '""') + '"'


def list_tables(conn) -> list[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
    ).fetchall()
    return [r[0] for r in rows if isinstance(r[0], str)]


def table_columns(conn, table: str) -> list[str]:
    rows = conn.execute(f"PRAGMA table_info({quote_ident(table)})").fetchall()
    return [r[1] for r in rows if isinstance(r[1], str)]


def read_catalog(conn) -> dict:
    """Return {table: [column names]} for every user table."""
    return {t: table_columns(conn, t) for t in list_tables(conn)}


def _source_tag(table: str, kind) -> str:
    if kind is None or isinstance(kind, bytes):
        return f"{DB_SOURCE_PREFIX}{table}"
    return f"{DB_SOURCE_PREFIX}{table} kind={kind}"


def row_to_workout(row, cand: TableCandidate, now: datetime | None = None) -> Workout | None:
    """Convert one selected row; None when the row fails plausibility checks."""
    start = parse_datetime_value(row[0])
    if start is None:
        return None

    has_second = cand.end_col is not None or cand.dur_col is not None
    if cand.end_col is not None:
        end = parse_datetime_value(row[1])
        duration = end - start if end is not None and end > start else None
    else:
        duration = parse_duration_value(row[1])

    if not plausible_start(start, now):
        return None
    if duration is not None and not plausible_duration(duration):
        return None

    kind = None
    if cand.type_col is not None:
        kind = row[2 if has_second else 1]

    return Workout(start=start, duration=duration, source=_source_tag(cand.table, kind))


def extract_workouts_from_table(conn, cand: TableCandidate, limit: int = DEFAULT_ROW_LIMIT,
                                now: datetime | None = None) -> list[Workout]:
    """Read the most recent rows of a candidate table as Workouts, newest first."""
    select_cols = [quote_ident(cand.start_col)]
    if cand.end_col is not None:
        select_cols.append(quote_ident(cand.end_col))
    elif cand.dur_col is not None:
        select_cols.append(quote_ident(cand.dur_col))
    if cand.type_col is not None:
        select_cols.append(quote_ident(cand.type_col))

    sql = (
        f"SELECT {', '.join(select_cols)} FROM {quote_ident(cand.table)} "
        f"ORDER BY {quote_ident(cand.start_col)} DESC LIMIT ?"
    )

    out = []
    for row in conn.execute(sql, (int(limit),)):
        w = row_to_workout(row, cand, now)
        if w is not None:
            out.append(w)

    out.sort(key=lambda w: w.start, reverse=True)
    return out


def collect_from_db(export_dir, row_limit: int = DEFAULT_ROW_LIMIT,
                    min_rows: int = DEFAULT_MIN_ROWS, now: datetime | None = None,
                    verbose: bool = False) -> dict:
    """Infer the workout table and return its rows.

    Returns dict with keys: workouts, tables, candidates, selected.
    Raises CatalogError if the database exists but cannot be inspected.
    """
    result = {"workouts": [], "tables": 0, "candidates": [], "selected": None}
    db_path = catalog_path(export_dir)
    if not db_path.exists():
        if verbose:
            print(f"No database at {db_path}, skipping DB scan")
        return result

    now = now or datetime.now(timezone.utc)
    conn = open_catalog(db_path)
    try:
        try:
            catalog = read_catalog(conn)
        except sqlite3.Error as e:
            raise CatalogError(f"Inspecting SQLite DB: {db_path}", {"error": str(e)}) from e

        result["tables"] = len(catalog)
        scored = []
        for cand in score_catalog(catalog):
            try:
                workouts = extract_workouts_from_table(conn, cand, row_limit, now)
            except sqlite3.Error as e:
                result["candidates"].append({"table": cand.table, "score": cand.score,
                                             "rows": 0, "error": str(e)})
                if verbose:
                    print(f"  ERROR table {cand.table}: {e}")
                continue

            entry = {"table": cand.table, "score": cand.score, "rows": len(workouts),
                     "start_col": cand.start_col, "end_col": cand.end_col,
                     "dur_col": cand.dur_col, "type_col": cand.type_col}
            if len(workouts) < min_rows:
                entry["skipped"] = "too_few_rows"
                result["candidates"].append(entry)
                if verbose:
                    print(f"  TABLE {cand.table} score={cand.score} rows={len(workouts)} (too few rows)")
                continue

            entry["adjusted"] = adjusted_score(cand, workouts, now)
            result["candidates"].append(entry)
            if verbose:
                print(f"  TABLE {cand.table} score={cand.score} rows={len(workouts)} "
                      f"adjusted={entry['adjusted']}")
            scored.append((entry["adjusted"], cand, workouts))
    finally:
        conn.close()

    best = select_best(scored)
    if best is not None:
        _, cand, workouts = best
        result["selected"] = cand.table
        result["workouts"] = workouts
        if verbose:
            print(f"DB: selected table {cand.table} ({len(workouts)} workouts)")
    elif verbose:
        print(f"DB: no workout-like table among {result['tables']} table(s)")

    return result
