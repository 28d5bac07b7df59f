"""Heuristic scoring to find the workout table in an unknown SQLite schema.

The vocabularies are plain (term, weight) data. A term scores when it is a
substring of the lower-cased table or column name.
"""

from datetime import datetime, timezone

from gbworkouts.models import TableCandidate, Workout

TABLE_POSITIVE_TERMS = [
    ("workout", 8),
    ("activity", 6),
    ("training", 6),
    ("sport", 5),
    ("session", 5),
    ("run", 3),
    ("exercise", 4),
    ("track", 2),
]

TABLE_NEGATIVE_TERMS = [
    ("sample", -4),
    ("samples", -4),
    ("raw", -3),
    ("debug", -4),
    ("log", -3),
]

START_TERMS = [("start", 6), ("begin", 4), ("time", 3)]
END_TERMS = [("end", 6), ("stop", 4), ("finish", 4), ("time", 3)]
DURATION_TERMS = [("duration", 8), ("elapsed", 5)]
# (required substrings, weight)
DURATION_COMBO_TERMS = [(("total", "time"), 5), (("moving", "time"), 4)]
DURATION_SUFFIXES = [(("_ms",), 3), (("_sec", "_secs"), 3)]
TYPE_TERMS = [("sport", 5), ("activity", 4), ("name", 2)]

TIMESTAMP_WEIGHT = 4
EXACT_TIMESTAMP_BONUS = 2
EXACT_TYPE_WEIGHT = 5

# Below this composite score a table also needs a suggestive name
MIN_COMPOSITE_SCORE = 6

ROW_COUNT_WEIGHT = 3
RECENCY_BONUSES = [(7, 25), (30, 10)]


def _sum_terms(name: str, terms) -> int:
    return sum(weight for term, weight in terms if term in name)


def _timestamp_score(c: str) -> int:
    # counted once even when both match
    return TIMESTAMP_WEIGHT if ("ts" in c or "timestamp" in c) else 0


def table_name_score(table: str) -> int:
    t = table.lower()
    return _sum_terms(t, TABLE_POSITIVE_TERMS) + _sum_terms(t, TABLE_NEGATIVE_TERMS)


def col_score_start(col: str) -> int:
    c = col.lower()
    s = _sum_terms(c, START_TERMS) + _timestamp_score(c)
    if c == "timestamp":
        s += EXACT_TIMESTAMP_BONUS
    return s


def col_score_end(col: str) -> int:
    c = col.lower()
    return _sum_terms(c, END_TERMS) + _timestamp_score(c)


def col_score_duration(col: str) -> int:
    c = col.lower()
    s = _sum_terms(c, DURATION_TERMS)
    for parts, weight in DURATION_COMBO_TERMS:
        if all(p in c for p in parts):
            s += weight
    for suffixes, weight in DURATION_SUFFIXES:
        if c.endswith(suffixes):
            s += weight
    return s


def col_score_type(col: str) -> int:
    c = col.lower()
    s = _sum_terms(c, TYPE_TERMS)
    if c == "type":
        s += EXACT_TYPE_WEIGHT
    return s


def best_column(columns, score_fn) -> str | None:
    """Column with the strictly highest positive score; first one wins ties."""
    best = None
    best_score = 0
    for col in columns:
        sc = score_fn(col)
        if sc > best_score:
            best, best_score = col, sc
    return best


def build_table_candidate(table: str, columns) -> TableCandidate | None:
    """Score one table; None unless it has a start column and an end or duration column."""
    name_score = table_name_score(table)

    start_col = best_column(columns, col_score_start)
    if start_col is None:
        return None
    end_col = best_column(columns, col_score_end)
    dur_col = best_column(columns, col_score_duration)
    if end_col is None and dur_col is None:
        return None
    type_col = best_column(columns, col_score_type)

    score = name_score + col_score_start(start_col)
    if end_col is not None:
        score += col_score_end(end_col)
    if dur_col is not None:
        score += col_score_duration(dur_col)

    # A lone "time" column on an unsuggestive table is not enough
    if score < MIN_COMPOSITE_SCORE and name_score <= 0:
        return None

    return TableCandidate(
        table=table,
        start_col=start_col,
        end_col=end_col,
        dur_col=dur_col,
        type_col=type_col,
        score=score,
    )


def score_catalog(catalog: dict) -> list[TableCandidate]:
    """Candidates for every plausible table in {table: [columns]}, in catalog order."""
    out = []
    for table, columns in catalog.items():
        cand = build_table_candidate(table, columns)
        if cand is not None:
            out.append(cand)
    return out


def recency_bonus(workouts: list[Workout], now: datetime | None = None) -> int:
    if not workouts:
        return 0
    now = now or datetime.now(timezone.utc)
    newest = max(w.start for w in workouts)
    age_days = (now - newest).days
    for max_days, bonus in RECENCY_BONUSES:
        if age_days <= max_days:
            return bonus
    return 0


def adjusted_score(candidate: TableCandidate, workouts: list[Workout],
                   now: datetime | None = None) -> int:
    """Composite score weighted by extracted row count and data recency."""
    return candidate.score + ROW_COUNT_WEIGHT * len(workouts) + recency_bonus(workouts, now)


def select_best(scored) -> tuple | None:
    """Pick the (score, ...) tuple with the highest score; first seen wins ties."""
    best = None
    for item in scored:
        if best is None or item[0] > best[0]:
            best = item
    return best
