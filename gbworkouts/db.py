import sqlite3
from pathlib import Path

SCHEMA_SQL = """\
-- One row per workout summary, keyed by device + start time
CREATE TABLE IF NOT EXISTS workouts (
    id                  INTEGER PRIMARY KEY,
    device_id           INTEGER NOT NULL,
    user_id             INTEGER NOT NULL,
    activity_kind       INTEGER NOT NULL,
    start_time          TEXT NOT NULL,
    end_time            TEXT NOT NULL,
    duration_s          INTEGER NOT NULL,
    name                TEXT,
    base_longitude_e7   INTEGER,
    base_latitude_e7    INTEGER,
    base_altitude       INTEGER,
    base_lon            REAL,
    base_lat            REAL,
    gpx_track_android   TEXT,
    raw_details_android TEXT,
    summary_data_raw    TEXT,
    summary_data_json   TEXT,
    raw_summary_data    BLOB,
    raw_details         BLOB,
    created_at          TEXT DEFAULT (datetime('now')),
    updated_at          TEXT DEFAULT (datetime('now')),
    UNIQUE (device_id, start_time)
);

-- GPS track points parsed from the workout's GPX file
CREATE TABLE IF NOT EXISTS workout_points (
    workout_id          INTEGER NOT NULL REFERENCES workouts(id) ON DELETE CASCADE,
    idx                 INTEGER NOT NULL,
    t                   TEXT NOT NULL,
    lat                 REAL NOT NULL,
    lon                 REAL NOT NULL,
    ele                 REAL,
    PRIMARY KEY (workout_id, idx)
);

-- Per-workout track distance, rebuilt after each ingest
CREATE TABLE IF NOT EXISTS workout_distance_m (
    workout_id          INTEGER PRIMARY KEY REFERENCES workouts(id) ON DELETE CASCADE,
    distance_m          REAL NOT NULL
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_workouts_start_time ON workouts(start_time DESC);
CREATE INDEX IF NOT EXISTS idx_workouts_kind ON workouts(activity_kind);
CREATE INDEX IF NOT EXISTS idx_workout_points_t ON workout_points(t);
"""

DEFAULT_DB_PATH = Path.home() / "gbworkouts" / "data" / "gbworkouts.db"


def get_db_path(config=None):
    """Resolve the database path from config or fall back to default."""
    if config and "paths" in config and config["paths"].get("db"):
        return Path(config["paths"]["db"])
    return DEFAULT_DB_PATH


def get_connection(config=None):
    """Return a sqlite3 connection using the configured db path."""
    db_path = get_db_path(config)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def ensure_schema(conn):
    """Create all tables and indexes if missing."""
    conn.executescript(SCHEMA_SQL)
    conn.commit()


def init_db(config=None):
    """Create all tables and indexes."""
    conn = get_connection(config)
    ensure_schema(conn)
    conn.close()
    db_path = get_db_path(config)
    print(f"Database initialized at {db_path}")
    return db_path
