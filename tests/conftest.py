"""
Pytest fixtures for gbworkouts tests.

Builds throwaway Gadgetbridge-style export directories: GPX files under
files/ and a SQLite catalog at database/Gadgetbridge.
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

NOW = datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc)

GPX_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<gpx version="1.1" creator="Gadgetbridge" xmlns="http://www.topografix.com/GPX/1/1">\n'
)


def gpx_document(points, metadata_time=None) -> str:
    """Render a GPX document from (lat, lon, time, ele) tuples; any field may be None."""
    parts = [GPX_HEADER]
    if metadata_time:
        parts.append(f"  <metadata><time>{metadata_time}</time></metadata>\n")
    parts.append("  <trk><trkseg>\n")
    for lat, lon, t, ele in points:
        attrs = ""
        if lat is not None:
            attrs += f' lat="{lat}"'
        if lon is not None:
            attrs += f' lon="{lon}"'
        parts.append(f"    <trkpt{attrs}>")
        if ele is not None:
            parts.append(f"<ele>{ele}</ele>")
        if t is not None:
            parts.append(f"<time>{t}</time>")
        parts.append("</trkpt>\n")
    parts.append("  </trkseg></trk>\n</gpx>\n")
    return "".join(parts)


def write_gpx(path: Path, points, metadata_time=None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(gpx_document(points, metadata_time))
    return path


def make_catalog(db_path: Path, tables: dict) -> Path:
    """Create a SQLite DB from {table: (create_columns_sql, [row tuples])}."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    for table, (columns_sql, rows) in tables.items():
        quoted = table.replace('"', '""')
        conn.execute(f'CREATE TABLE "{quoted}" ({columns_sql})')
        if rows:
            placeholders = ", ".join("?" for _ in rows[0])
            conn.executemany(f'INSERT INTO "{quoted}" VALUES ({placeholders})', rows)
    conn.commit()
    conn.close()
    return db_path


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def export_dir(tmp_path):
    """Empty export root with files/ and database/ directories."""
    root = tmp_path / "export"
    (root / "files").mkdir(parents=True)
    (root / "database").mkdir()
    return root


@pytest.fixture
def catalog_file(export_dir):
    return export_dir / "database" / "Gadgetbridge"
