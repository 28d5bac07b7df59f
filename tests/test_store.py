"""
Tests for importing workout summaries and GPX points into the SQLite store.
"""

import sqlite3
from datetime import timedelta

import pytest

from conftest import write_gpx
from gbworkouts.analysis.distance import haversine_m, track_distance_m
from gbworkouts.ingest.store import ingest_export
from test_summary import START, summary_row, write_summary

TRACK = [
    (52.5000, 13.4000, "2026-01-29T07:26:00Z", 40.0),
    (52.5010, 13.4000, "2026-01-29T07:27:00Z", 41.0),
    (52.5020, 13.4000, "2026-01-29T07:28:00Z", None),
]


@pytest.fixture
def config(tmp_path):
    return {"paths": {"db": str(tmp_path / "store" / "gbworkouts.db")}}


def _query(config, sql, params=()):
    conn = sqlite3.connect(config["paths"]["db"])
    rows = conn.execute(sql, params).fetchall()
    conn.close()
    return rows


class TestIngestExport:

    def test_upsert_with_points_and_distance(self, export_dir, catalog_file, config):
        write_gpx(export_dir / "files" / "track.gpx", TRACK)
        write_summary(catalog_file, [
            summary_row(1, START, 30, gpx="/storage/emulated/0/files/track.gpx"),
            summary_row(2, START - timedelta(days=1), 20),
        ])

        result = ingest_export(config, export_dir)

        assert result["upserted"] == 2
        assert result["with_points"] == 1
        assert result["points"] == 3
        assert result["distances"] == 1
        assert result["errors"] == 0

        rows = _query(config, "SELECT start_time, duration_s, activity_kind, base_lat "
                              "FROM workouts ORDER BY start_time DESC")
        assert rows[0][0] == START.isoformat()
        assert rows[0][1] == 1800
        assert rows[0][2] == 16
        assert rows[0][3] == pytest.approx(52.5)

        points = _query(config, "SELECT idx, lat, ele FROM workout_points ORDER BY idx")
        assert [p[0] for p in points] == [0, 1, 2]
        assert points[2][2] is None

        (distance,), = _query(config, "SELECT distance_m FROM workout_distance_m")
        assert distance == pytest.approx(haversine_m(52.5, 13.4, 52.502, 13.4))

    def test_reingest_is_idempotent(self, export_dir, catalog_file, config):
        write_gpx(export_dir / "files" / "track.gpx", TRACK)
        write_summary(catalog_file, [summary_row(1, START, 30, gpx="/x/track.gpx")])

        ingest_export(config, export_dir)
        ingest_export(config, export_dir)

        assert _query(config, "SELECT COUNT(*) FROM workouts") == [(1,)]
        assert _query(config, "SELECT COUNT(*) FROM workout_points") == [(3,)]

    def test_updated_summary_replaces_fields(self, export_dir, catalog_file, config):
        write_summary(catalog_file, [summary_row(1, START, 30)])
        ingest_export(config, export_dir, with_points=False)

        catalog_file.unlink()
        write_summary(catalog_file, [summary_row(1, START, 50, kind=26)])
        ingest_export(config, export_dir, with_points=False)

        assert _query(config, "SELECT duration_s, activity_kind FROM workouts") == [(3000, 26)]

    def test_missing_gpx_counted(self, export_dir, catalog_file, config):
        write_summary(catalog_file, [summary_row(1, START, 30, gpx="/x/nowhere.gpx")])
        result = ingest_export(config, export_dir)
        assert result["upserted"] == 1
        assert result["missing_gpx"] == 1
        assert result["with_points"] == 0

    def test_malformed_gpx_counted_and_skipped(self, export_dir, catalog_file, config):
        (export_dir / "files" / "broken.gpx").write_text("<gpx><trk><trkpt lat='1'")
        write_summary(catalog_file, [summary_row(1, START, 30, gpx="/x/broken.gpx")])

        result = ingest_export(config, export_dir)

        assert result["upserted"] == 1
        assert result["errors"] == 1
        assert result["details"][0]["status"] == "error"
        assert _query(config, "SELECT COUNT(*) FROM workout_points") == [(0,)]

    def test_dry_run_writes_nothing(self, export_dir, catalog_file, config):
        write_gpx(export_dir / "files" / "track.gpx", TRACK)
        write_summary(catalog_file, [summary_row(1, START, 30, gpx="/x/track.gpx")])

        result = ingest_export(config, export_dir, dry_run=True)

        assert result["upserted"] == 1
        assert result["points"] == 3
        assert _query(config, "SELECT COUNT(*) FROM workouts") == [(0,)]


class TestTrackDistance:

    def test_single_point_is_zero(self):
        assert track_distance_m([(52.5, 13.4)]) == 0.0

    def test_one_degree_latitude(self):
        assert track_distance_m([(0.0, 0.0), (1.0, 0.0)]) == pytest.approx(111195, rel=1e-3)
