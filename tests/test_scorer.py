"""
Tests for schema-agnostic table and column scoring.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gbworkouts.ingest.scorer import (
    TABLE_NEGATIVE_TERMS,
    TABLE_POSITIVE_TERMS,
    adjusted_score,
    best_column,
    build_table_candidate,
    col_score_duration,
    col_score_end,
    col_score_start,
    col_score_type,
    recency_bonus,
    score_catalog,
    select_best,
    table_name_score,
)
from gbworkouts.models import TableCandidate, Workout

NOW = datetime(2026, 2, 1, tzinfo=timezone.utc)


class TestVocabularies:
    """The vocabularies are plain data."""

    def test_positive_terms_have_positive_weights(self):
        assert all(w > 0 for _, w in TABLE_POSITIVE_TERMS)

    def test_negative_terms_have_negative_weights(self):
        assert all(w < 0 for _, w in TABLE_NEGATIVE_TERMS)


class TestTableNameScore:

    @pytest.mark.parametrize("table,score", [
        ("BASE_ACTIVITY_SUMMARY", 6),
        ("WorkoutSession", 13),
        ("sleep_samples", -8),
        ("raw_debug_log", -10),
        ("DEVICE", 0),
    ])
    def test_scores(self, table, score):
        assert table_name_score(table) == score


class TestColumnScores:

    def test_start(self):
        assert col_score_start("START_TIME") == 9
        assert col_score_start("timestamp") == 9
        assert col_score_start("begin_ts") == 8
        assert col_score_start("name") == 0

    def test_end(self):
        assert col_score_end("END_TIME") == 9
        assert col_score_end("stop") == 4
        assert col_score_end("finished_at") == 4

    def test_duration(self):
        assert col_score_duration("duration") == 8
        assert col_score_duration("elapsed_ms") == 8
        assert col_score_duration("TOTAL_TIME") == 5
        assert col_score_duration("moving_time_secs") == 7
        assert col_score_duration("distance") == 0

    def test_type(self):
        assert col_score_type("type") == 5
        assert col_score_type("ACTIVITY_KIND") == 4
        assert col_score_type("sport_name") == 7
        assert col_score_type("kind") == 0


class TestBestColumn:

    def test_strictly_highest_wins(self):
        assert best_column(["time", "start_time"], col_score_start) == "start_time"

    def test_first_wins_ties(self):
        assert best_column(["start_a", "start_b"], col_score_start) == "start_a"

    def test_no_positive_score(self):
        assert best_column(["id", "name"], col_score_start) is None


class TestBuildTableCandidate:

    def test_gadgetbridge_summary_table(self):
        cand = build_table_candidate("BASE_ACTIVITY_SUMMARY", [
            "_id", "NAME", "START_TIME", "END_TIME", "ACTIVITY_KIND", "DEVICE_ID",
        ])
        assert cand == TableCandidate(
            table="BASE_ACTIVITY_SUMMARY",
            start_col="START_TIME",
            end_col="END_TIME",
            dur_col=None,
            type_col="ACTIVITY_KIND",
            score=6 + 9 + 9,
        )

    def test_requires_start_column(self):
        assert build_table_candidate("workout", ["end", "duration"]) is None

    def test_requires_end_or_duration(self):
        assert build_table_candidate("workout", ["start", "name"]) is None

    def test_duration_only_table(self):
        cand = build_table_candidate("training", ["begin", "duration_sec"])
        assert cand.start_col == "begin"
        assert cand.end_col is None
        assert cand.dur_col == "duration_sec"
        assert cand.score == 6 + 4 + 11

    def test_lone_time_column_on_negative_name_rejected(self):
        # "time" serves as both start and end: -3 + 3 + 3
        assert build_table_candidate("event_log", ["time"]) is None

    def test_lone_time_column_at_threshold_kept(self):
        cand = build_table_candidate("device_state", ["time"])
        assert cand.score == 6
        assert cand.start_col == cand.end_col == "time"

    def test_sleep_samples_rejected(self):
        assert build_table_candidate("sleep_samples", ["start", "stop"]) is None

    def test_score_catalog_prefers_workout_session(self):
        cands = score_catalog({
            "sleep_samples": ["start", "stop"],
            "WorkoutSession": ["startTime", "endTime"],
        })
        assert [c.table for c in cands] == ["WorkoutSession"]
        assert cands[0].start_col == "startTime"
        assert cands[0].end_col == "endTime"


class TestSelection:

    def _workouts(self, n, newest):
        return [Workout(start=newest - timedelta(days=i), source="db:t") for i in range(n)]

    @pytest.mark.parametrize("age_days,bonus", [(0, 25), (7, 25), (8, 10), (30, 10), (31, 0)])
    def test_recency_bonus(self, age_days, bonus):
        workouts = self._workouts(1, NOW - timedelta(days=age_days))
        assert recency_bonus(workouts, NOW) == bonus

    def test_recency_bonus_empty(self):
        assert recency_bonus([], NOW) == 0

    def test_adjusted_score(self):
        cand = TableCandidate(table="t", start_col="start", end_col="end", score=20)
        workouts = self._workouts(4, NOW - timedelta(days=10))
        assert adjusted_score(cand, workouts, NOW) == 20 + 12 + 10

    def test_data_rich_table_beats_stale_decoy(self):
        decoy = TableCandidate(table="workout_session_old", start_col="start", end_col="end", score=40)
        real = TableCandidate(table="activity", start_col="start", end_col="end", score=20)
        decoy_rows = self._workouts(3, NOW - timedelta(days=400))
        real_rows = self._workouts(10, NOW - timedelta(days=1))
        scored = [
            (adjusted_score(decoy, decoy_rows, NOW), decoy, decoy_rows),
            (adjusted_score(real, real_rows, NOW), real, real_rows),
        ]
        assert select_best(scored)[1] is real

    def test_select_best_first_seen_on_ties(self):
        scored = [(10, "a"), (10, "b"), (5, "c")]
        assert select_best(scored) == (10, "a")

    def test_select_best_empty(self):
        assert select_best([]) is None
