"""
Unit tests for the Segment Performance Snapshot resolver and score report.

Reference-time priority: leaderboard -> xoms.kom -> xoms.overall -> xoms.qom.
PR priority: athlete_segment_stats -> fastest own effort.
"""

import pytest

from fixtures.strava_fixtures import make_segment
from services.segment_performance import (
    NO_PR_NOTE,
    NO_REFERENCE_NOTE,
    build_score_report,
    missing_data_note,
    resolve_snapshot,
)
from services.winability import get_policy


class TestReferenceResolution:
    def test_numeric_xoms_kom(self):
        snap = resolve_snapshot(make_segment(pr_elapsed_time=200, xoms={"kom": 180}))
        assert snap.reference_seconds == 180
        assert snap.reference_source == "xoms.kom"

    def test_string_encoded_xoms(self):
        snap = resolve_snapshot(make_segment(pr_elapsed_time=400, xoms={"kom": "5:58", "qom": "6:40"}))
        assert snap.reference_seconds == 358
        assert snap.gap_seconds == 42

    def test_falls_back_to_overall(self):
        snap = resolve_snapshot(make_segment(xoms={"overall": "1:02:03"}))
        assert snap.reference_seconds == 3723
        assert snap.reference_source == "xoms.overall"

    def test_malformed_kom_falls_through(self):
        snap = resolve_snapshot(make_segment(xoms={"kom": "n/a", "overall": "3:00"}))
        assert snap.reference_seconds == 180

    def test_leaderboard_wins_over_xoms(self):
        board = {"entry_count": 1234, "entries": [{"athlete_name": "K. O.", "elapsed_time": 171, "rank": 1}]}
        snap = resolve_snapshot(make_segment(xoms={"kom": "3:00"}), leaderboard=board)
        assert snap.reference_seconds == 171
        assert snap.reference_source == "leaderboard"

    def test_empty_leaderboard_uses_xoms(self):
        snap = resolve_snapshot(make_segment(xoms={"kom": "3:00"}), leaderboard={"entries": []})
        assert snap.reference_source == "xoms.kom"

    def test_no_reference(self):
        snap = resolve_snapshot(make_segment(pr_elapsed_time=200))
        assert snap.reference_seconds is None
        assert snap.gap_seconds is None
        assert missing_data_note(snap) == NO_REFERENCE_NOTE


class TestPersonalRecordResolution:
    def test_stats_pr(self):
        snap = resolve_snapshot(make_segment(pr_elapsed_time=205, xoms={"kom": 180}))
        assert snap.pr_seconds == 205
        assert snap.pr_source == "athlete_segment_stats"
        assert snap.gap_seconds == 25

    def test_efforts_fallback_takes_fastest(self):
        efforts = [{"elapsed_time": 230}, {"elapsed_time": 212}, {"elapsed_time": None}, {}]
        snap = resolve_snapshot(make_segment(xoms={"kom": 200}), efforts=efforts)
        assert snap.pr_seconds == 212
        assert snap.pr_source == "segment_efforts"
        assert snap.gap_seconds == 12

    def test_no_pr_note_takes_precedence(self):
        snap = resolve_snapshot(make_segment())
        assert missing_data_note(snap) == NO_PR_NOTE

    def test_ahead_of_reference_is_negative_gap(self):
        snap = resolve_snapshot(make_segment(pr_elapsed_time=170, xoms={"kom": 180}))
        assert snap.gap_seconds == -10


class TestGeometry:
    def test_elevation_gain_never_negative(self):
        snap = resolve_snapshot(make_segment(elevation_high=10, elevation_low=25))
        assert snap.elevation_gain_m == 0

    def test_missing_geometry_defaults_to_zero(self):
        snap = resolve_snapshot({"id": 1})
        assert snap.distance_m == 0
        assert snap.elevation_gain_m == 0


class TestScoreReport:
    def test_full_report(self):
        snap = resolve_snapshot(make_segment(
            distance=1000, elevation_high=30, elevation_low=20,
            pr_elapsed_time=215, xoms={"kom": "3:20"},
        ))
        report = build_score_report(snap)

        assert report["ok"] is True
        assert report["segment"]["name"] == "Hawk Hill"
        assert report["segment"]["elevation_gain_m"] == 10

        perf = report["performance"]
        assert perf["your_pr_seconds"] == 215
        assert perf["your_pr_time"] == "3:35"
        assert perf["your_pace"] == "3:35/km"
        assert perf["kom_seconds"] == 200
        assert perf["kom_time"] == "3:20"
        assert perf["kom_pace"] == "3:20/km"
        assert perf["gap_seconds"] == 15
        assert perf["gap_time"] == "+0:15"

        proj = report["projection"]
        # gap 75, difficulty 100 - 12 - 2 = 86, sprint 5 -> 48.75 + 21.5 + 0.5 = 70.75
        assert proj["winability"] == 71
        assert proj["color"] == "green"
        assert proj["breakdown"] == {"gapScore": 75, "difficultyScore": 86, "sprintBonus": 5}
        assert proj["note"] is None

    def test_missing_pr_projection(self):
        report = build_score_report(resolve_snapshot(make_segment(xoms={"kom": 180})))
        proj = report["projection"]
        assert proj["winability"] is None
        assert proj["color"] == "red"
        assert proj["breakdown"] is None
        assert proj["note"] == NO_PR_NOTE
        assert report["performance"]["gap_time"] is None
        assert report["performance"]["your_pace"] is None

    def test_policy_is_passed_through(self):
        snap = resolve_snapshot(make_segment(pr_elapsed_time=180, xoms={"kom": 180}))
        report = build_score_report(snap, policy=get_policy("stepped"))
        assert report["projection"]["policy"] == "stepped"
        assert report["projection"]["winability"] == 95

    @pytest.mark.parametrize("debug", [None, {"xoms": {"kom": "3:00"}}])
    def test_debug_passthrough(self, debug):
        report = build_score_report(resolve_snapshot(make_segment()), debug=debug)
        assert report["debug"] == debug


class TestOutOfRangeUpstreamValues:
    def test_huge_pr_is_treated_as_missing(self):
        snap = resolve_snapshot(make_segment(pr_elapsed_time=10 ** 400, xoms={"kom": 180}))
        assert snap.pr_seconds is None
        assert build_score_report(snap)["projection"]["note"] == NO_PR_NOTE

    def test_huge_kom_falls_through_to_next_source(self):
        snap = resolve_snapshot(make_segment(pr_elapsed_time=200, xoms={"kom": 10 ** 400, "overall": "3:10"}))
        assert snap.reference_seconds == 190
        assert snap.reference_source == "xoms.overall"

    def test_non_finite_geometry_defaults_to_zero(self):
        segment = make_segment(pr_elapsed_time=200, xoms={"kom": 190})
        segment["distance"] = 10 ** 400
        segment["elevation_high"] = "inf"
        snap = resolve_snapshot(segment)
        assert snap.distance_m == 0
        assert snap.elevation_high == 0
        assert snap.elevation_gain_m == 0
        assert build_score_report(snap)["projection"]["winability"] is not None
