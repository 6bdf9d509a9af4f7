"""
Segment Performance Snapshot

Resolves the athlete's PR and the time to beat for one segment from whatever
Strava returned, then builds the report payload served by the score route.

Source priority:
- reference time: top leaderboard entry -> xoms.kom -> xoms.overall -> xoms.qom
- personal record: athlete_segment_stats.pr_elapsed_time -> fastest own effort

xoms values arrive as seconds or as display strings ("5:58"); both are read
through parse_time_string.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from services.time_format import (
    format_elapsed,
    format_gap,
    format_pace,
    pace_seconds_per_km,
    parse_time_string,
)
from services.winability import ScoringPolicy, score as score_winability

NO_PR_NOTE = "No PR found for this segment yet. Run it once to compute your gap."
NO_REFERENCE_NOTE = "No KOM reference available for this segment (xoms missing)."

XOMS_REFERENCE_KEYS = ("kom", "overall", "qom")


@dataclass
class SegmentSnapshot:
    segment_id: Optional[int]
    name: Optional[str]
    distance_m: float
    elevation_high: float
    elevation_low: float
    avg_grade: Optional[float] = None
    max_grade: Optional[float] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pr_seconds: Optional[float] = None
    reference_seconds: Optional[float] = None
    pr_source: Optional[str] = None
    reference_source: Optional[str] = None

    @property
    def elevation_gain_m(self) -> float:
        return max(0.0, float(self.elevation_high) - float(self.elevation_low))

    @property
    def gap_seconds(self) -> Optional[float]:
        if self.pr_seconds is None or self.reference_seconds is None:
            return None
        return self.pr_seconds - self.reference_seconds


def _as_float(value, default: float = 0.0) -> float:
    try:
        number = float(value) if value is not None else default
    except (TypeError, ValueError, OverflowError):
        return default
    # Geometry goes straight into the JSON report, which can't carry inf/nan.
    return number if math.isfinite(number) else default


def _leaderboard_reference(leaderboard: Optional[Dict[str, Any]]) -> Optional[float]:
    if not isinstance(leaderboard, dict):
        return None
    entries = leaderboard.get("entries") or []
    if not entries or not isinstance(entries[0], dict):
        return None
    return parse_time_string(entries[0].get("elapsed_time"))


def resolve_reference(segment: Dict[str, Any], leaderboard: Optional[Dict[str, Any]] = None):
    """Returns (seconds, source) for the time to beat, or (None, None)."""
    top = _leaderboard_reference(leaderboard)
    if top is not None:
        return top, "leaderboard"

    xoms = segment.get("xoms") or {}
    if isinstance(xoms, dict):
        for key in XOMS_REFERENCE_KEYS:
            seconds = parse_time_string(xoms.get(key))
            if seconds is not None:
                return seconds, f"xoms.{key}"
    return None, None


def resolve_personal_record(segment: Dict[str, Any], efforts: Optional[List[Dict[str, Any]]] = None):
    """Returns (seconds, source) for the athlete's best time, or (None, None)."""
    stats = segment.get("athlete_segment_stats") or {}
    if isinstance(stats, dict):
        pr = parse_time_string(stats.get("pr_elapsed_time"))
        if pr is not None:
            return pr, "athlete_segment_stats"

    times = [
        t for t in (parse_time_string(e.get("elapsed_time")) for e in (efforts or []) if isinstance(e, dict))
        if t is not None
    ]
    if times:
        return min(times), "segment_efforts"
    return None, None


def resolve_snapshot(
    segment: Dict[str, Any],
    *,
    leaderboard: Optional[Dict[str, Any]] = None,
    efforts: Optional[List[Dict[str, Any]]] = None,
) -> SegmentSnapshot:
    segment = segment or {}
    reference, reference_source = resolve_reference(segment, leaderboard)
    pr, pr_source = resolve_personal_record(segment, efforts)

    return SegmentSnapshot(
        segment_id=segment.get("id"),
        name=segment.get("name"),
        distance_m=_as_float(segment.get("distance")),
        elevation_high=_as_float(segment.get("elevation_high")),
        elevation_low=_as_float(segment.get("elevation_low")),
        avg_grade=segment.get("average_grade"),
        max_grade=segment.get("maximum_grade"),
        city=segment.get("city"),
        state=segment.get("state"),
        country=segment.get("country"),
        pr_seconds=pr,
        reference_seconds=reference,
        pr_source=pr_source,
        reference_source=reference_source,
    )


def missing_data_note(snapshot: SegmentSnapshot) -> Optional[str]:
    if snapshot.pr_seconds is None:
        return NO_PR_NOTE
    if snapshot.reference_seconds is None:
        return NO_REFERENCE_NOTE
    return None


def build_score_report(
    snapshot: SegmentSnapshot,
    policy: Optional[ScoringPolicy] = None,
    debug: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    gap = snapshot.gap_seconds
    pr = snapshot.pr_seconds
    ref = snapshot.reference_seconds

    if gap is not None:
        result = score_winability(gap, snapshot.distance_m, snapshot.elevation_gain_m, policy=policy)
        projection = {**result.to_dict(), "note": None}
    else:
        projection = {
            "winability": None,
            "color": "red",
            "breakdown": None,
            "policy": None,
            "note": missing_data_note(snapshot),
        }

    return {
        "ok": True,
        "segment": {
            "id": snapshot.segment_id,
            "name": snapshot.name,
            "distance_m": snapshot.distance_m,
            "elevation_gain_m": snapshot.elevation_gain_m,
            "avg_grade": snapshot.avg_grade,
            "max_grade": snapshot.max_grade,
            "elevation_high": snapshot.elevation_high,
            "elevation_low": snapshot.elevation_low,
            "city": snapshot.city,
            "state": snapshot.state,
            "country": snapshot.country,
        },
        "performance": {
            "your_pr_seconds": pr,
            "your_pr_time": format_elapsed(pr),
            "your_pace": format_pace(pace_seconds_per_km(pr, snapshot.distance_m)),
            "pr_source": snapshot.pr_source,
            "kom_seconds": ref,
            "kom_time": format_elapsed(ref),
            "kom_pace": format_pace(pace_seconds_per_km(ref, snapshot.distance_m)),
            "kom_source": snapshot.reference_source,
            "gap_seconds": gap,
            "gap_time": format_gap(gap),
        },
        "projection": projection,
        "debug": debug,
    }
