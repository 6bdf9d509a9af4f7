"""
Winability Scoring Engine

Turns a segment performance gap (athlete PR minus reference time) plus the
segment geometry into a 0-100 "winability" score, a color tier and the
sub-scores behind it.

Two policies share one interface:
- weighted (default): continuous gap score blended with a difficulty score
  and a short-segment sprint bonus.
- stepped (legacy): discrete gap bands with a flat terrain penalty.

The two produce materially different numbers for the same input, so the
caller picks one explicitly; they are never mixed.

Every function here is pure and total over numbers: out-of-range or
non-finite input is clamped, never raised.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Protocol

from services.time_format import round_half_up


class ColorTier(str, Enum):
    GREEN = "green"    # score >= 70
    ORANGE = "orange"  # score >= 40
    RED = "red"


GREEN_MIN_SCORE = 70
ORANGE_MIN_SCORE = 40

# Weighted policy constants
GAP_WINDOW_S = 60.0             # 0s behind -> 100, 60s+ behind -> 0
DISTANCE_PENALTY_SPAN_M = 5000.0
DISTANCE_PENALTY_MAX = 60.0
ELEVATION_PENALTY_SPAN_M = 200.0
ELEVATION_PENALTY_MAX = 40.0
SPRINT_SHORT_M = 600.0
SPRINT_MEDIUM_M = 1200.0
GAP_WEIGHT = 0.65
DIFFICULTY_WEIGHT = 0.25
SPRINT_WEIGHT = 0.10

# Stepped policy bands: (max gap seconds, score)
STEPPED_GAP_BANDS = (
    (0.0, 95),
    (5.0, 85),
    (15.0, 70),
    (30.0, 50),
    (60.0, 30),
)
STEPPED_FLOOR_SCORE = 10
STEPPED_LONG_SEGMENT_M = 2000.0
STEPPED_HILLY_SEGMENT_M = 50.0
STEPPED_TERRAIN_PENALTY = 10


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp to [lo, hi]; NaN collapses to lo."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return lo
    return max(lo, min(hi, value))


def color_tier(score: float) -> ColorTier:
    if score >= GREEN_MIN_SCORE:
        return ColorTier.GREEN
    if score >= ORANGE_MIN_SCORE:
        return ColorTier.ORANGE
    return ColorTier.RED


@dataclass(frozen=True)
class ScoreBreakdown:
    gap_score: int
    difficulty_score: int
    sprint_bonus: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "gapScore": self.gap_score,
            "difficultyScore": self.difficulty_score,
            "sprintBonus": self.sprint_bonus,
        }


@dataclass(frozen=True)
class WinabilityResult:
    score: int
    color: ColorTier
    breakdown: ScoreBreakdown
    policy: str

    def to_dict(self) -> Dict:
        return {
            "winability": self.score,
            "color": self.color.value,
            "breakdown": self.breakdown.to_dict(),
            "policy": self.policy,
        }


class ScoringPolicy(Protocol):
    name: str

    def score(self, gap_seconds: float, distance_m: float, elevation_gain_m: float) -> WinabilityResult:
        ...


def _num(value) -> float:
    try:
        return float(value)
    except OverflowError:
        # int beyond float range: keep its sign so clamps still apply
        return math.inf if value > 0 else -math.inf
    except (TypeError, ValueError):
        return float("nan")


def gap_score(gap_seconds: float) -> float:
    return clamp(100.0 - (_num(gap_seconds) / GAP_WINDOW_S) * 100.0)


def distance_penalty(distance_m: float) -> float:
    return clamp((_num(distance_m) / DISTANCE_PENALTY_SPAN_M) * DISTANCE_PENALTY_MAX, 0.0, DISTANCE_PENALTY_MAX)


def elevation_penalty(elevation_gain_m: float) -> float:
    return clamp((_num(elevation_gain_m) / ELEVATION_PENALTY_SPAN_M) * ELEVATION_PENALTY_MAX, 0.0, ELEVATION_PENALTY_MAX)


def difficulty_score(distance_m: float, elevation_gain_m: float) -> float:
    return clamp(100.0 - distance_penalty(distance_m) - elevation_penalty(elevation_gain_m))


def sprint_bonus(distance_m: float) -> int:
    # Short segments reward a surge regardless of the time gap.
    d = _num(distance_m)
    if d <= SPRINT_SHORT_M:
        return 10
    if d <= SPRINT_MEDIUM_M:
        return 5
    return 0


class WeightedScoringPolicy:
    name = "weighted"

    def score(self, gap_seconds: float, distance_m: float, elevation_gain_m: float) -> WinabilityResult:
        gap = gap_score(gap_seconds)
        difficulty = difficulty_score(distance_m, elevation_gain_m)
        bonus = sprint_bonus(distance_m)

        raw = clamp(gap * GAP_WEIGHT + difficulty * DIFFICULTY_WEIGHT + bonus * SPRINT_WEIGHT)
        final = round_half_up(raw)

        return WinabilityResult(
            score=final,
            color=color_tier(final),
            breakdown=ScoreBreakdown(
                gap_score=round_half_up(gap),
                difficulty_score=round_half_up(difficulty),
                sprint_bonus=bonus,
            ),
            policy=self.name,
        )


class SteppedScoringPolicy:
    """Legacy banded scoring kept for comparison with older reports."""

    name = "stepped"

    def _band(self, gap_seconds: float) -> int:
        gap = _num(gap_seconds)
        if math.isnan(gap):
            return STEPPED_FLOOR_SCORE
        for limit, band_score in STEPPED_GAP_BANDS:
            if gap <= limit:
                return band_score
        return STEPPED_FLOOR_SCORE

    def score(self, gap_seconds: float, distance_m: float, elevation_gain_m: float) -> WinabilityResult:
        band = self._band(gap_seconds)
        penalty = 0
        if _num(distance_m) > STEPPED_LONG_SEGMENT_M:
            penalty += STEPPED_TERRAIN_PENALTY
        if _num(elevation_gain_m) > STEPPED_HILLY_SEGMENT_M:
            penalty += STEPPED_TERRAIN_PENALTY

        final = round_half_up(clamp(band - penalty))
        return WinabilityResult(
            score=final,
            color=color_tier(final),
            breakdown=ScoreBreakdown(
                gap_score=band,
                difficulty_score=100 - penalty,
                sprint_bonus=0,
            ),
            policy=self.name,
        )


POLICIES: Dict[str, ScoringPolicy] = {
    WeightedScoringPolicy.name: WeightedScoringPolicy(),
    SteppedScoringPolicy.name: SteppedScoringPolicy(),
}
DEFAULT_POLICY = WeightedScoringPolicy.name


def get_policy(name: Optional[str] = None) -> ScoringPolicy:
    key = (name or DEFAULT_POLICY).strip().lower()
    try:
        return POLICIES[key]
    except KeyError:
        raise ValueError(f"Unknown scoring policy: {name}. Expected one of: {', '.join(sorted(POLICIES))}")


def score(
    gap_seconds: float,
    distance_m: float,
    elevation_gain_m: float,
    policy: Optional[ScoringPolicy] = None,
) -> WinabilityResult:
    """
    Score a known gap. Callers must not call this when either the PR or the
    reference time is missing; that is a separate "no projection" state.
    """
    return (policy or POLICIES[DEFAULT_POLICY]).score(gap_seconds, distance_m, elevation_gain_m)
