"""
Segment Router

Winability report for one segment and discovery of nearby running segments.
"""
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from core.exceptions import DatabaseError, ValidationError, from_strava_error
from services.segment_explore import format_explore_segments, to_bounds
from services.segment_performance import build_score_report, resolve_snapshot
from services.strava_service import (
    StravaError,
    UpstreamFetchError,
    explore_segments,
    get_segment,
    get_segment_efforts,
    get_segment_leaderboard,
)
from services.token_manager import token_manager_for
from services.token_store import CredentialStoreError
from services.winability import get_policy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["segments"])


def _parse_float(value: Optional[str]) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@router.get("/segment/score")
def segment_score(
    id: Optional[str] = Query(None, description="Strava segment id"),
    policy: Optional[str] = Query(None, description="Scoring policy: weighted or stepped"),
    leaderboard: bool = Query(False, description="Try the leaderboard top entry before xoms"),
    efforts: bool = Query(True, description="Fall back to the athlete's efforts when stats carry no PR"),
    db: Session = Depends(get_db),
):
    try:
        segment_id = int(id)
    except (TypeError, ValueError):
        raise ValidationError("Missing or invalid segment id", field="id")

    try:
        scoring_policy = get_policy(policy or settings.WINABILITY_POLICY)
    except ValueError as e:
        raise ValidationError(str(e), field="policy")

    try:
        access_token = token_manager_for(db).get_valid_access_token()
        segment = get_segment(access_token, segment_id)
    except StravaError as e:
        raise from_strava_error(e)
    except CredentialStoreError as e:
        raise DatabaseError("Credential store failed", details=str(e))

    board = None
    if leaderboard:
        try:
            board = get_segment_leaderboard(access_token, segment_id)
        except UpstreamFetchError as e:
            # Strava restricts leaderboards; xoms remain the reference.
            logger.info(f"Leaderboard unavailable for segment {segment_id} ({e.status_code}), using xoms")

    own_efforts = None
    stats = segment.get("athlete_segment_stats") or {}
    if efforts and stats.get("pr_elapsed_time") is None and stats.get("effort_count"):
        try:
            own_efforts = get_segment_efforts(access_token, segment_id)
        except UpstreamFetchError as e:
            logger.info(f"Segment efforts unavailable for segment {segment_id} ({e.status_code})")

    snapshot = resolve_snapshot(segment, leaderboard=board, efforts=own_efforts)
    return build_score_report(
        snapshot,
        policy=scoring_policy,
        debug={
            "xoms": segment.get("xoms"),
            "athlete_segment_stats": segment.get("athlete_segment_stats"),
        },
    )


@router.get("/segments/nearby")
def segments_nearby(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    radiusKm: Optional[str] = Query("10"),
    db: Session = Depends(get_db),
):
    lat_v = _parse_float(lat)
    lng_v = _parse_float(lng)
    if lat_v is None or lng_v is None:
        raise ValidationError("Missing or invalid lat/lng", field="lat")
    radius_km = _parse_float(radiusKm)
    if radius_km is None or radius_km <= 0:
        raise ValidationError("Invalid radiusKm", field="radiusKm")

    try:
        access_token = token_manager_for(db).get_valid_access_token()
        payload = explore_segments(access_token, to_bounds(lat_v, lng_v, radius_km))
    except StravaError as e:
        raise from_strava_error(e)
    except CredentialStoreError as e:
        raise DatabaseError("Credential store failed", details=str(e))

    segments = format_explore_segments(payload)
    return {
        "ok": True,
        "center": {"lat": lat_v, "lng": lng_v},
        "radiusKm": radius_km,
        "count": len(segments),
        "segments": segments,
    }
