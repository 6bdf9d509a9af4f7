"""
Nearby segment discovery helpers (no external calls).
"""

import math
from typing import Any, Dict, List

KM_PER_DEGREE_LAT = 111.0


def to_bounds(lat: float, lng: float, radius_km: float) -> str:
    """Square bounding box around a point as Strava's "south,west,north,east"."""
    d_lat = radius_km / KM_PER_DEGREE_LAT
    cos_lat = math.cos(math.radians(lat))
    # Longitude degrees shrink toward the poles; don't divide by ~0 there.
    d_lng = radius_km / (KM_PER_DEGREE_LAT * max(abs(cos_lat), 1e-6))
    return f"{lat - d_lat},{lng - d_lng},{lat + d_lat},{lng + d_lng}"


def format_explore_segments(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    segments = []
    for s in (payload or {}).get("segments") or []:
        segments.append({
            "id": s.get("id"),
            "name": s.get("name"),
            "distance_m": s.get("distance"),
            "avg_grade": s.get("avg_grade", s.get("average_grade")),
            "max_grade": s.get("maximum_grade"),
            "elevation_high": s.get("elevation_high"),
            "elevation_low": s.get("elevation_low"),
            "climb_category": s.get("climb_category"),
            "points": s.get("points"),
            "start_latlng": s.get("start_latlng"),
            "end_latlng": s.get("end_latlng"),
            "location": ", ".join(p for p in (s.get("city"), s.get("state"), s.get("country")) if p),
        })
    return segments
