"""Fake Strava payloads and an in-memory credential store for tests."""
from typing import Dict, List, Optional

from services.token_store import Credential


class InMemoryCredentialStore:
    """CredentialStore double that records every upsert."""

    def __init__(self, credential: Optional[Credential] = None):
        self._rows: Dict[int, Credential] = {}
        self.upserts: List[Credential] = []
        self.reads = 0
        if credential is not None:
            self._rows[credential.athlete_id] = credential

    def read_latest_credential(self, athlete_id: Optional[int] = None) -> Optional[Credential]:
        self.reads += 1
        if athlete_id is not None:
            return self._rows.get(int(athlete_id))
        if not self._rows:
            return None
        # Insertion order stands in for updated_at.
        return list(self._rows.values())[-1]

    def upsert_credential(self, credential: Credential) -> None:
        self.upserts.append(credential)
        self._rows.pop(credential.athlete_id, None)
        self._rows[credential.athlete_id] = credential


def make_credential(expires_at: int, **overrides) -> Credential:
    values = {
        "athlete_id": 4242,
        "access_token": "stored_access",
        "refresh_token": "stored_refresh",
        "expires_at": expires_at,
        "scope": "read,activity:read_all",
    }
    values.update(overrides)
    return Credential(**values)


def make_segment(
    *,
    distance: float = 800.0,
    elevation_high: float = 30.0,
    elevation_low: float = 20.0,
    pr_elapsed_time=None,
    xoms: Optional[Dict] = None,
    effort_count: Optional[int] = None,
) -> Dict:
    """Segment detail as returned by GET /segments/{id}."""
    stats = {}
    if pr_elapsed_time is not None:
        stats["pr_elapsed_time"] = pr_elapsed_time
    if effort_count is not None:
        stats["effort_count"] = effort_count
    return {
        "id": 229781,
        "name": "Hawk Hill",
        "activity_type": "Run",
        "distance": distance,
        "average_grade": 5.7,
        "maximum_grade": 14.2,
        "elevation_high": elevation_high,
        "elevation_low": elevation_low,
        "city": "San Francisco",
        "state": "CA",
        "country": "United States",
        "athlete_segment_stats": stats,
        "xoms": xoms if xoms is not None else {},
    }
