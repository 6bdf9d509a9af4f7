"""
Strava API client.

Thin wrappers over the OAuth token endpoint and the segment endpoints the
winability report needs. Every call is a single attempt with a bounded
timeout; failures surface as the typed errors below carrying the upstream
body so callers can pass it through.
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import requests

from core.config import settings

logger = logging.getLogger(__name__)

STRAVA_OAUTH_AUTHORIZE_URL = "https://www.strava.com/oauth/authorize"
STRAVA_OAUTH_TOKEN_URL = "https://www.strava.com/oauth/token"
STRAVA_API_BASE = "https://www.strava.com/api/v3"

# Strava OAuth scopes requested for the connected athlete
# See: https://developers.strava.com/docs/authentication/
#   - read: public segments, routes, profile
#   - activity:read_all: all activities and segment efforts (needed for PRs)
STRAVA_SCOPES = "read,activity:read_all"


class StravaError(RuntimeError):
    """Base class for failures talking to Strava or preparing to."""

    def __init__(self, message: str, *, detail: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status_code = status_code


class ConfigurationError(StravaError):
    """Client id/secret or redirect URI missing. Fatal, never retried."""


class NoCredentialError(StravaError):
    """No credential row stored yet; the athlete has to connect first."""


class RefreshFailedError(StravaError):
    """Strava rejected the refresh_token grant."""


class UpstreamFetchError(StravaError):
    """A segment / effort / leaderboard / explore call failed."""


def _timeout() -> float:
    return float(settings.EXTERNAL_API_TIMEOUT)


def _body(r: requests.Response) -> str:
    try:
        return r.text
    except Exception:
        return ""


def _require_client(client_id: Optional[str], client_secret: Optional[str]) -> None:
    if not client_id or not client_secret:
        raise ConfigurationError("Missing Strava client env vars")


def get_auth_url(client_id: Optional[str], redirect_uri: Optional[str], scope: str = STRAVA_SCOPES) -> str:
    if not client_id or not redirect_uri:
        raise ConfigurationError("Missing STRAVA_CLIENT_ID or STRAVA_REDIRECT_URI")

    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "approval_prompt": "auto",
        "scope": scope,
    }
    return f"{STRAVA_OAUTH_AUTHORIZE_URL}?{urlencode(params)}"


def _post_token(data: Dict[str, str], error_cls, failure_message: str) -> Dict:
    try:
        r = requests.post(STRAVA_OAUTH_TOKEN_URL, data=data, timeout=_timeout())
    except requests.exceptions.RequestException as e:
        raise error_cls(failure_message, detail=str(e)) from e

    if r.status_code >= 400:
        raise error_cls(failure_message, detail=_body(r), status_code=r.status_code)
    return r.json()


def exchange_code_for_token(code: str, *, client_id: Optional[str], client_secret: Optional[str]) -> Dict:
    """
    Trade an authorization code for the athlete's first token set.

    Strava answers with access_token, refresh_token, expires_at and an
    `athlete` object. The granted scope arrives on the callback query string.
    """
    _require_client(client_id, client_secret)
    return _post_token(
        {
            "client_id": client_id,
            "client_secret": client_secret,
            "code": code,
            "grant_type": "authorization_code",
        },
        UpstreamFetchError,
        "Token exchange failed",
    )


def refresh_access_token(refresh_token: str, *, client_id: Optional[str], client_secret: Optional[str]) -> Dict:
    """
    Exchange a refresh token for a new access token from Strava.

    Returns dict with: access_token, refresh_token, expires_at, expires_in, token_type
    Raises RefreshFailedError on any non-success answer (e.g. 400 = revoked).
    """
    _require_client(client_id, client_secret)
    return _post_token(
        {
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        },
        RefreshFailedError,
        "Strava refresh_token failed",
    )


def _get(access_token: str, path: str, params: Optional[Dict[str, Any]] = None, *, what: str):
    url = f"{STRAVA_API_BASE}{path}"
    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        r = requests.get(url, headers=headers, params=params, timeout=_timeout())
    except requests.exceptions.RequestException as e:
        raise UpstreamFetchError(f"{what} failed", detail=str(e)) from e

    if r.status_code >= 400:
        logger.warning(
            f"Strava {what} returned {r.status_code}",
            extra={"extra_fields": {"path": path, "status_code": r.status_code}},
        )
        raise UpstreamFetchError(f"{what} failed", detail=_body(r), status_code=r.status_code)
    return r.json()


def get_segment(access_token: str, segment_id: int) -> Dict:
    """Segment detail, including athlete_segment_stats and xoms when granted."""
    return _get(access_token, f"/segments/{int(segment_id)}", what="Segment fetch")


def get_segment_leaderboard(access_token: str, segment_id: int) -> Dict:
    """Top leaderboard entry only; Strava often answers 403 for non-subscribers."""
    return _get(
        access_token,
        f"/segments/{int(segment_id)}/leaderboard",
        {"per_page": 1, "page": 1},
        what="Leaderboard fetch",
    )


def get_segment_efforts(access_token: str, segment_id: int, per_page: int = 30) -> List[Dict]:
    data = _get(
        access_token,
        "/segment_efforts",
        {"segment_id": int(segment_id), "per_page": int(per_page)},
        what="Segment efforts fetch",
    )
    return data if isinstance(data, list) else []


def explore_segments(access_token: str, bounds: str, activity_type: str = "running") -> Dict:
    return _get(
        access_token,
        "/segments/explore",
        {"bounds": bounds, "activity_type": activity_type},
        what="Strava explore",
    )
