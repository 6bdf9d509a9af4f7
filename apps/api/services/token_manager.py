"""
Token Lifecycle Manager

Hands callers a currently-valid Strava access token for the connected
athlete, refreshing and persisting a new token set when the stored one is
expired or about to expire.

KNOWN LIMITATION: refresh is not synchronized. Two requests that both see a
near-expiry token will each call the refresh grant and each upsert the
result; the last write wins. Strava keeps honoring the previous refresh token
for a short while, which is the only reason this holds up. Making refresh
at-most-once needs a per-athlete lock or a compare-and-swap on updated_at
around the refresh-and-upsert sequence.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from services.strava_service import (
    ConfigurationError,
    NoCredentialError,
    RefreshFailedError,
    UpstreamFetchError,
    refresh_access_token,
)
from services.token_store import Credential, CredentialStore

logger = logging.getLogger(__name__)

# Refresh when the token has this many seconds (or fewer) left.
NEAR_EXPIRY_MARGIN_S = 60


def needs_refresh(credential: Credential, now: Optional[float] = None) -> bool:
    current = int(time.time() if now is None else now)
    return int(credential.expires_at) <= current + NEAR_EXPIRY_MARGIN_S


class TokenManager:
    """
    Owns the single stored credential set.

    The store and the refresh call are injected so tests can run against an
    in-memory store and a fake refresher without touching Strava.
    """

    def __init__(
        self,
        store: CredentialStore,
        *,
        client_id: Optional[str],
        client_secret: Optional[str],
        athlete_id: Optional[int] = None,
        refresher: Callable[..., Dict[str, Any]] = refresh_access_token,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.client_id = client_id
        self.client_secret = client_secret
        self.athlete_id = athlete_id
        self._refresher = refresher
        self._clock = clock

    def _require_client(self) -> None:
        if not self.client_id or not self.client_secret:
            raise ConfigurationError("Missing Strava client env vars")

    def get_valid_access_token(self) -> str:
        self._require_client()

        credential = self.store.read_latest_credential(self.athlete_id)
        if credential is None:
            raise NoCredentialError("No Strava tokens found in DB")

        if not needs_refresh(credential, self._clock()):
            return credential.access_token

        refreshed = self._refresh(credential)
        return refreshed.access_token

    def _refresh(self, credential: Credential) -> Credential:
        try:
            token_data = self._refresher(
                credential.refresh_token,
                client_id=self.client_id,
                client_secret=self.client_secret,
            )
        except RefreshFailedError as e:
            logger.warning(
                f"Strava token refresh failed for athlete {credential.athlete_id}",
                extra={"extra_fields": {"athlete_id": credential.athlete_id, "status_code": e.status_code}},
            )
            raise

        try:
            new_credential = Credential(
                athlete_id=credential.athlete_id,
                access_token=token_data["access_token"],
                refresh_token=token_data.get("refresh_token") or credential.refresh_token,
                expires_at=int(token_data["expires_at"]),
                scope=token_data.get("scope") or credential.scope,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RefreshFailedError("Strava refresh_token failed", detail=f"Malformed refresh response: {e}") from e

        self.store.upsert_credential(new_credential)
        logger.info(
            f"Strava token refreshed for athlete {credential.athlete_id}",
            extra={"extra_fields": {"athlete_id": credential.athlete_id, "expires_at": new_credential.expires_at}},
        )
        return new_credential

    def store_authorization(self, token_data: Dict[str, Any], scope: Optional[str] = None) -> Credential:
        """Persist the token set returned by the authorization-code exchange."""
        athlete = token_data.get("athlete") or {}
        athlete_id = athlete.get("id") if isinstance(athlete, dict) else None
        if not athlete_id:
            raise UpstreamFetchError("No athlete id in Strava response")

        credential = Credential(
            athlete_id=int(athlete_id),
            access_token=token_data["access_token"],
            refresh_token=token_data["refresh_token"],
            expires_at=int(token_data["expires_at"]),
            scope=token_data.get("scope") or scope,
        )
        self.store.upsert_credential(credential)
        logger.info(f"Stored Strava authorization for athlete {credential.athlete_id}")
        return credential


def token_manager_for(db) -> TokenManager:
    """TokenManager wired to the configured client and the strava_tokens table."""
    from core.config import settings
    from services.token_store import SqlAlchemyCredentialStore

    return TokenManager(
        SqlAlchemyCredentialStore(db),
        client_id=settings.STRAVA_CLIENT_ID,
        client_secret=settings.STRAVA_CLIENT_SECRET,
        athlete_id=settings.STRAVA_ATHLETE_ID,
    )
