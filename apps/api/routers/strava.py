"""
Strava Connection Router

OAuth start/callback for the single connected athlete, plus a status probe.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from core.exceptions import DatabaseError, ValidationError, from_strava_error
from services.strava_service import (
    StravaError,
    exchange_code_for_token,
    get_auth_url,
)
from services.token_manager import needs_refresh, token_manager_for
from services.token_store import CredentialStoreError, SqlAlchemyCredentialStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/strava", tags=["strava"])


@router.get("/start")
def strava_start():
    """Redirect the browser to Strava's consent screen."""
    try:
        url = get_auth_url(settings.STRAVA_CLIENT_ID, settings.STRAVA_REDIRECT_URI)
    except StravaError as e:
        raise from_strava_error(e)
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/callback")
def strava_callback(
    code: Optional[str] = Query(None, description="Authorization code from Strava"),
    error: Optional[str] = Query(None, description="Error reported by Strava (e.g. access_denied)"),
    scope: Optional[str] = Query(None, description="Scopes the athlete actually granted"),
    db: Session = Depends(get_db),
):
    """
    Handle Strava OAuth callback.

    Exchanges the code and upserts the athlete's token row.
    """
    if error:
        raise ValidationError(error, field="error")
    if not code:
        raise ValidationError("Missing code param from Strava", field="code")

    manager = token_manager_for(db)
    try:
        token_data = exchange_code_for_token(
            code,
            client_id=settings.STRAVA_CLIENT_ID,
            client_secret=settings.STRAVA_CLIENT_SECRET,
        )
        credential = manager.store_authorization(token_data, scope=scope)
    except StravaError as e:
        logger.warning(f"Strava callback failed: {e.message}")
        raise from_strava_error(e)
    except CredentialStoreError as e:
        raise DatabaseError("DB upsert failed", details=str(e))

    return {
        "ok": True,
        "message": "Strava connected",
        "athlete_id": credential.athlete_id,
        "scope": credential.scope,
    }


@router.get("/status")
def strava_status(db: Session = Depends(get_db)):
    """Connection status for the configured athlete. Never returns tokens."""
    try:
        credential = SqlAlchemyCredentialStore(db).read_latest_credential(settings.STRAVA_ATHLETE_ID)
    except CredentialStoreError as e:
        raise DatabaseError("DB read failed", details=str(e))
    if credential is None:
        return {"ok": True, "connected": False}
    return {
        "ok": True,
        "connected": True,
        "athlete_id": credential.athlete_id,
        "expires_at": credential.expires_at,
        "needs_refresh": needs_refresh(credential),
        "scope": credential.scope,
    }
