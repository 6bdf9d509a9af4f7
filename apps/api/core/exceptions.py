"""
API exception classes.

Routers raise these so every failure leaves the service in the same
`{"ok": false, "error": ..., "details": ...}` shape.
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """Base API exception with consistent structure."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ok": False, "error": self.detail}
        if self.error_code:
            payload["error_code"] = self.error_code
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(APIException):
    """Bad query parameters."""

    def __init__(self, detail: str, field: Optional[str] = None):
        error_code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code
        )


class ServerConfigError(APIException):
    """The service is missing secrets or settings it needs."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="CONFIGURATION_ERROR"
        )


class NotConnectedError(APIException):
    """No athlete has authorized the app yet."""

    def __init__(self, detail: str = "No Strava tokens found in DB"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="NOT_CONNECTED"
        )


class UpstreamError(APIException):
    """The fitness platform rejected or failed a call."""

    def __init__(self, detail: str, details: Optional[Any] = None, error_code: str = "UPSTREAM_ERROR"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code=error_code,
            details=details
        )


class DatabaseError(APIException):
    """The credential table could not be read or written."""

    def __init__(self, detail: str, details: Optional[Any] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code="DB_ERROR",
            details=details
        )


def from_strava_error(exc: Exception) -> APIException:
    """Map a Strava service error onto the HTTP error the client sees."""
    from services.strava_service import (
        ConfigurationError,
        NoCredentialError,
        RefreshFailedError,
        UpstreamFetchError,
    )

    if isinstance(exc, ConfigurationError):
        return ServerConfigError(exc.message)
    if isinstance(exc, NoCredentialError):
        return NotConnectedError(exc.message)
    if isinstance(exc, RefreshFailedError):
        return UpstreamError("Token refresh failed", details=exc.detail or exc.message, error_code="REFRESH_FAILED")
    if isinstance(exc, UpstreamFetchError):
        return UpstreamError(exc.message, details=exc.detail)
    return APIException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
