"""
Logging setup for the winability API.

Records carry structured context as `extra={"extra_fields": {...}}`. Both
output formats render those fields, and any field that could hold an OAuth
secret is masked before it reaches a handler.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from core.config import settings

REDACTED = "***"
SECRET_FIELDS = frozenset({
    "access_token",
    "refresh_token",
    "client_secret",
    "code",
    "authorization",
})


def redact(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of `fields` with OAuth secrets masked, nested dicts included."""
    clean: Dict[str, Any] = {}
    for key, value in fields.items():
        if str(key).lower() in SECRET_FIELDS:
            clean[key] = REDACTED
        elif isinstance(value, dict):
            clean[key] = redact(value)
        else:
            clean[key] = value
    return clean


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = getattr(record, "extra_fields", None)
    return redact(fields) if isinstance(fields, dict) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(_extra_fields(record))
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable line with structured fields appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _extra_fields(record)
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def setup_logging() -> logging.Logger:
    """Install one stdout handler on the root logger (JSON in production)."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    use_json = settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else TextFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Quiet chatty libraries
    for noisy in ("sqlalchemy.engine", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root
