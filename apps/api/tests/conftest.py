"""
Pytest configuration and fixtures

Tests run against an in-memory sqlite database migrated to Alembic head.
Every table is emptied after each test so nothing leaks between tests.
"""
import pytest
import sys
import os
import time
from pathlib import Path

# Point the app at in-memory sqlite and fake Strava client credentials
# before anything imports core.config.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("STRAVA_CLIENT_ID", "test_client_id")
os.environ.setdefault("STRAVA_CLIENT_SECRET", "test_client_secret")
os.environ.setdefault("STRAVA_REDIRECT_URI", "http://localhost:8000/v1/strava/callback")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


@pytest.fixture(scope="session", autouse=True)
def _ensure_db_schema_is_at_head():
    """
    Build the schema through the real migrations so model/migration drift
    shows up as test failures.
    """
    try:
        from alembic import command
        from alembic.config import Config

        api_root = Path(__file__).resolve().parents[1]
        cfg = Config(str(api_root / "alembic.ini"))
        # script_location in alembic.ini is relative ("alembic")
        cfg.set_main_option("script_location", str(api_root / "alembic"))
        command.upgrade(cfg, "head")
    except Exception as e:
        raise RuntimeError(f"Failed to upgrade DB to Alembic head: {e}") from e


from core.database import Base, SessionLocal
from models import StravaToken  # noqa: E402
from services.token_store import Credential  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()


@pytest.fixture(scope="function")
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def stored_credential(db_session):
    """
    A credential row valid for another hour (no refresh needed).
    """
    row = StravaToken(
        athlete_id=4242,
        access_token="db_access",
        refresh_token="db_refresh",
        expires_at=int(time.time()) + 3600,
        scope="read,activity:read_all",
    )
    db_session.add(row)
    db_session.commit()
    return Credential(
        athlete_id=4242,
        access_token="db_access",
        refresh_token="db_refresh",
        expires_at=row.expires_at,
        scope="read,activity:read_all",
    )
