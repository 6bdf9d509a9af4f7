"""
Engine construction per database URL (no server needed).
"""
import pytest
from sqlalchemy import text
from sqlalchemy.pool import StaticPool

from core.database import _build_engine


@pytest.mark.parametrize("url", ["sqlite://", "sqlite:///:memory:"])
def test_in_memory_sqlite_shares_one_connection(url):
    engine = _build_engine(url)
    try:
        assert isinstance(engine.pool, StaticPool)
    finally:
        engine.dispose()


def test_file_sqlite_uses_a_real_pool(tmp_path):
    engine = _build_engine(f"sqlite:///{tmp_path / 'winability.db'}")
    try:
        assert not isinstance(engine.pool, StaticPool)
        with engine.connect() as conn:
            assert conn.execute(text("SELECT 1")).scalar() == 1
    finally:
        engine.dispose()
