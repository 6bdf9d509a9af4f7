"""
Credential store for the connected athlete's Strava tokens.

The token manager only sees the `CredentialStore` protocol: read the latest
row, upsert a row keyed by athlete_id. `SqlAlchemyCredentialStore` is the
production implementation over the `strava_tokens` table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import StravaToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    athlete_id: int
    access_token: str
    refresh_token: str
    expires_at: int  # Unix seconds
    scope: Optional[str] = None


class CredentialStoreError(RuntimeError):
    """The backing database failed a read or write."""


class CredentialStore(Protocol):
    def read_latest_credential(self, athlete_id: Optional[int] = None) -> Optional[Credential]:
        ...

    def upsert_credential(self, credential: Credential) -> None:
        ...


def _to_credential(row: StravaToken) -> Credential:
    return Credential(
        athlete_id=int(row.athlete_id),
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        expires_at=int(row.expires_at),
        scope=row.scope,
    )


def _dialect_insert(dialect_name: str):
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    return None


class SqlAlchemyCredentialStore:
    """`strava_tokens` access through a request-scoped Session."""

    def __init__(self, db: Session):
        self.db = db

    def read_latest_credential(self, athlete_id: Optional[int] = None) -> Optional[Credential]:
        try:
            q = self.db.query(StravaToken)
            if athlete_id is not None:
                q = q.filter(StravaToken.athlete_id == int(athlete_id))
            row = q.order_by(StravaToken.updated_at.desc(), StravaToken.created_at.desc()).first()
        except SQLAlchemyError as e:
            raise CredentialStoreError(f"Credential read failed: {e}") from e
        return _to_credential(row) if row else None

    def upsert_credential(self, credential: Credential) -> None:
        values = {
            "athlete_id": int(credential.athlete_id),
            "access_token": credential.access_token,
            "refresh_token": credential.refresh_token,
            "expires_at": int(credential.expires_at),
            "scope": credential.scope,
        }
        try:
            insert = _dialect_insert(self.db.get_bind().dialect.name)
            if insert is not None:
                stmt = insert(StravaToken).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[StravaToken.athlete_id],
                    set_={
                        "access_token": stmt.excluded.access_token,
                        "refresh_token": stmt.excluded.refresh_token,
                        "expires_at": stmt.excluded.expires_at,
                        "scope": stmt.excluded.scope,
                        "updated_at": func.now(),
                    },
                )
                self.db.execute(stmt)
            else:
                self.db.merge(StravaToken(**values))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise CredentialStoreError(f"DB upsert failed: {e}") from e

        # Statement-level upserts bypass the identity map.
        self.db.expire_all()
        logger.debug(f"Upserted Strava credential for athlete {credential.athlete_id}")
