from sqlalchemy import Column, Integer, BigInteger, DateTime, Text
from sqlalchemy.sql import func
from core.database import Base


class StravaToken(Base):
    """
    OAuth credential set for the connected athlete.

    One row per athlete; writes go through an upsert keyed on athlete_id so a
    refresh rewrites the row in place.
    """
    __tablename__ = "strava_tokens"

    athlete_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=False)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)  # Upstream may rotate this on every refresh
    expires_at = Column(BigInteger, nullable=False)  # Unix seconds
    scope = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, index=True)


class HealthCheck(Base):
    __tablename__ = "health_checks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    source = Column(Text, nullable=True)
