from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)

from ..types import ReviewStatus
from .core import Base

ACTIVE_ONLY = text("status = 'active'")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _uuid() -> str:
    return str(uuid.uuid4())


class VenueRecord(Base):
    __tablename__ = "venues"

    id = Column(String(64), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(512), nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    details = Column(JSON, nullable=False, default=dict, server_default=text("'{}'"))
    opening_hours = Column(JSON, nullable=False, default=dict, server_default=text("'{}'"))
    image_url = Column(String(512), nullable=True)
    # written only by the rating aggregator
    average_rating = Column(Float, nullable=False, default=0.0, server_default=text("0"))
    review_count = Column(Integer, nullable=False, default=0, server_default=text("0"))
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("ix_venues_lat_lng", "latitude", "longitude"),
        CheckConstraint("review_count >= 0", name="ck_venues_review_count"),
        CheckConstraint(
            "average_rating >= 0 AND average_rating <= 5", name="ck_venues_average_rating"
        ),
    )


class ReviewRecord(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=_uuid)
    venue_id = Column(
        String(64), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(128), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    sub_ratings = Column(JSON, nullable=False, default=dict, server_default=text("'{}'"))
    status = Column(
        String(16),
        nullable=False,
        default=ReviewStatus.ACTIVE.value,
        server_default=text("'active'"),
    )
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
        CheckConstraint("status IN ('active', 'retracted')", name="ck_reviews_status"),
        # at most one active review per (user, venue); retracted rows are kept for audit
        Index(
            "uq_reviews_active_user_venue",
            "user_id",
            "venue_id",
            unique=True,
            sqlite_where=ACTIVE_ONLY,
            postgresql_where=ACTIVE_ONLY,
        ),
    )


class VisitRecord(Base):
    __tablename__ = "visits"

    id = Column(String(36), primary_key=True, default=_uuid)
    venue_id = Column(
        String(64), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(128), nullable=False, index=True)
    visited_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    party_size = Column(Integer, nullable=False, default=1, server_default=text("1"))

    __table_args__ = (CheckConstraint("party_size >= 1", name="ck_visits_party_size"),)
