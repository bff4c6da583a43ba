from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

SUB_RATING_ASPECTS = ("food", "service", "ambience", "value_for_money")
RATING_MIN = 1
RATING_MAX = 5


class ReviewStatus(str, Enum):
    """Review lifecycle: ACTIVE may be edited in place or retracted; RETRACTED is final."""

    ACTIVE = "active"
    RETRACTED = "retracted"


class SortKey(str, Enum):
    DISTANCE = "distance"
    RATING = "rating"
    REVIEW_COUNT = "review_count"
    RELEVANCE = "relevance"


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class VenueSnapshot:
    id: str
    name: str
    latitude: float
    longitude: float
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    categories: tuple[str, ...] = ()
    price_tier: str | None = None
    amenities: tuple[str, ...] = ()
    delivery: tuple[str, ...] = ()
    opening_hours: dict[str, str] = field(default_factory=dict)
    image_url: str | None = None
    average_rating: float = 0.0
    review_count: int = 0
    created_at: datetime | None = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class Candidate:
    venue: VenueSnapshot
    distance_km: float | None = None
    relevance_score: float | None = None


@dataclass(frozen=True, slots=True)
class Aggregate:
    venue_id: str
    average_rating: float
    review_count: int

    @property
    def display_rating(self) -> float:
        return round(self.average_rating, 1)


@dataclass(slots=True)
class Review:
    id: str
    venue_id: str
    user_id: str
    rating: int
    comment: str | None
    sub_ratings: dict[str, int]
    status: ReviewStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Ack:
    review_id: str
    venue_id: str
    aggregate: Aggregate


@dataclass(slots=True)
class Visit:
    id: str
    user_id: str
    venue_id: str
    visited_at: datetime
    party_size: int
    venue_name: str | None = None


@dataclass(slots=True)
class VisitStats:
    user_id: str
    total_visits: int = 0
    unique_venues: int = 0
    total_people: int = 0
    first_visit: datetime | None = None
    last_visit: datetime | None = None
