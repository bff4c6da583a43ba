from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .validators import normalize_display_name, normalize_phone, normalize_tokens

PriceTier = Literal["$", "$$", "$$$", "$$$$"]


# --- Venues ---
class VenueDetails(BaseModel):
    categories: list[str] = Field(default_factory=list)
    price_tier: PriceTier | None = None
    amenities: list[str] = Field(default_factory=list)
    delivery: list[str] = Field(default_factory=list)

    @field_validator("categories", "amenities", "delivery", mode="before")
    @classmethod
    def _tokens(cls, value):
        return normalize_tokens(value)


class VenueCreate(BaseModel):
    # rating fields are owned by the aggregator and cannot be supplied
    model_config = ConfigDict(extra="forbid")

    id: str | None = Field(default=None, min_length=1, max_length=64)
    name: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str | None = Field(default=None, max_length=255)
    phone: str | None = None
    website: str | None = Field(default=None, max_length=512)
    details: VenueDetails = Field(default_factory=VenueDetails)
    opening_hours: dict[str, str] = Field(default_factory=dict)
    image_url: str | None = Field(default=None, max_length=512)

    @field_validator("name")
    @classmethod
    def _name(cls, value: str) -> str:
        return normalize_display_name(value, field="name")

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str | None) -> str | None:
        return normalize_phone(value)


class VenueUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    address: str | None = Field(default=None, max_length=255)
    phone: str | None = None
    website: str | None = Field(default=None, max_length=512)
    details: VenueDetails | None = None
    opening_hours: dict[str, str] | None = None
    image_url: str | None = Field(default=None, max_length=512)

    @field_validator("name")
    @classmethod
    def _name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_display_name(value, field="name")

    @field_validator("phone")
    @classmethod
    def _phone(cls, value: str | None) -> str | None:
        return normalize_phone(value)


class VenueOut(BaseModel):
    id: str
    name: str
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    latitude: float
    longitude: float
    details: VenueDetails
    opening_hours: dict[str, str] = Field(default_factory=dict)
    image_url: str | None = None
    average_rating: float = 0.0
    display_rating: float = 0.0
    review_count: int = 0
    distance_km: float | None = None
    relevance_score: float | None = None


class AggregateOut(BaseModel):
    venue_id: str
    average_rating: float
    display_rating: float
    review_count: int


# --- Reviews ---
class ReviewCreate(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    venue_id: str = Field(min_length=1, max_length=64)
    # type and range checks happen in the ledger so the caller gets an invalid_rating error
    rating: Any
    comment: str | None = Field(default=None, max_length=2000)
    sub_ratings: dict[str, Any] | None = None


class ReviewUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rating: Any = None
    comment: str | None = Field(default=None, max_length=2000)
    sub_ratings: dict[str, Any] | None = None


class ReviewOut(BaseModel):
    id: str
    venue_id: str
    user_id: str
    rating: int
    comment: str | None = None
    sub_ratings: dict[str, int] = Field(default_factory=dict)
    status: Literal["active", "retracted"] = "active"
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReviewPage(BaseModel):
    reviews: list[ReviewOut]
    total: int
    page: int
    limit: int


class ReviewReceipt(BaseModel):
    review: ReviewOut
    aggregate: AggregateOut


class RetractAck(BaseModel):
    id: str
    venue_id: str
    aggregate: AggregateOut


# --- Visits ---
class VisitCreate(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    venue_id: str = Field(min_length=1, max_length=64)
    party_size: int = Field(default=1, ge=1, le=100)
    visited_at: datetime | None = None


class VisitOut(BaseModel):
    id: str
    user_id: str
    venue_id: str
    venue_name: str | None = None
    visited_at: datetime
    party_size: int


class VisitStatsOut(BaseModel):
    user_id: str
    total_visits: int
    unique_venues: int
    total_people: int
    first_visit: datetime | None = None
    last_visit: datetime | None = None
