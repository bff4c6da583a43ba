from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from .contracts import AggregateOut, ReviewOut, VenueDetails, VenueOut, VisitOut, VisitStatsOut
from .types import Aggregate, Candidate, Review, VenueSnapshot, Visit, VisitStats


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def venue_to_out(
    venue: VenueSnapshot,
    distance_km: float | None = None,
    relevance_score: float | None = None,
) -> VenueOut:
    return VenueOut(
        id=venue.id,
        name=venue.name,
        address=venue.address,
        phone=venue.phone,
        website=venue.website,
        latitude=venue.latitude,
        longitude=venue.longitude,
        details=VenueDetails(
            categories=list(venue.categories),
            price_tier=venue.price_tier,
            amenities=list(venue.amenities),
            delivery=list(venue.delivery),
        ),
        opening_hours=dict(venue.opening_hours),
        image_url=venue.image_url,
        average_rating=venue.average_rating,
        display_rating=round(venue.average_rating, 1),
        review_count=venue.review_count,
        distance_km=round(distance_km, 3) if distance_km is not None else None,
        relevance_score=relevance_score,
    )


def candidate_to_out(candidate: Candidate) -> VenueOut:
    return venue_to_out(candidate.venue, candidate.distance_km, candidate.relevance_score)


def aggregate_to_out(aggregate: Aggregate) -> AggregateOut:
    return AggregateOut(
        venue_id=aggregate.venue_id,
        average_rating=aggregate.average_rating,
        display_rating=aggregate.display_rating,
        review_count=aggregate.review_count,
    )


def review_to_out(review: Review) -> ReviewOut:
    return ReviewOut(
        id=review.id,
        venue_id=review.venue_id,
        user_id=review.user_id,
        rating=review.rating,
        comment=review.comment,
        sub_ratings=dict(review.sub_ratings),
        status=review.status.value,
        created_at=as_utc(review.created_at),
        updated_at=as_utc(review.updated_at),
    )


def visit_to_out(visit: Visit) -> VisitOut:
    return VisitOut(
        id=visit.id,
        user_id=visit.user_id,
        venue_id=visit.venue_id,
        venue_name=visit.venue_name,
        visited_at=as_utc(visit.visited_at),
        party_size=visit.party_size,
    )


def stats_to_out(stats: VisitStats) -> VisitStatsOut:
    return VisitStatsOut(
        user_id=stats.user_id,
        total_visits=stats.total_visits,
        unique_venues=stats.unique_venues,
        total_people=stats.total_people,
        first_visit=as_utc(stats.first_visit),
        last_visit=as_utc(stats.last_visit),
    )


def error_body(code: str, detail: str, **extra: Any) -> dict[str, Any]:
    return {"error": code, "detail": detail, **extra}
