from __future__ import annotations

from fastapi import APIRouter, Response

from ...contracts import AggregateOut, ReviewPage, VenueCreate, VenueOut, VenueUpdate
from ...engine import DB
from ...serializers import aggregate_to_out, candidate_to_out, review_to_out, venue_to_out
from ..types import (
    CategoryFilter,
    Latitude,
    Longitude,
    MinRating,
    Page,
    PageLimit,
    RadiusKm,
    ResultLimit,
    SortParam,
    VenueSearch,
)
from ..utils import capped_limit, capped_radius, parse_center

router = APIRouter(tags=["venues"])


@router.get("/venues", response_model=list[VenueOut])
async def discover_venues(
    lat: Latitude = None,
    lng: Longitude = None,
    radius_km: RadiusKm = None,
    q: VenueSearch = None,
    min_rating: MinRating = None,
    category: CategoryFilter = None,
    sort: SortParam = None,
    limit: ResultLimit = None,
):
    results = await DB.discover(
        center=parse_center(lat, lng),
        radius_km=capped_radius(radius_km),
        query=q,
        min_rating=min_rating,
        category=category,
        sort_key=sort,
        limit=capped_limit(limit),
    )
    return [candidate_to_out(candidate) for candidate in results]


@router.post("/venues", response_model=VenueOut, status_code=201)
async def create_venue(payload: VenueCreate):
    venue = await DB.catalog.create(payload)
    return venue_to_out(venue)


@router.get("/venues/{venue_id}", response_model=VenueOut)
async def get_venue(venue_id: str, lat: Latitude = None, lng: Longitude = None):
    return candidate_to_out(await DB.venue_near(venue_id, parse_center(lat, lng)))


@router.patch("/venues/{venue_id}", response_model=VenueOut)
async def update_venue(venue_id: str, payload: VenueUpdate):
    return venue_to_out(await DB.catalog.update(venue_id, payload))


@router.delete("/venues/{venue_id}", status_code=204)
async def delete_venue(venue_id: str):
    await DB.catalog.delete(venue_id)
    return Response(status_code=204)


@router.get("/venues/{venue_id}/aggregate", response_model=AggregateOut)
async def venue_aggregate(venue_id: str):
    return aggregate_to_out(await DB.get_aggregate(venue_id))


@router.get("/venues/{venue_id}/reviews", response_model=ReviewPage)
async def venue_reviews(venue_id: str, page: Page = 1, limit: PageLimit = 20):
    reviews, total = await DB.ledger.list_for_venue(venue_id, page=page, limit=limit)
    return ReviewPage(
        reviews=[review_to_out(review) for review in reviews],
        total=total,
        page=page,
        limit=limit,
    )
