"""
Engine facade wiring the catalog, discovery and review components together.

All components share one session factory and one ``VenueLocks`` registry so
ledger writes and standalone recomputes for a venue serialize on the same lock.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .aggregator import RatingAggregator
from .catalog import VenueCatalog
from .db.core import SessionLocal
from .discovery import Discovery
from .geo import GeoIndex, haversine_km, validate_point
from .ledger import ReviewLedger
from .locks import VenueLocks
from .text_match import TextMatcher
from .types import Ack, Aggregate, Candidate, GeoPoint, Review, SortKey
from .visits import VisitLog


class Engine:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self.session_factory = session_factory or SessionLocal
        self.locks = VenueLocks()
        self.catalog = VenueCatalog(self.session_factory, self.locks)
        self.geo = GeoIndex(self.session_factory)
        self.text = TextMatcher(self.catalog)
        self.discovery = Discovery(self.geo, self.text)
        self.aggregator = RatingAggregator(self.session_factory, self.locks)
        self.ledger = ReviewLedger(self.session_factory, self.aggregator, self.locks)
        self.visits = VisitLog(self.session_factory)

    async def discover(
        self,
        center: GeoPoint | None = None,
        radius_km: float | None = None,
        query: str | None = None,
        min_rating: float | None = None,
        category: str | None = None,
        sort_key: SortKey | str | None = None,
        limit: int | None = None,
    ) -> list[Candidate]:
        return await self.discovery.discover(
            center=center,
            radius_km=radius_km,
            query=query,
            min_rating=min_rating,
            category=category,
            sort_key=sort_key,
            limit=limit,
        )

    async def venue_near(self, venue_id: str, center: GeoPoint | None = None) -> Candidate:
        """One venue, with its distance from ``center`` when given."""
        venue = await self.catalog.get(venue_id)
        if center is None:
            return Candidate(venue=venue)
        point = validate_point(center.lat, center.lng)
        return Candidate(venue=venue, distance_km=haversine_km(point, venue.point))

    async def submit_review(
        self,
        user_id: str,
        venue_id: str,
        rating: Any,
        comment: str | None = None,
        sub_ratings: Mapping[str, Any] | None = None,
    ) -> Review:
        ack = await self.ledger.submit(user_id, venue_id, rating, comment, sub_ratings)
        return await self.ledger.get(ack.review_id)

    async def edit_review(self, review_id: str, **fields: Any) -> Review:
        ack = await self.ledger.edit(review_id, **fields)
        return await self.ledger.get(ack.review_id)

    async def retract_review(self, review_id: str) -> Ack:
        return await self.ledger.retract(review_id)

    async def get_aggregate(self, venue_id: str) -> Aggregate:
        return await self.aggregator.get_aggregate(venue_id)


DB = Engine()
