from __future__ import annotations

from typing import Any
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .contracts import VenueCreate, VenueUpdate
from .db.core import SessionLocal
from .db.models import ReviewRecord, VenueRecord, VisitRecord
from .errors import InvalidVenue, NotFound
from .locks import VenueLocks
from .logging_config import get_logger
from .types import VenueSnapshot

logger = get_logger(__name__)


def _tuple(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value if item)


def to_snapshot(record: VenueRecord) -> VenueSnapshot:
    details = record.details if isinstance(record.details, dict) else {}
    hours = record.opening_hours if isinstance(record.opening_hours, dict) else {}
    return VenueSnapshot(
        id=str(record.id),
        name=record.name,
        latitude=float(record.latitude),
        longitude=float(record.longitude),
        address=record.address,
        phone=record.phone,
        website=record.website,
        categories=_tuple(details.get("categories")),
        price_tier=details.get("price_tier"),
        amenities=_tuple(details.get("amenities")),
        delivery=_tuple(details.get("delivery")),
        opening_hours={str(k): str(v) for k, v in hours.items()},
        image_url=record.image_url,
        average_rating=float(record.average_rating or 0.0),
        review_count=int(record.review_count or 0),
        created_at=record.created_at,
    )


class VenueCatalog:
    """
    Venue CRUD. Writes here never touch ``average_rating`` or ``review_count``;
    those belong to the rating aggregator.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        locks: VenueLocks | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._locks = locks or VenueLocks()

    async def create(self, payload: VenueCreate) -> VenueSnapshot:
        record = VenueRecord(
            id=payload.id or str(uuid4()),
            name=payload.name,
            address=payload.address,
            phone=payload.phone,
            website=payload.website,
            latitude=payload.latitude,
            longitude=payload.longitude,
            details=payload.details.model_dump(),
            opening_hours=dict(payload.opening_hours),
            image_url=payload.image_url,
            average_rating=0.0,
            review_count=0,
        )
        async with self._session_factory() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise InvalidVenue(f"Venue id {record.id} already exists") from exc
            await session.refresh(record)
        logger.info("venue_created", venue_id=record.id, name=record.name)
        return to_snapshot(record)

    async def get(self, venue_id: str) -> VenueSnapshot:
        async with self._session_factory() as session:
            record = await session.get(VenueRecord, str(venue_id))
            if not record:
                raise NotFound(f"Venue {venue_id} not found")
            return to_snapshot(record)

    async def all(self) -> list[VenueSnapshot]:
        async with self._session_factory() as session:
            rows = (await session.execute(select(VenueRecord))).scalars().all()
            return [to_snapshot(row) for row in rows]

    async def update(self, venue_id: str, payload: VenueUpdate) -> VenueSnapshot:
        fields = payload.model_dump(exclude_unset=True, exclude_none=True)
        async with self._session_factory() as session:
            record = await session.get(VenueRecord, str(venue_id))
            if not record:
                raise NotFound(f"Venue {venue_id} not found")
            for key, value in fields.items():
                setattr(record, key, value)
            await session.commit()
            await session.refresh(record)
            logger.info("venue_updated", venue_id=record.id, fields=sorted(fields))
            return to_snapshot(record)

    async def delete(self, venue_id: str) -> str:
        """Delete a venue together with its reviews and visits."""
        async with self._locks.hold(venue_id):
            async with self._session_factory() as session:
                async with session.begin():
                    record = await session.get(VenueRecord, str(venue_id))
                    if not record:
                        raise NotFound(f"Venue {venue_id} not found")
                    reviews = await session.execute(
                        delete(ReviewRecord).where(ReviewRecord.venue_id == record.id)
                    )
                    visits = await session.execute(
                        delete(VisitRecord).where(VisitRecord.venue_id == record.id)
                    )
                    await session.delete(record)
        logger.info(
            "venue_deleted",
            venue_id=venue_id,
            reviews_removed=reviews.rowcount,
            visits_removed=visits.rowcount,
        )
        return str(venue_id)
