from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .contracts import VisitCreate
from .db.core import SessionLocal
from .db.models import VenueRecord, VisitRecord
from .errors import NotFound
from .logging_config import get_logger
from .serializers import as_utc
from .types import Visit, VisitStats

logger = get_logger(__name__)


def _to_visit(record: VisitRecord, venue_name: str | None = None) -> Visit:
    return Visit(
        id=str(record.id),
        user_id=record.user_id,
        venue_id=str(record.venue_id),
        visited_at=as_utc(record.visited_at),
        party_size=int(record.party_size),
        venue_name=venue_name,
    )


class VisitLog:
    """Check-ins of users at venues, kept apart from reviews and ratings."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    async def record(self, payload: VisitCreate) -> Visit:
        async with self._session_factory() as session:
            venue = await session.get(VenueRecord, payload.venue_id)
            if venue is None:
                raise NotFound(f"Venue {payload.venue_id} not found")
            record = VisitRecord(
                id=str(uuid4()),
                venue_id=venue.id,
                user_id=payload.user_id,
                party_size=payload.party_size,
                visited_at=as_utc(payload.visited_at) or datetime.now(UTC),
            )
            session.add(record)
            await session.commit()
            await session.refresh(record)
            logger.info(
                "visit_recorded",
                visit_id=record.id,
                user_id=record.user_id,
                venue_id=record.venue_id,
                party_size=record.party_size,
            )
            return _to_visit(record, venue.name)

    async def delete(self, visit_id: str) -> None:
        async with self._session_factory() as session:
            record = await session.get(VisitRecord, str(visit_id))
            if record is None:
                raise NotFound(f"Visit {visit_id} not found")
            await session.delete(record)
            await session.commit()
        logger.info("visit_deleted", visit_id=visit_id)

    async def list_for_user(self, user_id: str) -> list[Visit]:
        """Newest first, with the venue name attached."""
        stmt = (
            select(VisitRecord, VenueRecord.name)
            .join(VenueRecord, VenueRecord.id == VisitRecord.venue_id)
            .where(VisitRecord.user_id == str(user_id))
            .order_by(VisitRecord.visited_at.desc(), VisitRecord.id.asc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [_to_visit(record, name) for record, name in rows]

    async def list_for_venue(self, venue_id: str) -> list[Visit]:
        async with self._session_factory() as session:
            venue = await session.get(VenueRecord, str(venue_id))
            if venue is None:
                raise NotFound(f"Venue {venue_id} not found")
            rows = (
                await session.execute(
                    select(VisitRecord)
                    .where(VisitRecord.venue_id == venue.id)
                    .order_by(VisitRecord.visited_at.desc(), VisitRecord.id.asc())
                )
            ).scalars()
            return [_to_visit(record, venue.name) for record in rows]

    async def stats(self, user_id: str) -> VisitStats:
        stmt = select(
            func.count(VisitRecord.id),
            func.count(func.distinct(VisitRecord.venue_id)),
            func.coalesce(func.sum(VisitRecord.party_size), 0),
            func.min(VisitRecord.visited_at),
            func.max(VisitRecord.visited_at),
        ).where(VisitRecord.user_id == str(user_id))
        async with self._session_factory() as session:
            total, unique, people, first, last = (await session.execute(stmt)).one()
        return VisitStats(
            user_id=str(user_id),
            total_visits=int(total or 0),
            unique_venues=int(unique or 0),
            total_people=int(people or 0),
            first_visit=as_utc(first),
            last_visit=as_utc(last),
        )
