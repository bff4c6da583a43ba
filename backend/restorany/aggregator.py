"""Rating aggregate maintenance.

The aggregator is the only code that writes ``venues.average_rating`` and
``venues.review_count``. Both columns change in one UPDATE statement so a
concurrent reader sees either the old pair or the new pair.
"""

from __future__ import annotations

import time

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db.core import SessionLocal, is_sqlite
from .db.models import ReviewRecord, VenueRecord
from .errors import AggregateUnavailable, NotFound
from .locks import VenueLocks
from .logging_config import get_logger
from .metrics import aggregate_recompute_seconds
from .types import Aggregate, ReviewStatus

logger = get_logger(__name__)


class RatingAggregator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        locks: VenueLocks | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._locks = locks or VenueLocks()

    async def recompute_in(self, session: AsyncSession, venue_id: str) -> Aggregate:
        """
        Recompute inside the caller's transaction.

        Reads go through ``session`` so the triggering ledger write is visible.
        Storage failures surface as AggregateUnavailable; the caller's
        transaction must then roll back.
        """
        started = time.perf_counter()
        try:
            stmt = select(func.count(ReviewRecord.id), func.avg(ReviewRecord.rating)).where(
                ReviewRecord.venue_id == venue_id,
                ReviewRecord.status == ReviewStatus.ACTIVE.value,
            )
            count, average = (await session.execute(stmt)).one()
            aggregate = Aggregate(
                venue_id=venue_id,
                average_rating=float(average or 0.0),
                review_count=int(count or 0),
            )
            await self._write(session, aggregate)
        except SQLAlchemyError as exc:
            logger.error("aggregate_write_failed", venue_id=venue_id, error=str(exc))
            raise AggregateUnavailable(f"Could not update rating for venue {venue_id}") from exc
        finally:
            aggregate_recompute_seconds.observe(time.perf_counter() - started)
        logger.info(
            "aggregate_recomputed",
            venue_id=venue_id,
            average_rating=aggregate.average_rating,
            review_count=aggregate.review_count,
        )
        return aggregate

    async def _write(self, session: AsyncSession, aggregate: Aggregate) -> None:
        result = await session.execute(
            update(VenueRecord)
            .where(VenueRecord.id == aggregate.venue_id)
            .values(
                average_rating=aggregate.average_rating,
                review_count=aggregate.review_count,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound(f"Venue {aggregate.venue_id} not found")

    async def recompute(self, venue_id: str) -> Aggregate:
        """Standalone recompute under the venue's critical section."""
        async with self._locks.hold(venue_id):
            async with self._session_factory() as session:
                async with session.begin():
                    await lock_venue_row(session, venue_id)
                    return await self.recompute_in(session, venue_id)

    async def get_aggregate(self, venue_id: str) -> Aggregate:
        async with self._session_factory() as session:
            row = (
                await session.execute(
                    select(VenueRecord.average_rating, VenueRecord.review_count).where(
                        VenueRecord.id == venue_id
                    )
                )
            ).one_or_none()
        if row is None:
            raise NotFound(f"Venue {venue_id} not found")
        average, count = row
        return Aggregate(
            venue_id=venue_id, average_rating=float(average or 0.0), review_count=int(count or 0)
        )


async def lock_venue_row(session: AsyncSession, venue_id: str) -> VenueRecord:
    """Load the venue row, holding a row lock where the dialect supports one."""
    stmt = select(VenueRecord).where(VenueRecord.id == venue_id)
    if not is_sqlite(session):
        stmt = stmt.with_for_update(of=VenueRecord)
    venue = (await session.execute(stmt)).scalar_one_or_none()
    if venue is None:
        raise NotFound(f"Venue {venue_id} not found")
    return venue
