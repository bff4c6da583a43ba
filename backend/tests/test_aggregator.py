from __future__ import annotations

import asyncio

import pytest
from backend.restorany.db.models import ReviewRecord, VenueRecord
from backend.restorany.errors import NotFound
from backend.restorany.types import Aggregate
from sqlalchemy import update


def test_recompute_is_idempotent(engine, add_venue):
    venue = add_venue("venue", 46.0, 16.0)
    asyncio.run(engine.ledger.submit("u1", venue.id, 5))
    asyncio.run(engine.ledger.submit("u2", venue.id, 2))

    first = asyncio.run(engine.aggregator.recompute(venue.id))
    second = asyncio.run(engine.aggregator.recompute(venue.id))

    assert first == second == Aggregate(venue.id, 3.5, 2)


def test_recompute_repairs_drifted_fields(engine, add_venue):
    venue = add_venue("venue", 46.0, 16.0)
    asyncio.run(engine.ledger.submit("u1", venue.id, 3))

    async def drift():
        async with engine.session_factory() as session:
            await session.execute(
                update(VenueRecord)
                .where(VenueRecord.id == venue.id)
                .values(average_rating=1.0, review_count=9)
            )
            await session.commit()

    asyncio.run(drift())
    assert asyncio.run(engine.get_aggregate(venue.id)).review_count == 9

    repaired = asyncio.run(engine.aggregator.recompute(venue.id))

    assert (repaired.average_rating, repaired.review_count) == (3.0, 1)


def test_only_active_reviews_count(engine, add_venue):
    venue = add_venue("venue", 46.0, 16.0)
    ack = asyncio.run(engine.ledger.submit("u1", venue.id, 1))
    asyncio.run(engine.ledger.submit("u2", venue.id, 5))

    async def retract_behind_the_ledger():
        async with engine.session_factory() as session:
            await session.execute(
                update(ReviewRecord)
                .where(ReviewRecord.id == ack.review_id)
                .values(status="retracted")
            )
            await session.commit()

    asyncio.run(retract_behind_the_ledger())

    assert asyncio.run(engine.aggregator.recompute(venue.id)) == Aggregate(venue.id, 5.0, 1)


def test_empty_venue_aggregate(engine, add_venue):
    venue = add_venue("venue", 46.0, 16.0)
    assert asyncio.run(engine.aggregator.recompute(venue.id)) == Aggregate(venue.id, 0.0, 0)


def test_unknown_venue(engine):
    with pytest.raises(NotFound):
        asyncio.run(engine.get_aggregate("missing"))
    with pytest.raises(NotFound):
        asyncio.run(engine.aggregator.recompute("missing"))


@pytest.mark.parametrize("average,expected", [(4.25, 4.2), (4.26, 4.3), (13 / 3, 4.3), (0.0, 0.0)])
def test_display_rating(average, expected):
    assert Aggregate("v", average, 1).display_rating == expected
