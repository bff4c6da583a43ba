from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from backend.restorany.contracts import VisitCreate
from backend.restorany.errors import NotFound
from pydantic import ValidationError

BASE = datetime(2026, 5, 1, 19, 30, tzinfo=UTC)


def _visit(engine, user, venue, days=0, party=2):
    return asyncio.run(
        engine.visits.record(
            VisitCreate(
                user_id=user,
                venue_id=venue,
                party_size=party,
                visited_at=BASE + timedelta(days=days),
            )
        )
    )


def test_record_and_list(engine, add_venue):
    add_venue("korzo", 46.3059, 16.3371, name="Kavana Korzo")
    add_venue("marica", 46.3081, 16.3379, name="Grofica Marica")
    _visit(engine, "u1", "korzo", days=0)
    _visit(engine, "u1", "marica", days=2)
    _visit(engine, "u2", "korzo", days=1)

    visits = asyncio.run(engine.visits.list_for_user("u1"))

    assert [v.venue_name for v in visits] == ["Grofica Marica", "Kavana Korzo"]
    assert visits[0].visited_at == BASE + timedelta(days=2)
    assert [v.user_id for v in asyncio.run(engine.visits.list_for_venue("korzo"))] == ["u2", "u1"]


def test_default_visit_time_and_party(engine, add_venue):
    add_venue("korzo", 46.3059, 16.3371)
    before = datetime.now(UTC)

    visit = asyncio.run(engine.visits.record(VisitCreate(user_id="u1", venue_id="korzo")))

    assert visit.party_size == 1
    assert visit.visited_at >= before - timedelta(seconds=1)


def test_stats(engine, add_venue):
    add_venue("korzo", 46.3059, 16.3371)
    add_venue("marica", 46.3081, 16.3379)
    _visit(engine, "u1", "korzo", days=0, party=2)
    _visit(engine, "u1", "korzo", days=3, party=4)
    _visit(engine, "u1", "marica", days=5, party=1)

    stats = asyncio.run(engine.visits.stats("u1"))

    assert stats.total_visits == 3
    assert stats.unique_venues == 2
    assert stats.total_people == 7
    assert stats.first_visit == BASE
    assert stats.last_visit == BASE + timedelta(days=5)


def test_stats_for_new_user(engine):
    stats = asyncio.run(engine.visits.stats("nobody"))
    assert (stats.total_visits, stats.unique_venues, stats.total_people) == (0, 0, 0)
    assert stats.first_visit is None


def test_unknown_venue(engine):
    with pytest.raises(NotFound):
        asyncio.run(engine.visits.record(VisitCreate(user_id="u1", venue_id="missing")))


def test_delete_visit(engine, add_venue):
    add_venue("korzo", 46.3059, 16.3371)
    visit = _visit(engine, "u1", "korzo")

    asyncio.run(engine.visits.delete(visit.id))

    assert asyncio.run(engine.visits.list_for_user("u1")) == []
    with pytest.raises(NotFound):
        asyncio.run(engine.visits.delete(visit.id))


def test_party_size_bounds():
    with pytest.raises(ValidationError):
        VisitCreate(user_id="u1", venue_id="v", party_size=0)
