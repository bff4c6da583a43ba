"""Tests for result composition and the discovery entry point."""

from __future__ import annotations

import asyncio

import pytest
from backend.restorany.discovery import compose, parse_sort_key
from backend.restorany.errors import InvalidQuery
from backend.restorany.geo import KM_PER_DEGREE_LAT
from backend.restorany.types import Candidate, GeoPoint, SortKey, VenueSnapshot

VARAZDIN = GeoPoint(46.3044, 16.3366)


def _candidate(vid, rating=0.0, count=0, distance=None, relevance=None, categories=()):
    venue = VenueSnapshot(
        id=vid,
        name=vid,
        latitude=46.3,
        longitude=16.3,
        categories=tuple(categories),
        average_rating=rating,
        review_count=count,
    )
    return Candidate(venue=venue, distance_km=distance, relevance_score=relevance)


def _ids(candidates):
    return [c.venue.id for c in candidates]


class TestCompose:
    def test_min_rating_filter(self):
        items = [_candidate("a", rating=4.5), _candidate("b", rating=3.9), _candidate("c", rating=4.0)]
        assert _ids(compose(items, min_rating=4.0, sort_key="rating")) == ["a", "c"]

    @pytest.mark.parametrize("threshold", [None, 0])
    def test_zero_or_missing_threshold_keeps_everything(self, threshold):
        items = [_candidate("a", rating=0.0), _candidate("b", rating=2.0)]
        assert len(compose(items, min_rating=threshold)) == 2

    def test_category_filter_is_case_and_accent_insensitive(self):
        items = [
            _candidate("a", categories=["Café", "Desserts"]),
            _candidate("b", categories=["Pizza"]),
            _candidate("c", categories=["Cafeteria"]),
        ]
        assert _ids(compose(items, category="CAFE", sort_key="rating")) == ["a", "c"]

    def test_blank_category_is_noop(self):
        items = [_candidate("a"), _candidate("b", categories=["Pizza"])]
        assert len(compose(items, category="  ")) == 2

    def test_rating_sort_breaks_ties_on_id(self):
        items = [
            _candidate("c", rating=4.0, count=10),
            _candidate("a", rating=4.0, count=1),
            _candidate("b", rating=4.5),
        ]
        assert _ids(compose(items, sort_key=SortKey.RATING)) == ["b", "a", "c"]

    def test_review_count_sort(self):
        items = [_candidate("a", count=2), _candidate("b", count=7), _candidate("c", count=2)]
        assert _ids(compose(items, sort_key="review_count")) == ["b", "a", "c"]

    def test_distance_sort_puts_missing_last(self):
        items = [
            _candidate("far", distance=9.0),
            _candidate("unknown"),
            _candidate("near", distance=0.5),
            _candidate("also-near", distance=0.5),
        ]
        assert _ids(compose(items, sort_key="distance")) == ["also-near", "near", "far", "unknown"]

    def test_relevance_sort_puts_missing_last(self):
        items = [
            _candidate("x"),
            _candidate("b", relevance=0.7),
            _candidate("a", relevance=0.9),
        ]
        assert _ids(compose(items, sort_key="relevance")) == ["a", "b", "x"]

    def test_default_sort_prefers_relevance_then_distance(self):
        scored = [_candidate("a", relevance=0.7, distance=1.0), _candidate("b", relevance=0.9, distance=5.0)]
        assert _ids(compose(scored)) == ["b", "a"]

        located = [_candidate("a", distance=3.0), _candidate("b", distance=1.0)]
        assert _ids(compose(located)) == ["b", "a"]

    def test_default_browse_order(self):
        items = [
            _candidate("c", rating=4.0, count=3),
            _candidate("a", rating=4.0, count=3),
            _candidate("b", rating=4.0, count=9),
            _candidate("d", rating=4.8, count=1),
        ]
        assert _ids(compose(items)) == ["d", "b", "a", "c"]

    def test_repeated_calls_give_identical_order(self):
        items = [_candidate(vid, rating=3.0) for vid in ("m", "k", "z", "a")]
        first = _ids(compose(items, sort_key="rating"))
        assert first == _ids(compose(list(reversed(items)), sort_key="rating"))
        assert first == ["a", "k", "m", "z"]

    def test_unknown_sort_key(self):
        with pytest.raises(InvalidQuery):
            compose([_candidate("a")], sort_key="popularity")

    def test_parse_sort_key(self):
        assert parse_sort_key(" Distance ") is SortKey.DISTANCE
        assert parse_sort_key("") is None
        assert parse_sort_key(None) is None


class TestDiscover:
    def _seed(self, add_venue):
        step = 1.0 / KM_PER_DEGREE_LAT
        add_venue("korzo", VARAZDIN.lat + 0.2 * step, VARAZDIN.lng, name="Kavana Korzo", categories=["Café"])
        add_venue("marica", VARAZDIN.lat + 1.0 * step, VARAZDIN.lng, name="Grofica Marica", categories=["Croatian"])
        add_venue("gorice", VARAZDIN.lat + 3.0 * step, VARAZDIN.lng, name="Zlatne Gorice", categories=["Croatian", "Grill"])
        add_venue("didov-san", 45.8153, 15.9716, name="Didov San", categories=["Dalmatian"])

    def test_center_without_radius_uses_default(self, engine, add_venue):
        self._seed(add_venue)

        results = asyncio.run(engine.discover(center=VARAZDIN))

        assert _ids(results) == ["korzo", "marica", "gorice"]
        distances = [c.distance_km for c in results]
        assert distances == sorted(distances)

    def test_explicit_radius(self, engine, add_venue):
        self._seed(add_venue)
        results = asyncio.run(engine.discover(center=VARAZDIN, radius_km=1.5))
        assert _ids(results) == ["korzo", "marica"]

    def test_growing_radius_never_loses_venues(self, engine, add_venue):
        self._seed(add_venue)
        previous: set[str] = set()
        for radius in (0.5, 2.0, 10.0, 100.0):
            current = set(_ids(asyncio.run(engine.discover(center=VARAZDIN, radius_km=radius))))
            assert previous <= current
            previous = current
        assert "didov-san" in previous

    def test_query_routes_to_text_matcher(self, engine, add_venue):
        self._seed(add_venue)

        results = asyncio.run(engine.discover(center=VARAZDIN, query="croatian"))

        assert set(_ids(results)) == {"marica", "gorice"}
        assert all(c.relevance_score is not None and c.distance_km is not None for c in results)

    def test_query_with_radius_caps_distance(self, engine, add_venue):
        self._seed(add_venue)
        add_venue("zg-croatian", 45.8145, 15.9770, name="Zagreb Kitchen", categories=["Croatian"])

        near = asyncio.run(engine.discover(center=VARAZDIN, radius_km=10, query="croatian"))
        everywhere = asyncio.run(engine.discover(center=VARAZDIN, query="croatian"))

        assert "zg-croatian" not in _ids(near)
        assert "zg-croatian" in _ids(everywhere)

    def test_blank_query_falls_back_to_geo(self, engine, add_venue):
        self._seed(add_venue)
        results = asyncio.run(engine.discover(center=VARAZDIN, radius_km=1.5, query="   "))
        assert _ids(results) == ["korzo", "marica"]

    def test_browse_without_center(self, engine, add_venue):
        self._seed(add_venue)
        results = asyncio.run(engine.discover())
        assert _ids(results) == ["didov-san", "gorice", "korzo", "marica"]
        assert all(c.distance_km is None for c in results)

    def test_filters_and_limit(self, engine, add_venue):
        self._seed(add_venue)
        results = asyncio.run(
            engine.discover(center=VARAZDIN, category="croatian", sort_key="distance", limit=1)
        )
        assert _ids(results) == ["marica"]

    def test_min_rating_uses_aggregates(self, engine, add_venue):
        self._seed(add_venue)
        asyncio.run(engine.submit_review("u1", "gorice", 5))
        asyncio.run(engine.submit_review("u1", "marica", 2))

        results = asyncio.run(engine.discover(center=VARAZDIN, min_rating=4))

        assert _ids(results) == ["gorice"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"center": GeoPoint(123.0, 16.0)},
            {"center": GeoPoint(46.0, -200.0)},
            {"center": VARAZDIN, "radius_km": 0},
            {"center": VARAZDIN, "radius_km": -5},
            {"min_rating": 7},
            {"sort_key": "cheapest"},
            {"limit": 0},
        ],
    )
    def test_invalid_queries(self, engine, kwargs):
        with pytest.raises(InvalidQuery):
            asyncio.run(engine.discover(**kwargs))
