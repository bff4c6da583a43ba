"""
Result composition and the discovery entry point.

``compose`` is a pure function over candidates: filter by minimum rating and
category, then sort. Every ordering ends with the venue id so equal keys come
back in the same order on every call.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from typing import Any

from .errors import InvalidQuery
from .geo import GeoIndex, validate_point
from .logging_config import get_logger
from .metrics import discovery_requests_total, discovery_results
from .settings import settings
from .text_match import TextMatcher, fold
from .types import Candidate, GeoPoint, SortKey

logger = get_logger(__name__)

SortFn = Callable[[Candidate], tuple[Any, ...]]

_SORTS: dict[SortKey, SortFn] = {
    # missing distance sorts as +inf
    SortKey.DISTANCE: lambda c: (
        c.distance_km is None,
        c.distance_km if c.distance_km is not None else 0.0,
        c.venue.id,
    ),
    SortKey.RATING: lambda c: (-c.venue.average_rating, c.venue.id),
    SortKey.REVIEW_COUNT: lambda c: (-c.venue.review_count, c.venue.id),
    SortKey.RELEVANCE: lambda c: (
        c.relevance_score is None,
        -(c.relevance_score or 0.0),
        c.venue.id,
    ),
}


def _browse_order(c: Candidate) -> tuple[Any, ...]:
    return (-c.venue.average_rating, -c.venue.review_count, c.venue.id)


def parse_sort_key(value: SortKey | str | None) -> SortKey | None:
    if value is None or isinstance(value, SortKey):
        return value
    raw = value.strip().lower()
    if not raw:
        return None
    try:
        return SortKey(raw)
    except ValueError as exc:
        allowed = ", ".join(key.value for key in SortKey)
        raise InvalidQuery(f"Unknown sort key '{value}'; expected one of: {allowed}") from exc


def matches_category(candidate: Candidate, token: str) -> bool:
    needle = fold(token)
    return any(needle in fold(category) for category in candidate.venue.categories)


def compose(
    candidates: Iterable[Candidate],
    min_rating: float | None = None,
    category: str | None = None,
    sort_key: SortKey | str | None = None,
) -> list[Candidate]:
    results = list(candidates)

    if min_rating:
        results = [c for c in results if c.venue.average_rating >= min_rating]

    if category and fold(category):
        results = [c for c in results if matches_category(c, category)]

    key = parse_sort_key(sort_key)
    if key is None:
        if any(c.relevance_score is not None for c in results):
            key = SortKey.RELEVANCE
        elif any(c.distance_km is not None for c in results):
            key = SortKey.DISTANCE
    results.sort(key=_SORTS[key] if key else _browse_order)
    return results


class Discovery:
    def __init__(self, geo: GeoIndex, text: TextMatcher) -> None:
        self.geo = geo
        self.text = text

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
        """
        Single discovery entry point.

        A non-blank ``query`` goes to the text matcher (``radius_km`` caps the
        distance only when given explicitly); otherwise a ``center`` triggers a
        radius search (``DEFAULT_RADIUS_KM`` when no radius is given) and no
        center means browsing the whole catalog.

        Raises:
            InvalidQuery: bad coordinates, non-positive radius, rating threshold
                outside 0-5, unknown sort key or non-positive limit.
        """
        mode = "browse"
        try:
            point = validate_point(center.lat, center.lng) if center is not None else None
            if radius_km is not None and (not math.isfinite(radius_km) or radius_km <= 0):
                raise InvalidQuery(f"radius_km must be a positive number, got {radius_km}")
            if min_rating is not None and not 0 <= min_rating <= 5:
                raise InvalidQuery(f"min_rating must be between 0 and 5, got {min_rating}")
            if limit is not None and limit < 1:
                raise InvalidQuery(f"limit must be >= 1, got {limit}")
            key = parse_sort_key(sort_key)

            if query and query.strip():
                mode = "text"
                candidates = await self.text.search(query, point)
                if radius_km is not None and point is not None:
                    candidates = [
                        c
                        for c in candidates
                        if c.distance_km is not None and c.distance_km <= radius_km
                    ]
            elif point is not None:
                mode = "geo"
                radius = radius_km if radius_km is not None else settings.DEFAULT_RADIUS_KM
                candidates = await self.geo.within_radius(point, radius)
            else:
                candidates = await self.geo.browse()
        except InvalidQuery as exc:
            discovery_requests_total.labels(mode=mode, result="invalid").inc()
            logger.info("discovery_rejected", mode=mode, detail=exc.detail)
            raise

        results = compose(candidates, min_rating=min_rating, category=category, sort_key=key)
        if limit is not None:
            results = results[:limit]
        discovery_requests_total.labels(mode=mode, result="ok").inc()
        discovery_results.labels(mode=mode).observe(len(results))
        logger.debug("discovery_served", mode=mode, results=len(results))
        return results
