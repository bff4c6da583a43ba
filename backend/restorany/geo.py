"""
Geo index accessor: radius queries over the venue catalog.

Distances are great-circle (haversine) on a sphere of the mean Earth radius.
A latitude/longitude bounding box narrows the SQL scan, then the exact
distance decides membership.
"""

from __future__ import annotations

import math

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .catalog import to_snapshot
from .db.core import SessionLocal
from .db.models import VenueRecord
from .errors import InvalidQuery
from .types import Candidate, GeoPoint

EARTH_RADIUS_KM = 6371.0088
KM_PER_DEGREE_LAT = math.pi * EARTH_RADIUS_KM / 180.0
# slack added to the bounding box so venues sitting exactly on the radius survive the prefilter
BOX_MARGIN_KM = 0.01


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in kilometres."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlon = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def validate_point(lat: float | None, lng: float | None, *, context: str = "center") -> GeoPoint:
    if lat is None or lng is None:
        raise InvalidQuery(f"Invalid {context}: both latitude and longitude are required")
    try:
        lat_f, lng_f = float(lat), float(lng)
    except (TypeError, ValueError) as exc:
        raise InvalidQuery(f"Invalid {context}: coordinates must be numbers") from exc
    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        raise InvalidQuery(f"Invalid {context}: coordinates must be finite")
    if not -90 <= lat_f <= 90:
        raise InvalidQuery(f"Invalid {context}: latitude must be between -90 and 90, got {lat_f}")
    if not -180 <= lng_f <= 180:
        raise InvalidQuery(
            f"Invalid {context}: longitude must be between -180 and 180, got {lng_f}"
        )
    return GeoPoint(lat_f, lng_f)


def bounding_box(center: GeoPoint, radius_km: float) -> tuple[float, float, float, float] | None:
    """
    Return (min_lat, max_lat, min_lng, max_lng) enclosing the radius.

    Returns None when the box would wrap a pole or the antimeridian; callers then
    scan without a prefilter.
    """
    reach = radius_km + BOX_MARGIN_KM
    dlat = reach / KM_PER_DEGREE_LAT
    min_lat, max_lat = center.lat - dlat, center.lat + dlat
    if min_lat <= -90 or max_lat >= 90:
        return None
    cos_lat = math.cos(math.radians(max(abs(min_lat), abs(max_lat))))
    dlng = reach / (KM_PER_DEGREE_LAT * cos_lat)
    min_lng, max_lng = center.lng - dlng, center.lng + dlng
    if min_lng < -180 or max_lng > 180:
        return None
    return min_lat, max_lat, min_lng, max_lng


class GeoIndex:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    async def within_radius(self, center: GeoPoint, radius_km: float) -> list[Candidate]:
        """Every venue with distance <= radius_km, nearest first."""
        if not radius_km or radius_km <= 0 or not math.isfinite(radius_km):
            return []
        stmt = select(VenueRecord)
        box = bounding_box(center, radius_km)
        if box is not None:
            min_lat, max_lat, min_lng, max_lng = box
            stmt = stmt.where(
                VenueRecord.latitude.between(min_lat, max_lat),
                VenueRecord.longitude.between(min_lng, max_lng),
            )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()

        candidates: list[Candidate] = []
        for row in rows:
            venue = to_snapshot(row)
            distance = haversine_km(center, venue.point)
            if distance <= radius_km:
                candidates.append(Candidate(venue=venue, distance_km=distance))
        candidates.sort(key=lambda c: (c.distance_km, c.venue.id))
        return candidates

    async def browse(self) -> list[Candidate]:
        """All venues without distance, best rated first."""
        stmt = select(VenueRecord).order_by(
            VenueRecord.average_rating.desc(),
            VenueRecord.review_count.desc(),
            VenueRecord.id.asc(),
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [Candidate(venue=to_snapshot(row)) for row in rows]
