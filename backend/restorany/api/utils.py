from __future__ import annotations

from ..errors import InvalidQuery
from ..settings import settings
from ..types import GeoPoint


def parse_center(lat: float | None, lng: float | None) -> GeoPoint | None:
    """Both coordinates or neither; range checks happen in discovery."""
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise InvalidQuery("Invalid center: both lat and lng are required")
    return GeoPoint(lat, lng)


def capped_radius(radius_km: float | None) -> float | None:
    if radius_km is not None and radius_km > settings.MAX_RADIUS_KM:
        raise InvalidQuery(f"radius_km must be <= {settings.MAX_RADIUS_KM:g}")
    return radius_km


def capped_limit(limit: int | None) -> int:
    if limit is None:
        return settings.DISCOVERY_MAX_RESULTS
    if limit < 1:
        raise InvalidQuery(f"limit must be >= 1, got {limit}")
    return min(limit, settings.DISCOVERY_MAX_RESULTS)
