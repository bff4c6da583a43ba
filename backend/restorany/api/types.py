from __future__ import annotations

from typing import Annotated

from fastapi import Query

from ..settings import settings

Latitude = Annotated[
    float | None,
    Query(description="Latitude of the search center (e.g., 46.3044)"),
]

Longitude = Annotated[
    float | None,
    Query(description="Longitude of the search center (e.g., 16.3366)"),
]

RadiusKm = Annotated[
    float | None,
    Query(description="Search radius in kilometres; must be positive"),
]

VenueSearch = Annotated[
    str | None,
    Query(
        alias="q",
        max_length=80,
        description="Optional free-text search over name, address and categories",
    ),
]

CategoryFilter = Annotated[
    str | None,
    Query(max_length=60, description="Keep venues with a matching category"),
]

MinRating = Annotated[
    float | None,
    Query(description="Minimum average rating (0-5)"),
]

SortParam = Annotated[
    str | None,
    Query(alias="sort", description="distance, rating, review_count or relevance"),
]

ResultLimit = Annotated[int | None, Query(description="Maximum number of venues to return")]

Page = Annotated[int, Query(ge=1)]
PageLimit = Annotated[int, Query(ge=1, le=settings.REVIEWS_PAGE_LIMIT_MAX)]
