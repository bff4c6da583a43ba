"""Fuzzy free-text matching over venue name, address and categories."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

from rapidfuzz import fuzz

from .catalog import VenueCatalog
from .geo import haversine_km
from .settings import settings
from .types import Candidate, GeoPoint, VenueSnapshot

# letters NFKD leaves intact
_FOLD_EXTRA = str.maketrans({"đ": "d", "ð": "d", "ł": "l", "ø": "o", "æ": "ae", "œ": "oe", "ı": "i"})

FIELD_WEIGHTS = {"name": 1.0, "categories": 0.85, "address": 0.7}
TOKEN_CUTOFF = 80


def fold(value: str | None) -> str:
    """Lowercase, strip diacritics and collapse punctuation/whitespace to single spaces."""
    if not value:
        return ""
    lowered = unicodedata.normalize("NFKD", value.casefold())
    stripped = "".join(ch for ch in lowered if not unicodedata.combining(ch))
    stripped = stripped.translate(_FOLD_EXTRA)
    cleaned = "".join(ch if ch.isalnum() else " " for ch in stripped)
    return re.sub(r"\s+", " ", cleaned).strip()


def token_score(query_token: str, field_token: str) -> float:
    """Similarity in [0, 1] of two folded tokens; 0.0 below ``TOKEN_CUTOFF``."""
    if query_token in field_token:
        return 1.0
    if len(query_token) <= len(field_token):
        # align the query inside the field, never the field inside the query
        score = fuzz.partial_ratio(query_token, field_token, score_cutoff=TOKEN_CUTOFF)
    else:
        score = fuzz.ratio(query_token, field_token, score_cutoff=TOKEN_CUTOFF)
    return score / 100.0


def field_score(query: str, text: str) -> float:
    """Score in [0, 1] for one folded query against one folded field.

    Every query token is matched against its closest field token and the
    per-token scores are averaged, so each query word has to be present.
    """
    if not query or not text:
        return 0.0
    if query in text:
        return 1.0
    field_tokens = text.split()
    query_tokens = query.split()
    total = sum(max(token_score(q, t) for t in field_tokens) for q in query_tokens)
    return total / len(query_tokens)


def relevance(query: str, venue: VenueSnapshot) -> float:
    folded_query = fold(query)
    if not folded_query:
        return 0.0
    fields: Iterable[tuple[str, str]] = (
        ("name", fold(venue.name)),
        ("address", fold(venue.address)),
        ("categories", fold(" ".join(venue.categories))),
    )
    best = 0.0
    for name, text in fields:
        score = FIELD_WEIGHTS[name] * field_score(folded_query, text)
        if score > best:
            best = score
    return round(best, 4)


class TextMatcher:
    def __init__(self, catalog: VenueCatalog, min_relevance: float | None = None) -> None:
        self._catalog = catalog
        self._min_relevance = (
            settings.TEXT_MIN_RELEVANCE if min_relevance is None else min_relevance
        )

    async def search(self, query: str | None, center: GeoPoint | None = None) -> list[Candidate]:
        """Venues matching ``query``, best match first; distance is set when ``center`` is given."""
        if not query or not query.strip():
            return []
        candidates: list[Candidate] = []
        for venue in await self._catalog.all():
            score = relevance(query, venue)
            if score < self._min_relevance:
                continue
            distance = haversine_km(center, venue.point) if center else None
            candidates.append(Candidate(venue=venue, distance_km=distance, relevance_score=score))
        candidates.sort(key=lambda c: (-(c.relevance_score or 0.0), c.venue.id))
        return candidates
