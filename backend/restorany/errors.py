"""Domain errors raised by the discovery and review engine.

Every error is recoverable and carries a stable ``code`` plus the HTTP status
the API layer answers with; none of them should take the process down.
"""

from __future__ import annotations


class EngineError(Exception):
    code = "engine_error"
    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class InvalidRating(EngineError):
    code = "invalid_rating"
    status_code = 422


class DuplicateReview(EngineError):
    code = "duplicate_review"
    status_code = 409


class NotFound(EngineError):
    code = "not_found"
    status_code = 404


class InvalidQuery(EngineError):
    code = "invalid_query"
    status_code = 422


class InvalidVenue(EngineError):
    code = "invalid_venue"
    status_code = 422


class AggregateUnavailable(EngineError):
    """The aggregate could not be written, so the ledger write was rolled back."""

    code = "aggregate_unavailable"
    status_code = 503


__all__ = [
    "AggregateUnavailable",
    "DuplicateReview",
    "EngineError",
    "InvalidQuery",
    "InvalidRating",
    "InvalidVenue",
    "NotFound",
]
