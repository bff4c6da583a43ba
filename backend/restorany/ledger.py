"""
Review ledger: submit, edit and retract reviews.

Every mutation runs inside the venue's critical section and a single
transaction that also recomputes the venue aggregate, so the stored
``average_rating``/``review_count`` always match the active reviews. If the
aggregate cannot be written the review change is rolled back with it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .aggregator import RatingAggregator, lock_venue_row
from .db.core import SessionLocal
from .db.models import ReviewRecord, VenueRecord
from .errors import DuplicateReview, EngineError, InvalidQuery, InvalidRating, NotFound
from .locks import VenueLocks
from .logging_config import get_logger
from .metrics import review_mutations_total
from .settings import settings
from .types import RATING_MAX, RATING_MIN, SUB_RATING_ASPECTS, Ack, Review, ReviewStatus
from .validators import normalize_comment

logger = get_logger(__name__)


def _is_score(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and RATING_MIN <= value <= RATING_MAX


def validate_rating(rating: Any) -> int:
    if not _is_score(rating):
        raise InvalidRating(f"rating must be an integer between {RATING_MIN} and {RATING_MAX}")
    return int(rating)


def validate_sub_ratings(sub_ratings: Mapping[str, Any] | None) -> dict[str, int]:
    if not sub_ratings:
        return {}
    cleaned: dict[str, int] = {}
    for aspect, score in sub_ratings.items():
        if aspect not in SUB_RATING_ASPECTS:
            raise InvalidRating(
                f"Unknown rating aspect '{aspect}'; expected one of: {', '.join(SUB_RATING_ASPECTS)}"
            )
        if not _is_score(score):
            raise InvalidRating(
                f"{aspect} rating must be an integer between {RATING_MIN} and {RATING_MAX}"
            )
        cleaned[aspect] = int(score)
    return cleaned


def _clean_comment(comment: str | None) -> str | None:
    try:
        return normalize_comment(comment)
    except ValueError as exc:
        raise InvalidRating(str(exc)) from exc


def to_review(record: ReviewRecord) -> Review:
    return Review(
        id=str(record.id),
        venue_id=str(record.venue_id),
        user_id=record.user_id,
        rating=int(record.rating),
        comment=record.comment,
        sub_ratings=dict(record.sub_ratings or {}),
        status=ReviewStatus(record.status),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class ReviewLedger:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        aggregator: RatingAggregator | None = None,
        locks: VenueLocks | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._locks = locks or VenueLocks()
        self._aggregator = aggregator or RatingAggregator(self._session_factory, self._locks)

    async def submit(
        self,
        user_id: str,
        venue_id: str,
        rating: Any,
        comment: str | None = None,
        sub_ratings: Mapping[str, Any] | None = None,
    ) -> Ack:
        """
        Record a new review and refresh the venue aggregate atomically.

        Raises:
            InvalidRating: rating or a sub-rating outside 1-5, or an unknown aspect.
            NotFound: the venue does not exist.
            DuplicateReview: the user already has an active review for the venue.
            AggregateUnavailable: the aggregate write failed; nothing was stored.
        """
        try:
            score = validate_rating(rating)
            aspects = validate_sub_ratings(sub_ratings)
            text = _clean_comment(comment)
            ack = await self._insert(str(user_id), str(venue_id), score, text, aspects)
        except EngineError as exc:
            review_mutations_total.labels(operation="submit", outcome=exc.code).inc()
            logger.info(
                "review_rejected", user_id=user_id, venue_id=venue_id, reason=exc.code
            )
            raise
        review_mutations_total.labels(operation="submit", outcome="ok").inc()
        logger.info(
            "review_submitted",
            review_id=ack.review_id,
            user_id=user_id,
            venue_id=venue_id,
            rating=score,
        )
        return ack

    async def _insert(
        self,
        user_id: str,
        venue_id: str,
        rating: int,
        comment: str | None,
        sub_ratings: dict[str, int],
    ) -> Ack:
        review_id = str(uuid4())
        async with self._locks.hold(venue_id):
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        await lock_venue_row(session, venue_id)
                        existing = await session.execute(
                            select(ReviewRecord.id).where(
                                ReviewRecord.user_id == user_id,
                                ReviewRecord.venue_id == venue_id,
                                ReviewRecord.status == ReviewStatus.ACTIVE.value,
                            )
                        )
                        if existing.first() is not None:
                            raise DuplicateReview(
                                f"User {user_id} already has an active review for venue {venue_id}"
                            )
                        session.add(
                            ReviewRecord(
                                id=review_id,
                                venue_id=venue_id,
                                user_id=user_id,
                                rating=rating,
                                comment=comment,
                                sub_ratings=sub_ratings,
                                status=ReviewStatus.ACTIVE.value,
                            )
                        )
                        await session.flush()
                        aggregate = await self._aggregator.recompute_in(session, venue_id)
            except IntegrityError as exc:
                # the partial unique index caught a writer outside this process
                raise DuplicateReview(
                    f"User {user_id} already has an active review for venue {venue_id}"
                ) from exc
        return Ack(review_id=review_id, venue_id=venue_id, aggregate=aggregate)

    async def _venue_of(self, review_id: str) -> str:
        async with self._session_factory() as session:
            venue_id = (
                await session.execute(
                    select(ReviewRecord.venue_id).where(
                        ReviewRecord.id == review_id,
                        ReviewRecord.status == ReviewStatus.ACTIVE.value,
                    )
                )
            ).scalar_one_or_none()
        if venue_id is None:
            raise NotFound(f"Review {review_id} not found")
        return str(venue_id)

    async def _active_review(self, session: AsyncSession, review_id: str) -> ReviewRecord:
        record = await session.get(ReviewRecord, review_id)
        if record is None or record.status != ReviewStatus.ACTIVE.value:
            raise NotFound(f"Review {review_id} not found")
        return record

    async def edit(
        self,
        review_id: str,
        rating: Any = None,
        comment: str | None = None,
        sub_ratings: Mapping[str, Any] | None = None,
    ) -> Ack:
        """Change an active review in place; ``None`` leaves a field as it is."""
        review_id = str(review_id)
        try:
            score = validate_rating(rating) if rating is not None else None
            aspects = validate_sub_ratings(sub_ratings) if sub_ratings is not None else None
            text = _clean_comment(comment) if comment is not None else None
            venue_id = await self._venue_of(review_id)
            async with self._locks.hold(venue_id):
                async with self._session_factory() as session:
                    async with session.begin():
                        await lock_venue_row(session, venue_id)
                        record = await self._active_review(session, review_id)
                        if score is not None:
                            record.rating = score
                        if text is not None:
                            record.comment = text
                        if aspects is not None:
                            record.sub_ratings = aspects
                        await session.flush()
                        aggregate = await self._aggregator.recompute_in(session, venue_id)
        except EngineError as exc:
            review_mutations_total.labels(operation="edit", outcome=exc.code).inc()
            logger.info("review_edit_rejected", review_id=review_id, reason=exc.code)
            raise
        review_mutations_total.labels(operation="edit", outcome="ok").inc()
        logger.info("review_edited", review_id=review_id, venue_id=venue_id)
        return Ack(review_id=review_id, venue_id=venue_id, aggregate=aggregate)

    async def retract(self, review_id: str) -> Ack:
        """Mark a review retracted; the user may review the venue again afterwards."""
        review_id = str(review_id)
        try:
            venue_id = await self._venue_of(review_id)
            async with self._locks.hold(venue_id):
                async with self._session_factory() as session:
                    async with session.begin():
                        await lock_venue_row(session, venue_id)
                        record = await self._active_review(session, review_id)
                        record.status = ReviewStatus.RETRACTED.value
                        await session.flush()
                        aggregate = await self._aggregator.recompute_in(session, venue_id)
        except EngineError as exc:
            review_mutations_total.labels(operation="retract", outcome=exc.code).inc()
            logger.info("review_retract_rejected", review_id=review_id, reason=exc.code)
            raise
        review_mutations_total.labels(operation="retract", outcome="ok").inc()
        logger.info("review_retracted", review_id=review_id, venue_id=venue_id)
        return Ack(review_id=review_id, venue_id=venue_id, aggregate=aggregate)

    async def get(self, review_id: str) -> Review:
        async with self._session_factory() as session:
            record = await session.get(ReviewRecord, str(review_id))
            if record is None:
                raise NotFound(f"Review {review_id} not found")
            return to_review(record)

    async def list_for_venue(
        self, venue_id: str, page: int = 1, limit: int = 20
    ) -> tuple[list[Review], int]:
        """Active reviews for a venue, newest first, plus the total active count."""
        if page < 1:
            raise InvalidQuery("page must be >= 1")
        if not 1 <= limit <= settings.REVIEWS_PAGE_LIMIT_MAX:
            raise InvalidQuery(f"limit must be between 1 and {settings.REVIEWS_PAGE_LIMIT_MAX}")
        active = (
            ReviewRecord.venue_id == str(venue_id),
            ReviewRecord.status == ReviewStatus.ACTIVE.value,
        )
        async with self._session_factory() as session:
            if await session.get(VenueRecord, str(venue_id)) is None:
                raise NotFound(f"Venue {venue_id} not found")
            total = (
                await session.execute(select(func.count(ReviewRecord.id)).where(*active))
            ).scalar_one()
            rows = (
                await session.execute(
                    select(ReviewRecord)
                    .where(*active)
                    .order_by(ReviewRecord.created_at.desc(), ReviewRecord.id.asc())
                    .limit(limit)
                    .offset((page - 1) * limit)
                )
            ).scalars()
            return [to_review(row) for row in rows], int(total)

    async def list_for_user(self, user_id: str, include_retracted: bool = False) -> list[Review]:
        stmt = select(ReviewRecord).where(ReviewRecord.user_id == str(user_id))
        if not include_retracted:
            stmt = stmt.where(ReviewRecord.status == ReviewStatus.ACTIVE.value)
        stmt = stmt.order_by(ReviewRecord.created_at.desc(), ReviewRecord.id.asc())
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars()
            return [to_review(row) for row in rows]
