from __future__ import annotations

from fastapi import APIRouter

from ...contracts import RetractAck, ReviewCreate, ReviewOut, ReviewReceipt, ReviewUpdate
from ...engine import DB
from ...serializers import aggregate_to_out, review_to_out
from ...types import Ack

router = APIRouter(tags=["reviews"])


async def _receipt(ack: Ack) -> ReviewReceipt:
    review = await DB.ledger.get(ack.review_id)
    return ReviewReceipt(review=review_to_out(review), aggregate=aggregate_to_out(ack.aggregate))


@router.post("/reviews", response_model=ReviewReceipt, status_code=201)
async def submit_review(payload: ReviewCreate):
    ack = await DB.ledger.submit(
        payload.user_id,
        payload.venue_id,
        payload.rating,
        comment=payload.comment,
        sub_ratings=payload.sub_ratings,
    )
    return await _receipt(ack)


@router.get("/reviews/{review_id}", response_model=ReviewOut)
async def get_review(review_id: str):
    return review_to_out(await DB.ledger.get(review_id))


@router.patch("/reviews/{review_id}", response_model=ReviewReceipt)
async def edit_review(review_id: str, payload: ReviewUpdate):
    ack = await DB.ledger.edit(
        review_id,
        rating=payload.rating,
        comment=payload.comment,
        sub_ratings=payload.sub_ratings,
    )
    return await _receipt(ack)


@router.delete("/reviews/{review_id}", response_model=RetractAck)
async def retract_review(review_id: str):
    ack = await DB.retract_review(review_id)
    return RetractAck(id=ack.review_id, venue_id=ack.venue_id, aggregate=aggregate_to_out(ack.aggregate))


@router.get("/users/{user_id}/reviews", response_model=list[ReviewOut])
async def user_reviews(user_id: str):
    return [review_to_out(review) for review in await DB.ledger.list_for_user(user_id)]
