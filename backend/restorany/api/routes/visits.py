from __future__ import annotations

from fastapi import APIRouter, Response

from ...contracts import VisitCreate, VisitOut, VisitStatsOut
from ...engine import DB
from ...serializers import stats_to_out, visit_to_out

router = APIRouter(tags=["visits"])


@router.post("/visits", response_model=VisitOut, status_code=201)
async def log_visit(payload: VisitCreate):
    return visit_to_out(await DB.visits.record(payload))


@router.delete("/visits/{visit_id}", status_code=204)
async def delete_visit(visit_id: str):
    await DB.visits.delete(visit_id)
    return Response(status_code=204)


@router.get("/venues/{venue_id}/visits", response_model=list[VisitOut])
async def venue_visits(venue_id: str):
    return [visit_to_out(visit) for visit in await DB.visits.list_for_venue(venue_id)]


@router.get("/users/{user_id}/visits", response_model=list[VisitOut])
async def user_visits(user_id: str):
    return [visit_to_out(visit) for visit in await DB.visits.list_for_user(user_id)]


@router.get("/users/{user_id}/visits/stats", response_model=VisitStatsOut)
async def user_visit_stats(user_id: str):
    return stats_to_out(await DB.visits.stats(user_id))
