"""Admin match endpoints: fixtures, results and scoring."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select

from ...db import AsyncSession, get_db
from ...db.pool import Match
from ...services import fixtures
from ...services.match_scoring import score_match
from ..common import MatchScoringResponse
from .models import (
    MatchCreateRequest,
    MatchResponse,
    MatchResultRequest,
    MatchResultResponse,
    MatchUpdateRequest,
)

router = APIRouter()


@router.get("/matches", response_model=list[MatchResponse])
async def list_matches(
    stage_id: int = Query(...),
    tour_id: int | None = Query(None),
    session: AsyncSession = Depends(get_db),
) -> list[MatchResponse]:
    stmt = select(Match).where(Match.stage_id == stage_id)
    if tour_id is not None:
        stmt = stmt.where(Match.tour_id == tour_id)
    matches = (await session.execute(stmt.order_by(Match.stage_match_no))).scalars().all()
    return [MatchResponse.model_validate(match) for match in matches]


@router.post("/matches", response_model=MatchResponse, status_code=status.HTTP_201_CREATED)
async def create_match(
    payload: MatchCreateRequest, session: AsyncSession = Depends(get_db)
) -> MatchResponse:
    match = await fixtures.create_match(session, **payload.model_dump())
    return MatchResponse.model_validate(match)


@router.patch("/matches/{match_id}", response_model=MatchResponse)
async def update_match(
    match_id: int, payload: MatchUpdateRequest, session: AsyncSession = Depends(get_db)
) -> MatchResponse:
    match = await fixtures.update_match(session, match_id, payload.model_dump(exclude_unset=True))
    return MatchResponse.model_validate(match)


@router.delete("/matches/{match_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_match(match_id: int, session: AsyncSession = Depends(get_db)) -> Response:
    await fixtures.delete_match(session, match_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/matches/{match_id}/result", response_model=MatchResultResponse)
async def set_match_result(
    match_id: int, payload: MatchResultRequest, session: AsyncSession = Depends(get_db)
) -> MatchResultResponse:
    """Record the final score and rescore the match in the same transaction."""
    scoring = await fixtures.record_match_result(
        session, match_id, payload.home_score, payload.away_score, payload.status
    )
    match = await session.get(Match, match_id)
    return MatchResultResponse(
        match=MatchResponse.model_validate(match),
        scoring=MatchScoringResponse.from_result(scoring),
    )


@router.post("/matches/{match_id}/score", response_model=MatchScoringResponse)
async def score(match_id: int, session: AsyncSession = Depends(get_db)) -> MatchScoringResponse:
    """Rescore one match. A match that is not finished reports ``affected_count`` 0."""
    return MatchScoringResponse.from_result(await score_match(session, match_id))
