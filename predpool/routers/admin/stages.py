"""Admin stage endpoints: CRUD, lifecycle transitions, current stage, rescoring."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select

from ...db import AsyncSession, get_db
from ...db.pool import Stage, Tour
from ...services import fixtures, stage_lifecycle
from ...services.match_scoring import rescore_stage
from ...services.scoring import round2
from ..common import MatchScoringResponse, StageResponse, build_stage_response
from .models import (
    StageCreateRequest,
    StageRescoreResponse,
    StageUpdateRequest,
    TourResponse,
)

router = APIRouter()


@router.get("/stages", response_model=list[StageResponse])
async def list_stages(session: AsyncSession = Depends(get_db)) -> list[StageResponse]:
    stages = (await session.execute(select(Stage).order_by(Stage.id))).scalars().all()
    return [await build_stage_response(session, stage) for stage in stages]


@router.post("/stages", response_model=StageResponse, status_code=status.HTTP_201_CREATED)
async def create_stage(
    payload: StageCreateRequest, session: AsyncSession = Depends(get_db)
) -> StageResponse:
    stage = await fixtures.create_stage(session, payload.name, payload.matches_required)
    return await build_stage_response(session, stage)


@router.patch("/stages/{stage_id}", response_model=StageResponse)
async def update_stage(
    stage_id: int, payload: StageUpdateRequest, session: AsyncSession = Depends(get_db)
) -> StageResponse:
    stage = await fixtures.update_stage(
        session, stage_id, name=payload.name, matches_required=payload.matches_required
    )
    return await build_stage_response(session, stage)


@router.delete("/stages/{stage_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stage(stage_id: int, session: AsyncSession = Depends(get_db)) -> Response:
    await fixtures.delete_stage(session, stage_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stages/{stage_id}/tours", response_model=list[TourResponse])
async def list_stage_tours(
    stage_id: int, session: AsyncSession = Depends(get_db)
) -> list[TourResponse]:
    await stage_lifecycle.get_stage(session, stage_id)
    tours = (
        await session.execute(
            select(Tour).where(Tour.stage_id == stage_id).order_by(Tour.tour_no)
        )
    ).scalars().all()
    return [TourResponse.model_validate(tour) for tour in tours]


@router.post("/stages/{stage_id}/publish", response_model=StageResponse)
async def publish_stage(stage_id: int, session: AsyncSession = Depends(get_db)) -> StageResponse:
    """Open the stage to players. Rejected with ``stage_locked`` once locked."""
    stage = await stage_lifecycle.publish_stage(session, stage_id)
    return await build_stage_response(session, stage)


@router.post("/stages/{stage_id}/lock", response_model=StageResponse)
async def lock_stage(stage_id: int, session: AsyncSession = Depends(get_db)) -> StageResponse:
    """Freeze fixtures. Rejected with ``match_count_mismatch`` unless the stage is exactly full."""
    stage = await stage_lifecycle.lock_stage(session, stage_id)
    return await build_stage_response(session, stage)


@router.post("/stages/{stage_id}/current", response_model=StageResponse)
async def set_current_stage(
    stage_id: int, session: AsyncSession = Depends(get_db)
) -> StageResponse:
    stage = await stage_lifecycle.set_current_stage(session, stage_id)
    return await build_stage_response(session, stage)


@router.post("/stages/{stage_id}/rescore", response_model=StageRescoreResponse)
async def rescore(stage_id: int, session: AsyncSession = Depends(get_db)) -> StageRescoreResponse:
    """Recalculate the ledger for every finished match of the stage."""
    outcomes = await rescore_stage(session, stage_id)
    return StageRescoreResponse(
        stage_id=stage_id,
        matches=[MatchScoringResponse.from_result(outcome) for outcome in outcomes],
        total_points=round2(sum(outcome.total_points for outcome in outcomes)),
        affected_count=sum(outcome.affected_count for outcome in outcomes),
    )
