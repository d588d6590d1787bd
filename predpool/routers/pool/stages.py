"""Stage standings: current stage, leaderboard, totals, quality and series."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ...db import AsyncSession, get_db
from ...services import ledger_aggregator
from ...services.stage_lifecycle import get_current_stage, get_stage
from ..common import StageResponse, build_stage_response
from .models import (
    ExactLeaderEntry,
    LeaderboardEntry,
    LeaderboardResponse,
    QualityEntry,
    SeriesPointModel,
    UserTotalResponse,
)

router = APIRouter()


@router.get("/stages/current", response_model=StageResponse | None)
async def current_stage(session: AsyncSession = Depends(get_db)) -> StageResponse | None:
    """The stage players currently see, or null before one is chosen."""
    stage = await get_current_stage(session)
    if stage is None:
        return None
    return await build_stage_response(session, stage)


@router.get("/stages/{stage_id}/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(stage_id: int, session: AsyncSession = Depends(get_db)) -> LeaderboardResponse:
    await get_stage(session, stage_id)
    rows = await ledger_aggregator.get_leaderboard(session, stage_id)
    return LeaderboardResponse(
        stage_id=stage_id,
        entries=[LeaderboardEntry.model_validate(row) for row in rows],
    )


@router.get("/stages/{stage_id}/users/{user_id}/total", response_model=UserTotalResponse)
async def user_total(
    stage_id: int, user_id: int, session: AsyncSession = Depends(get_db)
) -> UserTotalResponse:
    await get_stage(session, stage_id)
    points = await ledger_aggregator.get_user_total(session, stage_id, user_id)
    return UserTotalResponse(stage_id=stage_id, user_id=user_id, points=points)


@router.get("/stages/{stage_id}/quality", response_model=list[QualityEntry])
async def stage_quality(
    stage_id: int,
    user_id: int | None = Query(None),
    session: AsyncSession = Depends(get_db),
) -> list[QualityEntry]:
    await get_stage(session, stage_id)
    stats = await ledger_aggregator.get_stage_quality(session, stage_id, user_id)
    return [QualityEntry(**entry.to_dict()) for entry in stats]


@router.get("/stages/{stage_id}/users/{user_id}/series", response_model=list[SeriesPointModel])
async def points_series(
    stage_id: int, user_id: int, session: AsyncSession = Depends(get_db)
) -> list[SeriesPointModel]:
    await get_stage(session, stage_id)
    series = await ledger_aggregator.get_points_series(session, stage_id, user_id)
    return [SeriesPointModel.model_validate(point) for point in series]


@router.get("/stages/{stage_id}/exact-leaders", response_model=list[ExactLeaderEntry])
async def exact_leaders(
    stage_id: int, session: AsyncSession = Depends(get_db)
) -> list[ExactLeaderEntry]:
    await get_stage(session, stage_id)
    leaders = await ledger_aggregator.get_exact_leaders(session, stage_id)
    return [ExactLeaderEntry.model_validate(leader) for leader in leaders]
