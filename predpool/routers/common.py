"""Response models and helpers shared by admin and pool routers."""

from __future__ import annotations

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import func, select

from ..db import AsyncSession
from ..db.pool import Match, Stage
from ..errors import LedgerReplaceError, NotFoundError, PoolError, PreconditionError
from ..services.match_scoring import MatchScoringResult
from ..services.scoring import PointsBreakdown
from ..services.stage_lifecycle import get_current_stage_id

_STATUS_BY_ERROR: list[tuple[type[PoolError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PreconditionError, status.HTTP_409_CONFLICT),
    (LedgerReplaceError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def pool_error_response(exc: PoolError) -> JSONResponse:
    """Render a domain error as ``{"detail": {"error": code, ...}}``."""
    code = status.HTTP_400_BAD_REQUEST
    for error_type, http_status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            code = http_status
            break
    return JSONResponse({"detail": exc.as_detail()}, status_code=code)


class BreakdownModel(BaseModel):
    """Explainable points receipt."""

    total: float
    team_goals: float
    home_goals: float = Field(description="points_h1: exact home goals")
    away_goals: float = Field(description="points_h2: exact away goals")
    outcome: float
    outcome_base: float
    outcome_bonus: float = Field(description="Rarity premium on top of the outcome base")
    diff: float
    diff_base: float
    diff_bonus: float = Field(description="Rarity premium on top of the difference base")
    near_miss: float
    outcome_hit: bool
    diff_hit: bool
    outcome_mult: float
    diff_mult: float
    outcome_guessed: int
    diff_guessed: int
    total_preds: int
    pred_home: int
    pred_away: int
    result_home: int
    result_away: int
    pred_text: str
    result_text: str

    @classmethod
    def from_breakdown(cls, breakdown: PointsBreakdown) -> "BreakdownModel":
        return cls(**breakdown.to_dict())


class ScoredEntryModel(BaseModel):
    user_id: int
    points: float
    breakdown: BreakdownModel


class MatchScoringResponse(BaseModel):
    match_id: int
    entries: list[ScoredEntryModel]
    total_points: float
    affected_count: int
    skipped_reason: str | None = None

    @classmethod
    def from_result(cls, result: MatchScoringResult) -> "MatchScoringResponse":
        return cls(
            match_id=result.match_id,
            entries=[
                ScoredEntryModel(
                    user_id=entry.user_id,
                    points=entry.points,
                    breakdown=BreakdownModel.from_breakdown(entry.breakdown),
                )
                for entry in result.entries
            ],
            total_points=result.total_points,
            affected_count=result.affected_count,
            skipped_reason=result.skipped_reason,
        )


class StageResponse(BaseModel):
    id: int
    name: str
    status: str
    matches_required: int
    match_count: int
    is_current: bool


async def build_stage_response(session: AsyncSession, stage: Stage) -> StageResponse:
    match_count = (
        await session.execute(select(func.count(Match.id)).where(Match.stage_id == stage.id))
    ).scalar_one()
    return StageResponse(
        id=stage.id,
        name=stage.name,
        status=stage.status,
        matches_required=stage.matches_required,
        match_count=match_count,
        is_current=(await get_current_stage_id(session)) == stage.id,
    )
