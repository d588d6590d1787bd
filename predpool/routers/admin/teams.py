"""Admin team endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import select

from ...db import AsyncSession, get_db
from ...db.pool import Team
from ...services import fixtures
from .models import TeamCreateRequest, TeamResponse

router = APIRouter()


@router.get("/teams", response_model=list[TeamResponse])
async def list_teams(session: AsyncSession = Depends(get_db)) -> list[TeamResponse]:
    teams = (await session.execute(select(Team).order_by(Team.name))).scalars().all()
    return [TeamResponse.model_validate(team) for team in teams]


@router.post("/teams", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    payload: TeamCreateRequest, session: AsyncSession = Depends(get_db)
) -> TeamResponse:
    return TeamResponse.model_validate(await fixtures.create_team(session, payload.name))


@router.patch("/teams/{team_id}", response_model=TeamResponse)
async def rename_team(
    team_id: int, payload: TeamCreateRequest, session: AsyncSession = Depends(get_db)
) -> TeamResponse:
    return TeamResponse.model_validate(await fixtures.rename_team(session, team_id, payload.name))
