"""Pydantic request/response models for admin endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..common import MatchScoringResponse


class TeamCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class ParticipantCreateRequest(BaseModel):
    login: str = Field(min_length=1, max_length=64)
    display_name: str | None = Field(default=None, max_length=200)
    role: Literal["player", "admin"] = "player"


class ParticipantRoleRequest(BaseModel):
    role: Literal["player", "admin"]


class ParticipantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    login: str
    display_name: str | None
    role: str


class StageCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    matches_required: int | None = Field(
        default=None, gt=0, description="Defaults to DEFAULT_MATCHES_REQUIRED"
    )


class StageUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    matches_required: int | None = Field(default=None, gt=0)


class TourCreateRequest(BaseModel):
    stage_id: int
    tour_no: int = Field(ge=1)
    name: str | None = Field(default=None, max_length=200)


class TourUpdateRequest(BaseModel):
    tour_no: int | None = Field(default=None, ge=1)
    name: str | None = Field(default=None, max_length=200)


class TourResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    stage_id: int
    tour_no: int
    name: str | None


class MatchCreateRequest(BaseModel):
    stage_id: int
    tour_id: int
    home_team_id: int
    away_team_id: int
    kickoff_at: datetime
    deadline_at: datetime | None = Field(default=None, description="Defaults to kickoff_at")


class MatchUpdateRequest(BaseModel):
    tour_id: int | None = None
    home_team_id: int | None = None
    away_team_id: int | None = None
    kickoff_at: datetime | None = None
    deadline_at: datetime | None = None


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    stage_id: int
    tour_id: int
    stage_match_no: int
    home_team_id: int
    away_team_id: int
    kickoff_at: datetime
    deadline_at: datetime
    status: str
    home_score: int | None
    away_score: int | None


class MatchResultRequest(BaseModel):
    """Final score; send both scores as null to withdraw a result."""

    home_score: int | None = Field(default=None, ge=0)
    away_score: int | None = Field(default=None, ge=0)
    status: Literal["scheduled", "live", "finished", "canceled"] | None = None


class MatchResultResponse(BaseModel):
    match: MatchResponse
    scoring: MatchScoringResponse


class StageRescoreResponse(BaseModel):
    stage_id: int
    matches: list[MatchScoringResponse]
    total_points: float
    affected_count: int
