"""Pydantic models for player-facing pool endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from ..common import BreakdownModel


class PredictionRequest(BaseModel):
    """Predicted score; both null clears the prediction."""

    home_pred: int | None = Field(default=None, ge=0)
    away_pred: int | None = Field(default=None, ge=0)


class PredictionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    match_id: int
    user_id: int
    home_pred: int | None
    away_pred: int | None


class LeaderboardEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    user_id: int
    login: str
    display_name: str | None
    points: float
    matches_counted: int


class LeaderboardResponse(BaseModel):
    stage_id: int
    entries: list[LeaderboardEntry]


class UserTotalResponse(BaseModel):
    stage_id: int
    user_id: int
    points: float


class QualityEntry(BaseModel):
    user_id: int
    matches_count: int
    exact_count: int
    outcome_hit_count: int
    diff_hit_count: int
    near_miss_count: int
    points: float
    exact_rate: float
    outcome_rate: float
    diff_rate: float


class SeriesPointModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    match_id: int
    kickoff_at: datetime
    day: date
    points: float
    cumulative: float


class ExactLeaderEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    login: str
    exact_count: int
    matches_count: int


class ReceiptEntry(BaseModel):
    user_id: int
    breakdown: BreakdownModel
