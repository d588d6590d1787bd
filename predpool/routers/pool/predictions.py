"""Prediction submission and per-match receipts."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...db import AsyncSession, get_db
from ...db.pool import Match
from ...errors import NotFoundError
from ...services.ledger_aggregator import get_match_receipts
from ...services.predictions import submit_prediction
from ..common import BreakdownModel
from .models import PredictionRequest, PredictionResponse, ReceiptEntry

router = APIRouter()


@router.put(
    "/matches/{match_id}/predictions/{user_id}",
    response_model=PredictionResponse,
)
async def put_prediction(
    match_id: int,
    user_id: int,
    payload: PredictionRequest,
    session: AsyncSession = Depends(get_db),
) -> PredictionResponse:
    """Create or replace a prediction until the match deadline."""
    prediction = await submit_prediction(
        session,
        match_id=match_id,
        user_id=user_id,
        home_pred=payload.home_pred,
        away_pred=payload.away_pred,
    )
    return PredictionResponse.model_validate(prediction)


@router.get("/matches/{match_id}/receipts", response_model=list[ReceiptEntry])
async def match_receipts(
    match_id: int, session: AsyncSession = Depends(get_db)
) -> list[ReceiptEntry]:
    if await session.get(Match, match_id) is None:
        raise NotFoundError("match", match_id)
    receipts = await get_match_receipts(session, match_id)
    return [
        ReceiptEntry(user_id=user_id, breakdown=BreakdownModel.from_breakdown(breakdown))
        for user_id, breakdown in receipts
    ]
