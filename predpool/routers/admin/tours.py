"""Admin tour endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from ...db import AsyncSession, get_db
from ...services import fixtures
from .models import TourCreateRequest, TourResponse, TourUpdateRequest

router = APIRouter()


@router.post("/tours", response_model=TourResponse, status_code=status.HTTP_201_CREATED)
async def create_tour(
    payload: TourCreateRequest, session: AsyncSession = Depends(get_db)
) -> TourResponse:
    tour = await fixtures.create_tour(session, payload.stage_id, payload.tour_no, payload.name)
    return TourResponse.model_validate(tour)


@router.patch("/tours/{tour_id}", response_model=TourResponse)
async def update_tour(
    tour_id: int, payload: TourUpdateRequest, session: AsyncSession = Depends(get_db)
) -> TourResponse:
    tour = await fixtures.update_tour(
        session, tour_id, tour_no=payload.tour_no, name=payload.name
    )
    return TourResponse.model_validate(tour)


@router.delete("/tours/{tour_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tour(tour_id: int, session: AsyncSession = Depends(get_db)) -> Response:
    """Delete a tour together with its matches, predictions and ledger rows."""
    await fixtures.delete_tour(session, tour_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
