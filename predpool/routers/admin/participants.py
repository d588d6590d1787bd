"""Admin participant endpoints: list, create, change role."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...db import AsyncSession, get_db
from ...services import fixtures
from .models import ParticipantCreateRequest, ParticipantResponse, ParticipantRoleRequest

router = APIRouter()


@router.get("/participants", response_model=list[ParticipantResponse])
async def list_participants(session: AsyncSession = Depends(get_db)) -> list[ParticipantResponse]:
    people = await fixtures.list_participants(session)
    return [ParticipantResponse.model_validate(person) for person in people]


@router.post(
    "/participants", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED
)
async def create_participant(
    payload: ParticipantCreateRequest, session: AsyncSession = Depends(get_db)
) -> ParticipantResponse:
    """Register a pool member; the login is stored trimmed and upper-cased."""
    person = await fixtures.create_participant(
        session, payload.login, payload.display_name, payload.role
    )
    return ParticipantResponse.model_validate(person)


@router.patch("/participants/{user_id}/role", response_model=ParticipantResponse)
async def set_participant_role(
    user_id: int, payload: ParticipantRoleRequest, session: AsyncSession = Depends(get_db)
) -> ParticipantResponse:
    person = await fixtures.set_participant_role(session, user_id, payload.role)
    return ParticipantResponse.model_validate(person)
