"""Stage lifecycle: draft -> published -> locked.

- draft: tours, matches and teams are freely edited; players cannot predict.
- published: players see and predict matches; admins may still edit them.
- locked: fixtures are frozen. Results, scoring and reads stay allowed.

Locking is the one hard gate: the stage must hold exactly
``matches_required`` matches, so it is never sealed with missing or
duplicated fixtures. Transitions only move forward.

The current stage is orthogonal to the lifecycle. It lives in the
single-row ``current_stage`` table, so two stages can never be current at
once; reassigning it is one upsert on that row.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select

from ..db import AsyncSession
from ..db.dialect import upsert_insert
from ..db.pool import CurrentStage, Match, Stage, StageStatus
from ..errors import NotFoundError, PreconditionError
from ..utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

TRANSITIONS: dict[StageStatus, frozenset[StageStatus]] = {
    StageStatus.draft: frozenset({StageStatus.published, StageStatus.locked}),
    StageStatus.published: frozenset({StageStatus.locked}),
    StageStatus.locked: frozenset(),
}

CURRENT_STAGE_ROW_ID = 1


def can_transition(current: StageStatus | str, target: StageStatus | str) -> bool:
    return StageStatus(target) in TRANSITIONS[StageStatus(current)]


def can_mutate_fixtures(status: StageStatus | str) -> bool:
    """Tours and matches are editable until the stage is locked."""
    return StageStatus(status) != StageStatus.locked


def check_lock_gate(match_count: int, matches_required: int) -> None:
    """Raise ``match_count_mismatch`` unless the stage is exactly full."""
    if match_count != matches_required:
        raise PreconditionError(
            "match_count_mismatch",
            message=f"Stage needs exactly {matches_required} matches, has {match_count}",
            required=matches_required,
            actual=match_count,
        )


async def get_stage(session: AsyncSession, stage_id: int, *, for_update: bool = False) -> Stage:
    stmt = select(Stage).where(Stage.id == stage_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    stage = (await session.execute(stmt)).scalar_one_or_none()
    if stage is None:
        raise NotFoundError("stage", stage_id)
    return stage


async def count_stage_matches(session: AsyncSession, stage_id: int) -> int:
    result = await session.execute(
        select(func.count(Match.id)).where(Match.stage_id == stage_id)
    )
    return result.scalar_one()


async def ensure_stage_mutable(session: AsyncSession, stage_id: int) -> Stage:
    """Load a stage for a fixture edit, rejecting locked stages."""
    stage = await get_stage(session, stage_id, for_update=True)
    if not can_mutate_fixtures(stage.status):
        raise PreconditionError(
            "stage_locked",
            message=f"Stage {stage_id} is locked; fixtures cannot change",
            stage_id=stage_id,
        )
    return stage


async def publish_stage(session: AsyncSession, stage_id: int) -> Stage:
    """Open a draft stage to players. Publishing twice is a no-op."""
    stage = await get_stage(session, stage_id, for_update=True)
    if stage.status == StageStatus.published.value:
        return stage
    if not can_transition(stage.status, StageStatus.published):
        raise PreconditionError(
            "stage_locked",
            message=f"Stage {stage_id} is locked and cannot be published",
            stage_id=stage_id,
        )
    stage.status = StageStatus.published.value
    await session.flush()
    logger.info("stage_published", extra={"stage_id": stage_id})
    return stage


async def lock_stage(session: AsyncSession, stage_id: int) -> Stage:
    """Freeze a stage's fixtures once it holds exactly ``matches_required`` matches."""
    stage = await get_stage(session, stage_id, for_update=True)
    match_count = await count_stage_matches(session, stage_id)
    check_lock_gate(match_count, stage.matches_required)
    if stage.status == StageStatus.locked.value:
        return stage
    stage.status = StageStatus.locked.value
    await session.flush()
    logger.info(
        "stage_locked",
        extra={"stage_id": stage_id, "match_count": match_count},
    )
    return stage


async def get_current_stage_id(session: AsyncSession) -> int | None:
    result = await session.execute(
        select(CurrentStage.stage_id).where(CurrentStage.id == CURRENT_STAGE_ROW_ID)
    )
    return result.scalar_one_or_none()


async def get_current_stage(session: AsyncSession) -> Stage | None:
    stage_id = await get_current_stage_id(session)
    if stage_id is None:
        return None
    return await session.get(Stage, stage_id)


async def set_current_stage(session: AsyncSession, stage_id: int) -> Stage:
    """Point the pool at ``stage_id``; any previous current stage loses the flag."""
    stage = await get_stage(session, stage_id)
    previous = await get_current_stage_id(session)
    # Concurrent first assignments serialize on the pointer key.
    stmt = (
        upsert_insert(session, CurrentStage)
        .values(id=CURRENT_STAGE_ROW_ID, stage_id=stage_id, updated_at=now_utc())
        .on_conflict_do_update(
            index_elements=[CurrentStage.id],
            set_={"stage_id": stage_id, "updated_at": now_utc()},
        )
    )
    await session.execute(stmt)
    logger.info(
        "current_stage_set",
        extra={"stage_id": stage_id, "previous_stage_id": previous},
    )
    return stage
