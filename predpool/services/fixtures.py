"""Admin maintenance: teams, participants, stages, tours, matches, results.

Every tour/match mutation goes through ``ensure_stage_mutable`` first, so a
locked stage rejects edits before anything is written. Entering a result
is not a fixture edit: it stays allowed on locked stages and always ends
with the match's ledger rows brought in line with the new result.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select

from ..config import settings
from ..db import AsyncSession
from ..db.pool import (
    CurrentStage,
    Match,
    MatchStatus,
    Participant,
    ParticipantRole,
    PointsLedger,
    Prediction,
    Stage,
    StageStatus,
    Team,
    Tour,
)
from ..errors import NotFoundError, PreconditionError
from .match_scoring import MatchScoringResult, SKIP_NOT_FINISHED, clear_match_ledger, score_match
from .stage_lifecycle import ensure_stage_mutable, get_stage

logger = logging.getLogger(__name__)

MATCH_EDITABLE_FIELDS = frozenset(
    {"tour_id", "home_team_id", "away_team_id", "kickoff_at", "deadline_at"}
)


async def _get(session: AsyncSession, model: type, entity_id: int, entity: str) -> Any:
    obj = await session.get(model, entity_id)
    if obj is None:
        raise NotFoundError(entity, entity_id)
    return obj


async def _delete_match_rows(session: AsyncSession, match_ids: list[int]) -> None:
    if not match_ids:
        return
    await session.execute(delete(PointsLedger).where(PointsLedger.match_id.in_(match_ids)))
    await session.execute(delete(Prediction).where(Prediction.match_id.in_(match_ids)))
    await session.execute(delete(Match).where(Match.id.in_(match_ids)))


# -----------------------------------------------------------------------------
# Teams
# -----------------------------------------------------------------------------


async def create_team(session: AsyncSession, name: str) -> Team:
    name = name.strip()
    if not name:
        raise PreconditionError("name_required")
    existing = await session.execute(select(Team.id).where(Team.name == name))
    if existing.scalar_one_or_none() is not None:
        raise PreconditionError("team_exists", name=name)
    team = Team(name=name)
    session.add(team)
    await session.flush()
    return team


async def rename_team(session: AsyncSession, team_id: int, name: str) -> Team:
    team = await _get(session, Team, team_id, "team")
    name = name.strip()
    if not name:
        raise PreconditionError("name_required")
    clash = await session.execute(select(Team.id).where(Team.name == name, Team.id != team_id))
    if clash.scalar_one_or_none() is not None:
        raise PreconditionError("team_exists", name=name)
    team.name = name
    await session.flush()
    return team


# -----------------------------------------------------------------------------
# Participants
# -----------------------------------------------------------------------------


def normalize_login(login: str) -> str:
    """Logins are case-insensitive; they are stored trimmed and upper-cased."""
    return login.strip().upper()


def _resolve_role(role: str) -> str:
    try:
        return ParticipantRole(role).value
    except ValueError:
        raise PreconditionError("invalid_role", role=role) from None


async def list_participants(session: AsyncSession) -> list[Participant]:
    result = await session.execute(select(Participant).order_by(Participant.login))
    return list(result.scalars().all())


async def create_participant(
    session: AsyncSession,
    login: str,
    display_name: str | None = None,
    role: str = ParticipantRole.player.value,
) -> Participant:
    login = normalize_login(login)
    if not login:
        raise PreconditionError("login_required")
    role = _resolve_role(role)
    existing = await session.execute(select(Participant.id).where(Participant.login == login))
    if existing.scalar_one_or_none() is not None:
        raise PreconditionError("login_taken", login=login)

    display_name = (display_name or "").strip() or None
    participant = Participant(login=login, display_name=display_name, role=role)
    session.add(participant)
    await session.flush()
    logger.info(
        "participant_created",
        extra={"user_id": participant.id, "login": login, "role": role},
    )
    return participant


async def set_participant_role(session: AsyncSession, user_id: int, role: str) -> Participant:
    """Promote or demote a participant.

    Admins drop out of the leaderboard at once; a promoted player's ledger
    rows are removed on the next rescore of each match.
    """
    participant = await _get(session, Participant, user_id, "participant")
    role = _resolve_role(role)
    if participant.role != role:
        logger.info(
            "participant_role_changed",
            extra={"user_id": user_id, "from": participant.role, "to": role},
        )
        participant.role = role
        await session.flush()
    return participant


# -----------------------------------------------------------------------------
# Stages
# -----------------------------------------------------------------------------


async def create_stage(
    session: AsyncSession, name: str, matches_required: int | None = None
) -> Stage:
    name = name.strip()
    if not name:
        raise PreconditionError("name_required")
    required = settings.default_matches_required if matches_required is None else matches_required
    if required <= 0:
        raise PreconditionError("matches_required_invalid", matches_required=required)
    stage = Stage(name=name, status=StageStatus.draft.value, matches_required=required)
    session.add(stage)
    await session.flush()
    logger.info("stage_created", extra={"stage_id": stage.id, "matches_required": required})
    return stage


async def update_stage(
    session: AsyncSession,
    stage_id: int,
    *,
    name: str | None = None,
    matches_required: int | None = None,
) -> Stage:
    """Rename a stage or change its target match count.

    The target is part of the lock gate, so it is frozen with the fixtures.
    """
    if matches_required is not None:
        stage = await ensure_stage_mutable(session, stage_id)
        if matches_required <= 0:
            raise PreconditionError("matches_required_invalid", matches_required=matches_required)
        stage.matches_required = matches_required
    else:
        stage = await get_stage(session, stage_id, for_update=True)
    if name is not None:
        name = name.strip()
        if not name:
            raise PreconditionError("name_required")
        stage.name = name
    await session.flush()
    return stage


async def delete_stage(session: AsyncSession, stage_id: int) -> None:
    await ensure_stage_mutable(session, stage_id)
    match_ids = (
        await session.execute(select(Match.id).where(Match.stage_id == stage_id))
    ).scalars().all()
    await _delete_match_rows(session, list(match_ids))
    await session.execute(delete(Tour).where(Tour.stage_id == stage_id))
    await session.execute(delete(CurrentStage).where(CurrentStage.stage_id == stage_id))
    await session.execute(delete(Stage).where(Stage.id == stage_id))
    logger.info("stage_deleted", extra={"stage_id": stage_id, "matches": len(match_ids)})


# -----------------------------------------------------------------------------
# Tours
# -----------------------------------------------------------------------------


async def _ensure_tour_no_free(
    session: AsyncSession, stage_id: int, tour_no: int, exclude_id: int | None = None
) -> None:
    stmt = select(Tour.id).where(Tour.stage_id == stage_id, Tour.tour_no == tour_no)
    if exclude_id is not None:
        stmt = stmt.where(Tour.id != exclude_id)
    if (await session.execute(stmt)).scalar_one_or_none() is not None:
        raise PreconditionError("tour_no_taken", stage_id=stage_id, tour_no=tour_no)


async def create_tour(
    session: AsyncSession, stage_id: int, tour_no: int, name: str | None = None
) -> Tour:
    await ensure_stage_mutable(session, stage_id)
    await _ensure_tour_no_free(session, stage_id, tour_no)
    tour = Tour(stage_id=stage_id, tour_no=tour_no, name=(name or "").strip() or None)
    session.add(tour)
    await session.flush()
    return tour


async def update_tour(
    session: AsyncSession,
    tour_id: int,
    *,
    tour_no: int | None = None,
    name: str | None = None,
) -> Tour:
    tour = await _get(session, Tour, tour_id, "tour")
    await ensure_stage_mutable(session, tour.stage_id)
    if tour_no is not None and tour_no != tour.tour_no:
        await _ensure_tour_no_free(session, tour.stage_id, tour_no, exclude_id=tour_id)
        tour.tour_no = tour_no
    if name is not None:
        tour.name = name.strip() or None
    await session.flush()
    return tour


async def delete_tour(session: AsyncSession, tour_id: int) -> None:
    tour = await _get(session, Tour, tour_id, "tour")
    await ensure_stage_mutable(session, tour.stage_id)
    match_ids = (
        await session.execute(select(Match.id).where(Match.tour_id == tour_id))
    ).scalars().all()
    await _delete_match_rows(session, list(match_ids))
    await session.execute(delete(Tour).where(Tour.id == tour_id))


# -----------------------------------------------------------------------------
# Matches
# -----------------------------------------------------------------------------


async def _validate_pairing(
    session: AsyncSession, home_team_id: int, away_team_id: int
) -> None:
    if home_team_id == away_team_id:
        raise PreconditionError("same_teams", team_id=home_team_id)
    await _get(session, Team, home_team_id, "team")
    await _get(session, Team, away_team_id, "team")


async def _validate_tour(session: AsyncSession, stage_id: int, tour_id: int) -> None:
    tour = await _get(session, Tour, tour_id, "tour")
    if tour.stage_id != stage_id:
        raise PreconditionError("tour_stage_mismatch", tour_id=tour_id, stage_id=stage_id)


async def create_match(
    session: AsyncSession,
    *,
    stage_id: int,
    tour_id: int,
    home_team_id: int,
    away_team_id: int,
    kickoff_at: datetime,
    deadline_at: datetime | None = None,
) -> Match:
    """Add a scheduled match; the deadline defaults to kickoff."""
    await ensure_stage_mutable(session, stage_id)
    await _validate_tour(session, stage_id, tour_id)
    await _validate_pairing(session, home_team_id, away_team_id)

    last_no = (
        await session.execute(
            select(func.max(Match.stage_match_no)).where(Match.stage_id == stage_id)
        )
    ).scalar_one_or_none()
    match = Match(
        stage_id=stage_id,
        tour_id=tour_id,
        stage_match_no=(last_no or 0) + 1,
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        kickoff_at=kickoff_at,
        deadline_at=deadline_at or kickoff_at,
        status=MatchStatus.scheduled.value,
    )
    session.add(match)
    await session.flush()
    logger.info(
        "match_created",
        extra={"match_id": match.id, "stage_id": stage_id, "stage_match_no": match.stage_match_no},
    )
    return match


async def update_match(
    session: AsyncSession, match_id: int, changes: Mapping[str, Any]
) -> Match:
    """Patch fixture fields of a match (not its result)."""
    unknown = set(changes) - MATCH_EDITABLE_FIELDS
    if unknown:
        raise PreconditionError("fields_not_editable", fields=sorted(unknown))
    for key, value in changes.items():
        if value is None:
            raise PreconditionError("field_required", field=key)
    match = await _get(session, Match, match_id, "match")
    await ensure_stage_mutable(session, match.stage_id)

    if "tour_id" in changes:
        await _validate_tour(session, match.stage_id, changes["tour_id"])
    if "home_team_id" in changes or "away_team_id" in changes:
        await _validate_pairing(
            session,
            changes.get("home_team_id", match.home_team_id),
            changes.get("away_team_id", match.away_team_id),
        )
    for key, value in changes.items():
        setattr(match, key, value)
    await session.flush()
    return match


async def delete_match(session: AsyncSession, match_id: int) -> None:
    match = await _get(session, Match, match_id, "match")
    await ensure_stage_mutable(session, match.stage_id)
    await _delete_match_rows(session, [match_id])
    logger.info("match_deleted", extra={"match_id": match_id, "stage_id": match.stage_id})


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


def _resolve_result_status(
    current: str, home_score: int | None, away_score: int | None, status: str | None
) -> str:
    if (home_score is None) != (away_score is None):
        raise PreconditionError("scores_incomplete")
    for value in (home_score, away_score):
        if value is not None and value < 0:
            raise PreconditionError("invalid_score", value=value)

    has_scores = home_score is not None
    if status is None:
        if has_scores:
            return MatchStatus.finished.value
        # Withdrawn result: a finished match without scores goes back to scheduled.
        return MatchStatus.scheduled.value if current == MatchStatus.finished.value else current

    resolved = MatchStatus(status).value
    if resolved == MatchStatus.finished.value and not has_scores:
        raise PreconditionError("scores_incomplete")
    return resolved


async def record_match_result(
    session: AsyncSession,
    match_id: int,
    home_score: int | None,
    away_score: int | None,
    status: str | None = None,
) -> MatchScoringResult:
    """Store a match result and bring its ledger rows in line.

    Both scores set (and no explicit status) finishes the match and scores
    it. Clearing the scores, or moving the match out of ``finished``,
    removes its ledger rows.
    """
    match = await _get(session, Match, match_id, "match")
    new_status = _resolve_result_status(match.status, home_score, away_score, status)

    match.home_score = home_score
    match.away_score = away_score
    match.status = new_status
    await session.flush()
    logger.info(
        "match_result_recorded",
        extra={
            "match_id": match_id,
            "status": new_status,
            "home_score": home_score,
            "away_score": away_score,
        },
    )

    if new_status == MatchStatus.finished.value:
        return await score_match(session, match_id)
    await clear_match_ledger(session, match_id)
    return MatchScoringResult(match_id=match_id, skipped_reason=SKIP_NOT_FINISHED)
