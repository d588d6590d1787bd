"""Prediction submission.

Timing is enforced here, at write time. Scoring never re-checks it: any
prediction already stored counts, even if it was saved after kickoff.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select

from ..db import AsyncSession
from ..db.dialect import upsert_insert
from ..db.pool import Match, MatchStatus, Participant, Prediction, Stage, StageStatus
from ..errors import NotFoundError, PreconditionError
from ..utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)

_CLOSED_STATUSES = frozenset({MatchStatus.finished.value, MatchStatus.canceled.value})


def validate_prediction_values(home_pred: int | None, away_pred: int | None) -> None:
    if (home_pred is None) != (away_pred is None):
        raise PreconditionError("invalid_prediction", message="Both sides must be set or both empty")
    for value in (home_pred, away_pred):
        if value is not None and value < 0:
            raise PreconditionError("invalid_prediction", value=value)


async def submit_prediction(
    session: AsyncSession,
    *,
    match_id: int,
    user_id: int,
    home_pred: int | None,
    away_pred: int | None,
    now: datetime | None = None,
) -> Prediction:
    """Create or update a participant's prediction for a match.

    Sending both sides empty clears the prediction without deleting the row.

    Raises:
        NotFoundError: Unknown match or participant.
        PreconditionError: ``invalid_prediction``, ``admin_cannot_predict``,
            ``stage_not_published``, ``match_closed`` or ``deadline_passed``.
    """
    validate_prediction_values(home_pred, away_pred)

    participant = await session.get(Participant, user_id)
    if participant is None:
        raise NotFoundError("participant", user_id)
    if participant.is_admin:
        raise PreconditionError("admin_cannot_predict", user_id=user_id)

    match = await session.get(Match, match_id)
    if match is None:
        raise NotFoundError("match", match_id)
    stage = await session.get(Stage, match.stage_id)
    if stage.status == StageStatus.draft.value:
        raise PreconditionError("stage_not_published", stage_id=stage.id)
    if match.status in _CLOSED_STATUSES:
        raise PreconditionError("match_closed", match_id=match_id, status=match.status)

    now = ensure_utc(now or now_utc())
    deadline = ensure_utc(match.deadline_at)
    if now >= deadline:
        raise PreconditionError(
            "deadline_passed", match_id=match_id, deadline_at=deadline.isoformat()
        )

    values = {"home_pred": home_pred, "away_pred": away_pred, "updated_at": now}
    await session.execute(
        upsert_insert(session, Prediction)
        .values(match_id=match_id, user_id=user_id, **values)
        .on_conflict_do_update(
            index_elements=[Prediction.match_id, Prediction.user_id], set_=values
        )
    )
    result = await session.execute(
        select(Prediction)
        .where(Prediction.match_id == match_id, Prediction.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    prediction = result.scalar_one()

    logger.info(
        "prediction_saved",
        extra={"match_id": match_id, "user_id": user_id, "cleared": home_pred is None},
    )
    return prediction
