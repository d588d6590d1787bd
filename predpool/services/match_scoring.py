"""Match scoring orchestrator.

Turns a finished match into ledger rows:

1. Lock the match row so two rescoring requests for the same match cannot
   interleave (different matches score in parallel).
2. Load every non-admin participant with their prediction, if any.
3. Count outcome and difference co-predictors among complete predictions.
4. Score each complete prediction; participants without one get no row.
5. Replace the match's ledger rows inside a savepoint. A storage failure
   rolls back to the savepoint, leaving the previous rows authoritative, and
   surfaces as a retryable ``LedgerReplaceError``.

Calling it on a match that is not finished, or has no result, is a no-op
reporting zero affected rows, so UI double-submits are harmless.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import and_, delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from ..db import AsyncSession
from ..db.pool import (
    PREDICTION_REASON,
    Match,
    MatchStatus,
    Participant,
    ParticipantRole,
    PointsLedger,
    Prediction,
    Stage,
)
from ..errors import LedgerReplaceError, NotFoundError
from .scoring import (
    PointsBreakdown,
    RarityContext,
    Score,
    diff_hit,
    outcome_hit,
    round2,
    score,
)

logger = logging.getLogger(__name__)

SKIP_NOT_FINISHED = "not_finished"
SKIP_SCORES_INCOMPLETE = "scores_incomplete"


@dataclass(frozen=True, slots=True)
class ScoredEntry:
    user_id: int
    breakdown: PointsBreakdown

    @property
    def points(self) -> float:
        return self.breakdown.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "points": self.points,
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class MatchScoringResult:
    """What a scoring run wrote, for the admin confirmation message."""

    match_id: int
    entries: list[ScoredEntry] = field(default_factory=list)
    skipped_reason: str | None = None

    @property
    def affected_count(self) -> int:
        return len(self.entries)

    @property
    def total_points(self) -> float:
        return round2(sum(entry.points for entry in self.entries))

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_id": self.match_id,
            "entries": [entry.to_dict() for entry in self.entries],
            "total_points": self.total_points,
            "affected_count": self.affected_count,
            "skipped_reason": self.skipped_reason,
        }


def count_co_predictors(result: Score, predictions: Iterable[Score]) -> RarityContext:
    """Count complete predictions hitting the outcome and the difference."""
    outcome_count = 0
    diff_count = 0
    total = 0
    for prediction in predictions:
        if not prediction.is_complete:
            continue
        total += 1
        if outcome_hit(prediction, result):
            outcome_count += 1
        if diff_hit(prediction, result):
            diff_count += 1
    return RarityContext(outcome_guessed=outcome_count, diff_guessed=diff_count, total_preds=total)


def plan_match_scoring(result: Score, predictions: Mapping[int, Score]) -> list[ScoredEntry]:
    """Score every participant of a match.

    Args:
        result: Final score of the match.
        predictions: Participant id -> prediction. Participants without a
            prediction may be present with an empty ``Score``.

    Returns:
        One entry per participant whose prediction produced points,
        ordered by participant id.
    """
    if not result.is_complete:
        return []
    rarity = count_co_predictors(result, predictions.values())
    entries: list[ScoredEntry] = []
    for user_id in sorted(predictions):
        breakdown = score(predictions[user_id], result, rarity)
        if breakdown is not None:
            entries.append(ScoredEntry(user_id=user_id, breakdown=breakdown))
    return entries


def ledger_row(match_id: int, entry: ScoredEntry) -> dict[str, Any]:
    """Column values for the ledger row of one scored entry."""
    bd = entry.breakdown
    return {
        "user_id": entry.user_id,
        "match_id": match_id,
        "reason": PREDICTION_REASON,
        "points": bd.total,
        "points_h1": bd.home_goals,
        "points_h2": bd.away_goals,
        "points_outcome": bd.outcome,
        "points_outcome_base": bd.outcome_base,
        "points_outcome_bonus": bd.outcome_bonus,
        "points_diff": bd.diff,
        "points_diff_base": bd.diff_base,
        "points_diff_bonus": bd.diff_bonus,
        "points_bonus": bd.near_miss,
        "outcome_mult": bd.outcome_mult,
        "diff_mult": bd.diff_mult,
        "outcome_guessed": bd.outcome_guessed,
        "diff_guessed": bd.diff_guessed,
        "total_preds": bd.total_preds,
        "pred_home": bd.pred_home,
        "pred_away": bd.pred_away,
        "result_home": bd.result_home,
        "result_away": bd.result_away,
    }


async def _lock_match(session: AsyncSession, match_id: int) -> Match:
    result = await session.execute(
        select(Match)
        .where(Match.id == match_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    match = result.scalar_one_or_none()
    if match is None:
        raise NotFoundError("match", match_id)
    return match


async def _load_predictions(session: AsyncSession, match_id: int) -> dict[int, Score]:
    """Every non-admin participant mapped to their prediction (possibly empty)."""
    result = await session.execute(
        select(Participant.id, Prediction.home_pred, Prediction.away_pred)
        .outerjoin(
            Prediction,
            and_(Prediction.user_id == Participant.id, Prediction.match_id == match_id),
        )
        .where(Participant.role != ParticipantRole.admin.value)
    )
    return {row.id: Score(row.home_pred, row.away_pred) for row in result.all()}


async def _replace_ledger_rows(
    session: AsyncSession, match_id: int, rows: list[dict[str, Any]]
) -> None:
    try:
        async with session.begin_nested():
            await session.execute(
                delete(PointsLedger).where(
                    PointsLedger.match_id == match_id,
                    PointsLedger.reason == PREDICTION_REASON,
                )
            )
            if rows:
                await session.execute(insert(PointsLedger), rows)
    except SQLAlchemyError as exc:
        logger.error(
            "ledger_replace_failed",
            extra={"match_id": match_id, "rows": len(rows), "error": str(exc)},
        )
        raise LedgerReplaceError(
            message=f"Ledger replace for match {match_id} failed; previous rows kept",
            match_id=match_id,
        ) from exc


async def score_match(session: AsyncSession, match_id: int) -> MatchScoringResult:
    """Score a finished match and atomically replace its ledger rows.

    Raises:
        NotFoundError: The match does not exist.
        LedgerReplaceError: Storage failed mid-replace; nothing changed.
    """
    match = await _lock_match(session, match_id)

    if match.status != MatchStatus.finished.value:
        logger.info(
            "match_scoring_skipped",
            extra={"match_id": match_id, "reason": SKIP_NOT_FINISHED, "status": match.status},
        )
        return MatchScoringResult(match_id=match_id, skipped_reason=SKIP_NOT_FINISHED)
    if not match.has_result:
        logger.info(
            "match_scoring_skipped",
            extra={"match_id": match_id, "reason": SKIP_SCORES_INCOMPLETE},
        )
        return MatchScoringResult(match_id=match_id, skipped_reason=SKIP_SCORES_INCOMPLETE)

    predictions = await _load_predictions(session, match_id)
    entries = plan_match_scoring(Score(match.home_score, match.away_score), predictions)
    await _replace_ledger_rows(session, match_id, [ledger_row(match_id, e) for e in entries])

    outcome = MatchScoringResult(match_id=match_id, entries=entries)
    logger.info(
        "match_scored",
        extra={
            "match_id": match_id,
            "participants": len(predictions),
            "affected_count": outcome.affected_count,
            "total_points": outcome.total_points,
        },
    )
    return outcome


async def clear_match_ledger(session: AsyncSession, match_id: int) -> int:
    """Drop a match's prediction rows after its result was withdrawn.

    Returns:
        Number of rows removed.
    """
    await _lock_match(session, match_id)
    existing = await session.execute(
        select(PointsLedger.id).where(
            PointsLedger.match_id == match_id,
            PointsLedger.reason == PREDICTION_REASON,
        )
    )
    removed = len(existing.all())
    await _replace_ledger_rows(session, match_id, [])
    if removed:
        logger.info("match_ledger_cleared", extra={"match_id": match_id, "removed": removed})
    return removed


async def rescore_stage(session: AsyncSession, stage_id: int) -> list[MatchScoringResult]:
    """Rescore every finished match of a stage, one atomic replace per match."""
    if await session.get(Stage, stage_id) is None:
        raise NotFoundError("stage", stage_id)
    result = await session.execute(
        select(Match.id)
        .where(Match.stage_id == stage_id, Match.status == MatchStatus.finished.value)
        .order_by(Match.id)
    )
    outcomes = [await score_match(session, match_id) for match_id in result.scalars().all()]
    logger.info(
        "stage_rescored",
        extra={
            "stage_id": stage_id,
            "matches": len(outcomes),
            "rows": sum(o.affected_count for o in outcomes),
        },
    )
    return outcomes
