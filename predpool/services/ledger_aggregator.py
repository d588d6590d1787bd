"""Read-time aggregations over ``points_ledger``.

Nothing here is cached: every call sums the ledger as it stands, which is
read-committed. While a rescoring replace is in flight a reader sees either
the old rows or the new ones, never a mix, because the replace commits
as one unit.

Queries only fetch rows; the folding (ranking, hit rates, running totals)
lives in pure helpers so it can be tested without a database.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import func, select

from ..db import AsyncSession
from ..db.pool import PREDICTION_REASON, Match, Participant, ParticipantRole, PointsLedger
from ..utils.datetime_utils import match_day
from .scoring import PointsBreakdown, round2


@dataclass(frozen=True, slots=True)
class LeaderboardRow:
    user_id: int
    login: str
    display_name: str | None
    points: float
    matches_counted: int
    rank: int


@dataclass(slots=True)
class QualityStats:
    """Per-user hit counts for a stage, from ledger components."""

    user_id: int
    matches_count: int = 0
    exact_count: int = 0
    outcome_hit_count: int = 0
    diff_hit_count: int = 0
    near_miss_count: int = 0
    points: float = 0.0

    def rate(self, hits: int) -> float:
        if not self.matches_count:
            return 0.0
        return round2(hits / self.matches_count)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "matches_count": self.matches_count,
            "exact_count": self.exact_count,
            "outcome_hit_count": self.outcome_hit_count,
            "diff_hit_count": self.diff_hit_count,
            "near_miss_count": self.near_miss_count,
            "points": self.points,
            "exact_rate": self.rate(self.exact_count),
            "outcome_rate": self.rate(self.outcome_hit_count),
            "diff_rate": self.rate(self.diff_hit_count),
        }


@dataclass(frozen=True, slots=True)
class SeriesPoint:
    match_id: int
    kickoff_at: datetime
    day: date
    points: float
    cumulative: float


@dataclass(frozen=True, slots=True)
class ExactLeader:
    user_id: int
    login: str
    exact_count: int
    matches_count: int = 0


# -----------------------------------------------------------------------------
# Pure folds
# -----------------------------------------------------------------------------


def rank_leaderboard(
    participants: Iterable[Any],
    totals: dict[int, tuple[float, int]],
) -> list[LeaderboardRow]:
    """Order participants by points and assign competition ranks (1, 1, 3).

    Args:
        participants: Objects with ``id``, ``login`` and ``display_name``.
        totals: user id -> (points, matches counted). Missing users score 0.
    """
    rows = []
    for participant in participants:
        points, counted = totals.get(participant.id, (0.0, 0))
        rows.append((participant, round2(points), counted))
    rows.sort(key=lambda item: (-item[1], item[0].login))

    ranked: list[LeaderboardRow] = []
    previous_points: float | None = None
    rank = 0
    for position, (participant, points, counted) in enumerate(rows, start=1):
        if points != previous_points:
            rank = position
            previous_points = points
        ranked.append(
            LeaderboardRow(
                user_id=participant.id,
                login=participant.login,
                display_name=participant.display_name,
                points=points,
                matches_counted=counted,
                rank=rank,
            )
        )
    return ranked


def summarize_quality(rows: Iterable[Any], user_ids: Iterable[int] = ()) -> dict[int, QualityStats]:
    """Fold ledger rows into per-user hit counts.

    A row is an exact hit when both team-goal halves paid, an outcome or
    difference hit when the matching base component paid, and a near miss
    when the bonus paid.
    """
    stats = {user_id: QualityStats(user_id=user_id) for user_id in user_ids}
    for row in rows:
        entry = stats.setdefault(row.user_id, QualityStats(user_id=row.user_id))
        entry.matches_count += 1
        entry.points = round2(entry.points + row.points)
        if row.points_h1 > 0 and row.points_h2 > 0:
            entry.exact_count += 1
        if row.points_outcome_base > 0:
            entry.outcome_hit_count += 1
        if row.points_diff_base > 0:
            entry.diff_hit_count += 1
        if row.points_bonus > 0:
            entry.near_miss_count += 1
    return stats


def build_series(rows: Iterable[Any]) -> list[SeriesPoint]:
    """Running totals over (match_id, kickoff_at, points) rows already in kickoff order."""
    series: list[SeriesPoint] = []
    running = 0.0
    for row in rows:
        running = round2(running + row.points)
        series.append(
            SeriesPoint(
                match_id=row.match_id,
                kickoff_at=row.kickoff_at,
                day=match_day(row.kickoff_at),
                points=row.points,
                cumulative=running,
            )
        )
    return series


def breakdown_from_ledger(row: PointsLedger) -> PointsBreakdown:
    """Rebuild the receipt of a stored ledger row."""
    return PointsBreakdown(
        total=row.points,
        home_goals=row.points_h1,
        away_goals=row.points_h2,
        outcome=row.points_outcome,
        outcome_base=row.points_outcome_base,
        outcome_bonus=row.points_outcome_bonus,
        diff=row.points_diff,
        diff_base=row.points_diff_base,
        diff_bonus=row.points_diff_bonus,
        near_miss=row.points_bonus,
        outcome_hit=row.points_outcome_base > 0,
        diff_hit=row.points_diff_base > 0,
        outcome_mult=row.outcome_mult,
        diff_mult=row.diff_mult,
        outcome_guessed=row.outcome_guessed,
        diff_guessed=row.diff_guessed,
        total_preds=row.total_preds,
        pred_home=row.pred_home,
        pred_away=row.pred_away,
        result_home=row.result_home,
        result_away=row.result_away,
    )


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------


def _stage_ledger_filter(stage_id: int) -> list[Any]:
    return [Match.stage_id == stage_id, PointsLedger.reason == PREDICTION_REASON]


async def _players(session: AsyncSession) -> list[Participant]:
    result = await session.execute(
        select(Participant)
        .where(Participant.role != ParticipantRole.admin.value)
        .order_by(Participant.login)
    )
    return list(result.scalars().all())


async def get_user_total(session: AsyncSession, stage_id: int, user_id: int) -> float:
    """Official points of one user in a stage (0.0 when nothing is scored yet)."""
    result = await session.execute(
        select(func.coalesce(func.sum(PointsLedger.points), 0))
        .select_from(PointsLedger)
        .join(Match, Match.id == PointsLedger.match_id)
        .where(PointsLedger.user_id == user_id, *_stage_ledger_filter(stage_id))
    )
    return round2(float(result.scalar_one()))


async def get_leaderboard(session: AsyncSession, stage_id: int) -> list[LeaderboardRow]:
    """Every player of the pool ranked by stage points; unscored players get 0."""
    result = await session.execute(
        select(
            PointsLedger.user_id,
            func.sum(PointsLedger.points).label("points"),
            func.count(PointsLedger.id).label("matches_counted"),
        )
        .select_from(PointsLedger)
        .join(Match, Match.id == PointsLedger.match_id)
        .where(*_stage_ledger_filter(stage_id))
        .group_by(PointsLedger.user_id)
    )
    totals = {row.user_id: (float(row.points), row.matches_counted) for row in result.all()}
    return rank_leaderboard(await _players(session), totals)


async def _stage_rows(session: AsyncSession, stage_id: int, user_id: int | None = None):
    stmt = (
        select(PointsLedger)
        .join(Match, Match.id == PointsLedger.match_id)
        .where(*_stage_ledger_filter(stage_id))
    )
    if user_id is not None:
        stmt = stmt.where(PointsLedger.user_id == user_id)
    return (await session.execute(stmt)).scalars().all()


async def get_stage_quality(
    session: AsyncSession, stage_id: int, user_id: int | None = None
) -> list[QualityStats]:
    """Hit counts and rates per player for a stage, ordered by user id."""
    rows = await _stage_rows(session, stage_id, user_id)
    if user_id is not None:
        user_ids: list[int] = [user_id]
    else:
        user_ids = [player.id for player in await _players(session)]
    stats = summarize_quality(rows, user_ids)
    return [stats[key] for key in sorted(stats)]


async def get_points_series(
    session: AsyncSession, stage_id: int, user_id: int
) -> list[SeriesPoint]:
    """A user's points per scored match in kickoff order, with running total."""
    result = await session.execute(
        select(Match.id.label("match_id"), Match.kickoff_at, PointsLedger.points)
        .select_from(PointsLedger)
        .join(Match, Match.id == PointsLedger.match_id)
        .where(PointsLedger.user_id == user_id, *_stage_ledger_filter(stage_id))
        .order_by(Match.kickoff_at, Match.id)
    )
    return build_series(result.all())


async def get_exact_leaders(session: AsyncSession, stage_id: int) -> list[ExactLeader]:
    """Exact-score hits per player ("golden boot"), most hits first."""
    players = await _players(session)
    stats = summarize_quality(await _stage_rows(session, stage_id), [p.id for p in players])
    leaders = [
        ExactLeader(
            user_id=p.id,
            login=p.login,
            exact_count=stats[p.id].exact_count,
            matches_count=stats[p.id].matches_count,
        )
        for p in players
    ]
    leaders.sort(key=lambda leader: (-leader.exact_count, leader.login))
    return leaders


async def get_match_receipts(
    session: AsyncSession, match_id: int
) -> list[tuple[int, PointsBreakdown]]:
    """Stored breakdowns for one match, by user id."""
    result = await session.execute(
        select(PointsLedger)
        .where(PointsLedger.match_id == match_id, PointsLedger.reason == PREDICTION_REASON)
        .order_by(PointsLedger.user_id)
    )
    return [(row.user_id, breakdown_from_ledger(row)) for row in result.scalars().all()]
