"""Points calculator for a single prediction.

Pure functions only: no database access, no clock. The match scoring
orchestrator feeds these with the rarity context of the match and persists
the resulting breakdown as a ledger row.

Components (each rounded to two decimals):
1. Team goals  - +0.5 per side whose goal count is exact (0 .. 1)
2. Outcome     - 2 x outcome multiplier when win/draw/loss matches
3. Difference  - 1 x diff multiplier when the goal difference matches exactly
4. Near miss   - +0.5 when the total absolute goal error is exactly 1
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

TEAM_GOAL_POINTS = 0.5
OUTCOME_BASE_POINTS = 2.0
DIFF_BASE_POINTS = 1.0
NEAR_MISS_POINTS = 0.5

# Co-predictor count -> multiplier. Anything not listed (0, >= 4) pays 1.0.
RARITY_TIERS: dict[int, float] = {1: 1.75, 2: 1.5, 3: 1.25}


@dataclass(frozen=True, slots=True)
class Score:
    """A (home, away) pair; either side may be missing."""

    home: int | None
    away: int | None

    @property
    def is_complete(self) -> bool:
        return self.home is not None and self.away is not None

    @property
    def text(self) -> str:
        if not self.is_complete:
            return "-"
        return f"{self.home}:{self.away}"


@dataclass(frozen=True, slots=True)
class RarityContext:
    """How many participants hit each dimension for the match.

    Counts include the participant being scored, so a sole correct guesser
    has a count of 1.
    """

    outcome_guessed: int = 0
    diff_guessed: int = 0
    total_preds: int = 0

    @property
    def outcome_mult(self) -> float:
        return multiplier(self.outcome_guessed)

    @property
    def diff_mult(self) -> float:
        return multiplier(self.diff_guessed)


@dataclass(frozen=True, slots=True)
class PointsBreakdown:
    """Explainable receipt for one prediction on one match."""

    total: float
    home_goals: float
    away_goals: float
    outcome: float
    outcome_base: float
    outcome_bonus: float
    diff: float
    diff_base: float
    diff_bonus: float
    near_miss: float
    outcome_hit: bool
    diff_hit: bool
    outcome_mult: float
    diff_mult: float
    outcome_guessed: int
    diff_guessed: int
    total_preds: int
    pred_home: int
    pred_away: int
    result_home: int
    result_away: int

    @property
    def team_goals(self) -> float:
        return round2(self.home_goals + self.away_goals)

    @property
    def is_exact(self) -> bool:
        return self.pred_home == self.result_home and self.pred_away == self.result_away

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["team_goals"] = self.team_goals
        data["pred_text"] = f"{self.pred_home}:{self.pred_away}"
        data["result_text"] = f"{self.result_home}:{self.result_away}"
        return data


def round2(value: float) -> float:
    """Round half up to two decimals (``floor(x * 100 + 0.5) / 100``).

    Python's ``round`` uses banker's rounding; points must not.
    """
    return math.floor(value * 100 + 0.5) / 100


def sign_outcome(home: int, away: int) -> int:
    """1 for a home win, 0 for a draw, -1 for an away win."""
    if home == away:
        return 0
    return 1 if home > away else -1


def multiplier(co_predictors: int | None) -> float:
    """Rarity multiplier for the number of participants who got it right.

    Args:
        co_predictors: Participants (scoring user included) who hit the same
            outcome or difference. ``None`` or 0 means not applicable.

    Returns:
        1.75 / 1.5 / 1.25 for 1 / 2 / 3 co-predictors, else 1.0.
    """
    if not co_predictors:
        return 1.0
    return RARITY_TIERS.get(co_predictors, 1.0)


def outcome_hit(prediction: Score, result: Score) -> bool:
    return sign_outcome(prediction.home, prediction.away) == sign_outcome(result.home, result.away)


def diff_hit(prediction: Score, result: Score) -> bool:
    return prediction.home - prediction.away == result.home - result.away


def goal_distance(prediction: Score, result: Score) -> int:
    return abs(prediction.home - result.home) + abs(prediction.away - result.away)


def score(
    prediction: Score,
    result: Score,
    rarity: RarityContext | None = None,
) -> PointsBreakdown | None:
    """Compute the points breakdown for one prediction.

    Args:
        prediction: The participant's predicted score.
        result: The final score of the match.
        rarity: Co-predictor counts for the match. Defaults to no rarity
            premium (both multipliers 1.0).

    Returns:
        The breakdown, or None when the prediction or the result is
        incomplete (no points exist for that pairing).
    """
    if not prediction.is_complete or not result.is_complete:
        return None
    rarity = rarity or RarityContext()

    home_goals = TEAM_GOAL_POINTS if prediction.home == result.home else 0.0
    away_goals = TEAM_GOAL_POINTS if prediction.away == result.away else 0.0

    got_outcome = outcome_hit(prediction, result)
    outcome_mult = rarity.outcome_mult
    outcome_base = OUTCOME_BASE_POINTS if got_outcome else 0.0
    outcome = round2(OUTCOME_BASE_POINTS * outcome_mult) if got_outcome else 0.0

    got_diff = diff_hit(prediction, result)
    diff_mult = rarity.diff_mult
    diff_base = DIFF_BASE_POINTS if got_diff else 0.0
    diff = round2(DIFF_BASE_POINTS * diff_mult) if got_diff else 0.0

    near_miss = NEAR_MISS_POINTS if goal_distance(prediction, result) == 1 else 0.0

    return PointsBreakdown(
        total=round2(home_goals + away_goals + outcome + diff + near_miss),
        home_goals=home_goals,
        away_goals=away_goals,
        outcome=outcome,
        outcome_base=outcome_base,
        outcome_bonus=round2(outcome - outcome_base),
        diff=diff,
        diff_base=diff_base,
        diff_bonus=round2(diff - diff_base),
        near_miss=near_miss,
        outcome_hit=got_outcome,
        diff_hit=got_diff,
        outcome_mult=outcome_mult,
        diff_mult=diff_mult,
        outcome_guessed=rarity.outcome_guessed,
        diff_guessed=rarity.diff_guessed,
        total_preds=rarity.total_preds,
        pred_home=prediction.home,
        pred_away=prediction.away,
        result_home=result.home,
        result_away=result.away,
    )
