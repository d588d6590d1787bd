"""Tests for the single-prediction points calculator."""

import pytest

from predpool.services.scoring import (
    PointsBreakdown,
    RarityContext,
    Score,
    multiplier,
    round2,
    score,
    sign_outcome,
)


class TestMultiplier:
    """Rarity tiers by co-predictor count."""

    @pytest.mark.parametrize(
        "count,expected",
        [(None, 1.0), (0, 1.0), (1, 1.75), (2, 1.5), (3, 1.25), (4, 1.0), (25, 1.0)],
    )
    def test_tiers(self, count, expected):
        assert multiplier(count) == expected

    def test_monotonic_non_increasing_from_one(self):
        values = [multiplier(n) for n in range(1, 10)]
        assert values == sorted(values, reverse=True)


class TestRound2:
    def test_rounds_half_up(self):
        assert round2(0.125) == 0.13
        assert round2(2.675 + 0.0001) == 2.68

    def test_plain_values_unchanged(self):
        assert round2(3.5) == 3.5
        assert round2(0) == 0.0


class TestSignOutcome:
    def test_home_draw_away(self):
        assert sign_outcome(2, 1) == 1
        assert sign_outcome(1, 1) == 0
        assert sign_outcome(0, 3) == -1


class TestScore:
    """Component-by-component scoring."""

    def test_exact_hit_sole_guesser(self):
        """(2,1) on (2,1) with one co-predictor on each dimension pays 6.25."""
        result = score(Score(2, 1), Score(2, 1), RarityContext(1, 1, 1))

        assert isinstance(result, PointsBreakdown)
        assert result.home_goals == 0.5
        assert result.away_goals == 0.5
        assert result.outcome == 3.5
        assert result.outcome_bonus == 1.5
        assert result.diff == 1.75
        assert result.diff_bonus == 0.75
        assert result.near_miss == 0.0
        assert result.total == 6.25
        assert result.is_exact

    def test_outcome_and_diff_without_goals(self):
        """(1,0) on (2,1), 4 outcome and 3 diff co-predictors, pays 3.25."""
        result = score(Score(1, 0), Score(2, 1), RarityContext(4, 3, 6))

        assert result.team_goals == 0.0
        assert result.outcome == 2.0
        assert result.outcome_mult == 1.0
        assert result.diff == 1.25
        assert result.diff_mult == 1.25
        assert result.near_miss == 0.0
        assert result.total == 3.25
        assert not result.is_exact

    def test_near_miss_only_when_error_is_one_goal(self):
        one_off = score(Score(2, 2), Score(2, 1))
        two_off = score(Score(3, 3), Score(2, 1))

        assert one_off.near_miss == 0.5
        assert one_off.home_goals == 0.5
        assert one_off.outcome == 0.0
        assert one_off.total == 1.0
        assert two_off.near_miss == 0.0
        assert two_off.total == 0.0

    def test_wrong_outcome_scores_zero_components(self):
        result = score(Score(0, 3), Score(2, 1))

        assert result.total == 0.0
        assert not result.outcome_hit
        assert not result.diff_hit

    def test_draw_predicted_for_different_draw(self):
        """1:1 on 2:2 hits outcome and difference but no goals."""
        result = score(Score(1, 1), Score(2, 2))

        assert result.outcome_hit
        assert result.diff_hit
        assert result.team_goals == 0.0
        assert result.total == 3.0

    def test_default_rarity_pays_base(self):
        result = score(Score(2, 1), Score(2, 1))
        assert result.total == 4.0
        assert result.outcome_bonus == 0.0
        assert result.diff_bonus == 0.0

    @pytest.mark.parametrize(
        "prediction,result",
        [
            (Score(None, None), Score(2, 1)),
            (Score(2, None), Score(2, 1)),
            (Score(2, 1), Score(None, None)),
            (Score(2, 1), Score(None, 1)),
        ],
    )
    def test_incomplete_pairs_have_no_score(self, prediction, result):
        assert score(prediction, result) is None


class TestScoringProperties:
    """Invariants over a grid of predictions and results."""

    GRID = [Score(h, a) for h in range(4) for a in range(4)]

    def test_team_goals_bounded(self):
        for prediction in self.GRID:
            for result in self.GRID:
                breakdown = score(prediction, result)
                assert 0.0 <= breakdown.team_goals <= 1.0

    def test_difference_implies_outcome(self):
        for prediction in self.GRID:
            for result in self.GRID:
                breakdown = score(prediction, result)
                if breakdown.diff_hit:
                    assert breakdown.outcome_hit

    def test_total_is_sum_of_components(self):
        rarity = RarityContext(2, 1, 5)
        for prediction in self.GRID:
            for result in self.GRID:
                b = score(prediction, result, rarity)
                assert b.total == round2(
                    b.home_goals + b.away_goals + b.outcome + b.diff + b.near_miss
                )

    def test_rarer_hit_never_pays_less(self):
        exact = Score(2, 1)
        totals = [score(exact, exact, RarityContext(n, n, 10)).total for n in range(1, 6)]
        assert totals == sorted(totals, reverse=True)


class TestBreakdownToDict:
    def test_contains_receipt_fields(self):
        data = score(Score(2, 1), Score(2, 1), RarityContext(1, 1, 1)).to_dict()

        assert data["total"] == 6.25
        assert data["team_goals"] == 1.0
        assert data["pred_text"] == "2:1"
        assert data["result_text"] == "2:1"
        assert data["outcome_guessed"] == 1

    def test_score_text(self):
        assert Score(3, 0).text == "3:0"
        assert Score(None, 0).text == "-"
