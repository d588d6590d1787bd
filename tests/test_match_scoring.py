"""Tests for the match scoring orchestrator."""

import pytest
from sqlalchemy import select

from factories import add_prediction, finish_match, seed_pool
from predpool.db.pool import MatchStatus, PointsLedger
from predpool.errors import LedgerReplaceError, NotFoundError
from predpool.services import match_scoring
from predpool.services.match_scoring import (
    SKIP_NOT_FINISHED,
    SKIP_SCORES_INCOMPLETE,
    clear_match_ledger,
    count_co_predictors,
    plan_match_scoring,
    rescore_stage,
    score_match,
)
from predpool.services.scoring import Score


async def _ledger(session, match_id):
    result = await session.execute(
        select(PointsLedger).where(PointsLedger.match_id == match_id).order_by(PointsLedger.user_id)
    )
    return list(result.scalars().all())


class TestCountCoPredictors:
    def test_counts_only_complete_predictions(self):
        result = Score(2, 1)
        rarity = count_co_predictors(
            result,
            [Score(2, 1), Score(1, 0), Score(3, 3), Score(None, None), Score(2, None)],
        )
        assert rarity.outcome_guessed == 2
        assert rarity.diff_guessed == 2
        assert rarity.total_preds == 3


class TestPlanMatchScoring:
    def test_sole_exact_guesser_gets_top_tier(self):
        entries = plan_match_scoring(
            Score(2, 1), {1: Score(2, 1), 2: Score(0, 2), 3: Score(None, None)}
        )
        assert [e.user_id for e in entries] == [1, 2]
        assert entries[0].points == 6.25
        assert entries[1].points == 0.0

    def test_scenario_with_crowded_outcome(self):
        predictions = {
            1: Score(1, 0),
            2: Score(3, 2),
            3: Score(4, 3),
            4: Score(3, 0),
        }
        entries = {e.user_id: e for e in plan_match_scoring(Score(2, 1), predictions)}

        assert entries[1].breakdown.outcome_guessed == 4
        assert entries[1].breakdown.diff_guessed == 3
        assert entries[1].points == 3.25

    def test_incomplete_result_plans_nothing(self):
        assert plan_match_scoring(Score(None, None), {1: Score(1, 0)}) == []

    def test_ordered_by_user_id(self):
        entries = plan_match_scoring(Score(1, 1), {9: Score(0, 0), 2: Score(1, 1), 5: Score(2, 0)})
        assert [e.user_id for e in entries] == [2, 5, 9]


class TestScoreMatch:
    """Database-backed scoring runs."""

    @pytest.mark.asyncio
    async def test_writes_one_row_per_complete_prediction(self, session):
        pool = await seed_pool(session, players=3)
        p1, p2, p3 = pool.players
        await add_prediction(session, pool.match, p1, 2, 1)
        await add_prediction(session, pool.match, p2, 0, 0)
        await finish_match(session, pool.match, 2, 1)

        outcome = await score_match(session, pool.match.id)

        rows = await _ledger(session, pool.match.id)
        assert outcome.affected_count == 2
        assert [row.user_id for row in rows] == [p1.id, p2.id]
        assert rows[0].points == 6.25
        assert rows[0].points_h1 == 0.5
        assert rows[0].points_outcome_bonus == 1.5
        assert rows[0].pred_home == 2
        assert rows[0].result_away == 1
        assert rows[1].points == 0.0
        assert outcome.total_points == 6.25

    @pytest.mark.asyncio
    async def test_missing_and_half_predictions_get_no_row(self, session):
        pool = await seed_pool(session, players=2)
        await add_prediction(session, pool.match, pool.players[0], None, None)
        await finish_match(session, pool.match, 1, 0)

        outcome = await score_match(session, pool.match.id)

        assert outcome.affected_count == 0
        assert await _ledger(session, pool.match.id) == []

    @pytest.mark.asyncio
    async def test_admin_predictions_are_ignored(self, session):
        pool = await seed_pool(session, players=1)
        await add_prediction(session, pool.match, pool.players[0], 2, 1)
        await add_prediction(session, pool.match, pool.admin, 2, 1)
        await finish_match(session, pool.match, 2, 1)

        outcome = await score_match(session, pool.match.id)

        assert [e.user_id for e in outcome.entries] == [pool.players[0].id]
        # The admin's identical guess does not dilute the rarity premium.
        assert outcome.entries[0].breakdown.outcome_mult == 1.75

    @pytest.mark.asyncio
    async def test_idempotent(self, session):
        pool = await seed_pool(session, players=3)
        for player, pred in zip(pool.players, [(2, 1), (1, 0), (0, 0)]):
            await add_prediction(session, pool.match, player, *pred)
        await finish_match(session, pool.match, 2, 1)

        await score_match(session, pool.match.id)
        first = [(r.user_id, r.points) for r in await _ledger(session, pool.match.id)]
        await score_match(session, pool.match.id)
        second = [(r.user_id, r.points) for r in await _ledger(session, pool.match.id)]

        assert first == second
        assert len(second) == 3

    @pytest.mark.asyncio
    async def test_result_correction_replaces_rows(self, session):
        pool = await seed_pool(session, players=1)
        await add_prediction(session, pool.match, pool.players[0], 2, 1)
        await finish_match(session, pool.match, 2, 1)
        await score_match(session, pool.match.id)

        await finish_match(session, pool.match, 0, 0)
        await score_match(session, pool.match.id)

        rows = await _ledger(session, pool.match.id)
        assert len(rows) == 1
        assert rows[0].points == 0.0
        assert rows[0].result_home == 0

    @pytest.mark.asyncio
    async def test_not_finished_is_noop(self, session):
        pool = await seed_pool(session, players=1)
        await add_prediction(session, pool.match, pool.players[0], 2, 1)

        outcome = await score_match(session, pool.match.id)

        assert outcome.affected_count == 0
        assert outcome.skipped_reason == SKIP_NOT_FINISHED
        assert await _ledger(session, pool.match.id) == []

    @pytest.mark.asyncio
    async def test_finished_without_scores_is_noop(self, session):
        pool = await seed_pool(session, players=1)
        pool.match.status = MatchStatus.finished.value
        await session.flush()

        outcome = await score_match(session, pool.match.id)

        assert outcome.skipped_reason == SKIP_SCORES_INCOMPLETE
        assert outcome.affected_count == 0

    @pytest.mark.asyncio
    async def test_unknown_match(self, session):
        with pytest.raises(NotFoundError) as exc_info:
            await score_match(session, 999)
        assert exc_info.value.details == {"entity": "match", "id": 999}

    @pytest.mark.asyncio
    async def test_failed_replace_keeps_previous_rows(self, session, monkeypatch):
        pool = await seed_pool(session, players=2)
        match_id = pool.match.id
        await add_prediction(session, pool.match, pool.players[0], 2, 1)
        await add_prediction(session, pool.match, pool.players[1], 1, 1)
        await finish_match(session, pool.match, 2, 1)
        await score_match(session, match_id)
        before = [(r.user_id, r.points) for r in await _ledger(session, match_id)]

        real_ledger_row = match_scoring.ledger_row
        first_player = pool.players[0].id

        def duplicate_row(match_id, entry):
            # Every row for the same user trips the (user, match, reason) unique key.
            return {**real_ledger_row(match_id, entry), "user_id": first_player}

        monkeypatch.setattr(match_scoring, "ledger_row", duplicate_row)
        await finish_match(session, pool.match, 0, 3)

        with pytest.raises(LedgerReplaceError) as exc_info:
            await score_match(session, match_id)

        assert exc_info.value.code == "ledger_replace_failed"
        session.expire_all()
        after = [(r.user_id, r.points) for r in await _ledger(session, match_id)]
        assert after == before


class TestClearMatchLedger:
    @pytest.mark.asyncio
    async def test_removes_rows(self, session):
        pool = await seed_pool(session, players=2)
        await add_prediction(session, pool.match, pool.players[0], 2, 1)
        await add_prediction(session, pool.match, pool.players[1], 2, 0)
        await finish_match(session, pool.match, 2, 1)
        await score_match(session, pool.match.id)

        removed = await clear_match_ledger(session, pool.match.id)

        assert removed == 2
        assert await _ledger(session, pool.match.id) == []

    @pytest.mark.asyncio
    async def test_nothing_to_clear(self, session):
        pool = await seed_pool(session)
        assert await clear_match_ledger(session, pool.match.id) == 0


class TestRescoreStage:
    @pytest.mark.asyncio
    async def test_rescores_only_finished_matches(self, session):
        pool = await seed_pool(session, matches=3, players=2)
        first, second, _third = pool.matches
        for match in (first, second):
            await add_prediction(session, match, pool.players[0], 1, 0)
            await add_prediction(session, match, pool.players[1], 0, 1)
        await finish_match(session, first, 1, 0)
        await finish_match(session, second, 0, 1)

        outcomes = await rescore_stage(session, pool.stage.id)

        assert [o.match_id for o in outcomes] == [first.id, second.id]
        assert sum(o.affected_count for o in outcomes) == 4
        assert len(await _ledger(session, first.id)) == 2

    @pytest.mark.asyncio
    async def test_unknown_stage(self, session):
        with pytest.raises(NotFoundError):
            await rescore_stage(session, 404)
