"""Tests for prediction submission rules."""

from datetime import timedelta

import pytest
from sqlalchemy import func, insert, select

from factories import seed_pool
from predpool.db.pool import MatchStatus, Prediction, StageStatus
from predpool.errors import NotFoundError, PreconditionError
from predpool.services.predictions import submit_prediction, validate_prediction_values


class TestValidatePredictionValues:
    def test_both_or_neither(self):
        validate_prediction_values(1, 0)
        validate_prediction_values(None, None)
        with pytest.raises(PreconditionError):
            validate_prediction_values(1, None)

    def test_negative_rejected(self):
        with pytest.raises(PreconditionError) as exc_info:
            validate_prediction_values(-1, 0)
        assert exc_info.value.code == "invalid_prediction"


class TestSubmitPrediction:
    @pytest.mark.asyncio
    async def test_creates_then_updates(self, session, kickoff):
        pool = await seed_pool(session)
        player = pool.players[0]
        before = kickoff - timedelta(hours=2)

        await submit_prediction(
            session, match_id=pool.match.id, user_id=player.id, home_pred=1, away_pred=0, now=before
        )
        prediction = await submit_prediction(
            session,
            match_id=pool.match.id,
            user_id=player.id,
            home_pred=2,
            away_pred=2,
            now=before + timedelta(hours=1),
        )

        assert (prediction.home_pred, prediction.away_pred) == (2, 2)
        count = await session.scalar(select(func.count(Prediction.id)))
        assert count == 1

    @pytest.mark.asyncio
    async def test_clearing_keeps_row(self, session, kickoff):
        pool = await seed_pool(session)
        player = pool.players[0]
        before = kickoff - timedelta(minutes=5)

        await submit_prediction(
            session, match_id=pool.match.id, user_id=player.id, home_pred=1, away_pred=1, now=before
        )
        prediction = await submit_prediction(
            session,
            match_id=pool.match.id,
            user_id=player.id,
            home_pred=None,
            away_pred=None,
            now=before,
        )

        assert prediction.home_pred is None
        assert prediction.away_pred is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(seconds=1), timedelta(days=1)])
    async def test_deadline_passed(self, session, kickoff, offset):
        pool = await seed_pool(session)

        with pytest.raises(PreconditionError) as exc_info:
            await submit_prediction(
                session,
                match_id=pool.match.id,
                user_id=pool.players[0].id,
                home_pred=1,
                away_pred=0,
                now=kickoff + offset,
            )

        assert exc_info.value.code == "deadline_passed"

    @pytest.mark.asyncio
    async def test_naive_now_treated_as_utc(self, session, kickoff):
        pool = await seed_pool(session)
        naive_before = (kickoff - timedelta(seconds=1)).replace(tzinfo=None)

        prediction = await submit_prediction(
            session,
            match_id=pool.match.id,
            user_id=pool.players[0].id,
            home_pred=0,
            away_pred=0,
            now=naive_before,
        )

        assert prediction.home_pred == 0

    @pytest.mark.asyncio
    async def test_draft_stage_closed(self, session, kickoff):
        pool = await seed_pool(session, status=StageStatus.draft)

        with pytest.raises(PreconditionError) as exc_info:
            await submit_prediction(
                session,
                match_id=pool.match.id,
                user_id=pool.players[0].id,
                home_pred=1,
                away_pred=0,
                now=kickoff - timedelta(days=1),
            )

        assert exc_info.value.code == "stage_not_published"

    @pytest.mark.asyncio
    async def test_locked_stage_still_open_before_deadline(self, session, kickoff):
        pool = await seed_pool(session, status=StageStatus.locked)

        prediction = await submit_prediction(
            session,
            match_id=pool.match.id,
            user_id=pool.players[0].id,
            home_pred=3,
            away_pred=1,
            now=kickoff - timedelta(days=1),
        )

        assert prediction.home_pred == 3

    @pytest.mark.asyncio
    async def test_finished_match_closed(self, session, kickoff):
        pool = await seed_pool(session)
        pool.match.home_score = 1
        pool.match.away_score = 0
        pool.match.status = MatchStatus.finished.value
        await session.flush()

        with pytest.raises(PreconditionError) as exc_info:
            await submit_prediction(
                session,
                match_id=pool.match.id,
                user_id=pool.players[0].id,
                home_pred=1,
                away_pred=0,
                now=kickoff - timedelta(days=1),
            )

        assert exc_info.value.code == "match_closed"

    @pytest.mark.asyncio
    async def test_admin_cannot_predict(self, session, kickoff):
        pool = await seed_pool(session)

        with pytest.raises(PreconditionError) as exc_info:
            await submit_prediction(
                session,
                match_id=pool.match.id,
                user_id=pool.admin.id,
                home_pred=1,
                away_pred=0,
                now=kickoff - timedelta(days=1),
            )

        assert exc_info.value.code == "admin_cannot_predict"

    @pytest.mark.asyncio
    async def test_unknown_participant_and_match(self, session, kickoff):
        pool = await seed_pool(session)

        with pytest.raises(NotFoundError):
            await submit_prediction(
                session, match_id=pool.match.id, user_id=999, home_pred=1, away_pred=0
            )
        with pytest.raises(NotFoundError):
            await submit_prediction(
                session, match_id=999, user_id=pool.players[0].id, home_pred=1, away_pred=0
            )

    @pytest.mark.asyncio
    async def test_row_inserted_by_another_writer_is_updated(self, session, kickoff):
        pool = await seed_pool(session)
        player = pool.players[0]
        # Another request stored the first prediction; this session never loaded it.
        await session.execute(
            insert(Prediction).values(
                match_id=pool.match.id, user_id=player.id, home_pred=0, away_pred=0
            )
        )

        prediction = await submit_prediction(
            session,
            match_id=pool.match.id,
            user_id=player.id,
            home_pred=2,
            away_pred=1,
            now=kickoff - timedelta(hours=1),
        )

        assert (prediction.home_pred, prediction.away_pred) == (2, 1)
        count = await session.scalar(select(func.count(Prediction.id)))
        assert count == 1
