"""Prediction-pool models: teams, stages, tours, matches, predictions, ledger.

Key Rules:
1. A stage moves draft -> published -> locked, never backwards.
2. At most one stage is current; the ``current_stage`` table holds a single
   row (id = 1) pointing at it.
3. A match's scores are both null or both set; they count only once the
   match is ``finished``.
4. ``points_ledger`` has at most one row per (user, match, reason) and is the
   only source of official point totals.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

# Two-decimal points; floats in Python, exact NUMERIC in Postgres.
Points = Numeric(8, 2, asdecimal=False)

PREDICTION_REASON = "prediction"


class StageStatus(str, Enum):
    """Stage lifecycle. Happy path: draft -> published -> locked."""

    draft = "draft"
    published = "published"
    locked = "locked"


class MatchStatus(str, Enum):
    scheduled = "scheduled"
    live = "live"
    finished = "finished"
    canceled = "canceled"


class ParticipantRole(str, Enum):
    player = "player"
    admin = "admin"


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Stage(Base):
    """A competition phase holding tours and matches."""

    __tablename__ = "stages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StageStatus.draft.value
    )
    matches_required: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    tours: Mapped[list["Tour"]] = relationship(
        "Tour", back_populates="stage", cascade="all, delete-orphan", passive_deletes=True
    )
    matches: Mapped[list["Match"]] = relationship(
        "Match", back_populates="stage", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("matches_required > 0", name="matches_required_positive"),
        CheckConstraint(
            "status IN ('draft', 'published', 'locked')", name="status_valid"
        ),
    )


class CurrentStage(Base):
    """Single-row pointer to the current stage."""

    __tablename__ = "current_stage"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    stage_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("stages.id", ondelete="CASCADE"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (CheckConstraint("id = 1", name="single_row"),)


class Tour(Base):
    __tablename__ = "tours"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    stage_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("stages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tour_no: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    stage: Mapped[Stage] = relationship("Stage", back_populates="tours")
    matches: Mapped[list["Match"]] = relationship(
        "Match", back_populates="tour", passive_deletes=True
    )

    __table_args__ = (UniqueConstraint("stage_id", "tour_no", name="uq_tours_stage_tour_no"),)


class Match(Base):
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    stage_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("stages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tour_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tours.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stage_match_no: Mapped[int] = mapped_column(Integer, nullable=False)
    home_team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False
    )
    away_team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False
    )
    kickoff_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deadline_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MatchStatus.scheduled.value
    )
    home_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    away_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    stage: Mapped[Stage] = relationship("Stage", back_populates="matches")
    tour: Mapped[Tour] = relationship("Tour", back_populates="matches")
    home_team: Mapped[Team] = relationship("Team", foreign_keys=[home_team_id])
    away_team: Mapped[Team] = relationship("Team", foreign_keys=[away_team_id])

    __table_args__ = (
        CheckConstraint("home_team_id <> away_team_id", name="distinct_teams"),
        CheckConstraint(
            "(home_score IS NULL) = (away_score IS NULL)", name="scores_paired"
        ),
        UniqueConstraint("stage_id", "stage_match_no", name="uq_matches_stage_match_no"),
        Index("idx_matches_stage_kickoff", "stage_id", "kickoff_at"),
    )

    @property
    def is_finished(self) -> bool:
        return self.status == MatchStatus.finished.value

    @property
    def has_result(self) -> bool:
        return self.home_score is not None and self.away_score is not None


class Participant(Base):
    """A pool member. Admins maintain fixtures and never score."""

    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    login: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ParticipantRole.player.value
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ParticipantRole.admin.value


class Prediction(Base):
    __tablename__ = "predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    match_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    home_pred: Mapped[int | None] = mapped_column(Integer, nullable=True)
    away_pred: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("match_id", "user_id", name="uq_predictions_match_user"),
        CheckConstraint(
            "(home_pred IS NULL) = (away_pred IS NULL)", name="preds_paired"
        ),
    )


class PointsLedger(Base):
    """Itemized point award for one user on one match.

    ``points`` = ``points_h1 + points_h2 + points_outcome + points_diff +
    points_bonus``; outcome and diff are further split into base and rarity
    bonus so receipts render without recomputation.
    """

    __tablename__ = "points_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    match_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reason: Mapped[str] = mapped_column(String(32), nullable=False, default=PREDICTION_REASON)

    points: Mapped[float] = mapped_column(Points, nullable=False)
    points_h1: Mapped[float] = mapped_column(Points, nullable=False, default=0)
    points_h2: Mapped[float] = mapped_column(Points, nullable=False, default=0)
    points_outcome: Mapped[float] = mapped_column(Points, nullable=False, default=0)
    points_outcome_base: Mapped[float] = mapped_column(Points, nullable=False, default=0)
    points_outcome_bonus: Mapped[float] = mapped_column(Points, nullable=False, default=0)
    points_diff: Mapped[float] = mapped_column(Points, nullable=False, default=0)
    points_diff_base: Mapped[float] = mapped_column(Points, nullable=False, default=0)
    points_diff_bonus: Mapped[float] = mapped_column(Points, nullable=False, default=0)
    points_bonus: Mapped[float] = mapped_column(Points, nullable=False, default=0)

    outcome_mult: Mapped[float] = mapped_column(Points, nullable=False, default=1)
    diff_mult: Mapped[float] = mapped_column(Points, nullable=False, default=1)
    outcome_guessed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    diff_guessed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_preds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pred_home: Mapped[int] = mapped_column(Integer, nullable=False)
    pred_away: Mapped[int] = mapped_column(Integer, nullable=False)
    result_home: Mapped[int] = mapped_column(Integer, nullable=False)
    result_away: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "match_id", "reason", name="uq_points_ledger_user_match_reason"),
    )
