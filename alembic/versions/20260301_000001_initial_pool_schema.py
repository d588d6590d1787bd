"""initial prediction pool schema

Revision ID: 20260301_000001
Revises:
Create Date: 2026-03-01 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20260301_000001'
down_revision = None
branch_labels = None
depends_on = None

POINTS = sa.Numeric(precision=8, scale=2)


def _points_column(name: str, default: str = '0') -> sa.Column:
    return sa.Column(name, POINTS, nullable=False, server_default=sa.text(default))


def upgrade() -> None:
    """Create teams, stages, tours, matches, participants, predictions and the points ledger."""
    op.create_table(
        'teams',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_teams'),
        sa.UniqueConstraint('name', name='uq_teams_name'),
    )

    op.create_table(
        'stages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('matches_required', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_stages'),
        sa.CheckConstraint('matches_required > 0', name='ck_stages_matches_required_positive'),
        sa.CheckConstraint("status IN ('draft', 'published', 'locked')", name='ck_stages_status_valid'),
    )

    # Single-row pointer: the primary key is pinned to 1.
    op.create_table(
        'current_stage',
        sa.Column('id', sa.Integer(), nullable=False, server_default=sa.text('1')),
        sa.Column('stage_id', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_current_stage'),
        sa.ForeignKeyConstraint(['stage_id'], ['stages.id'], name='fk_current_stage_stage_id_stages', ondelete='CASCADE'),
        sa.CheckConstraint('id = 1', name='ck_current_stage_single_row'),
    )

    op.create_table(
        'tours',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('stage_id', sa.Integer(), nullable=False),
        sa.Column('tour_no', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_tours'),
        sa.ForeignKeyConstraint(['stage_id'], ['stages.id'], name='fk_tours_stage_id_stages', ondelete='CASCADE'),
        sa.UniqueConstraint('stage_id', 'tour_no', name='uq_tours_stage_tour_no'),
    )
    op.create_index('ix_tours_stage_id', 'tours', ['stage_id'])

    op.create_table(
        'matches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('stage_id', sa.Integer(), nullable=False),
        sa.Column('tour_id', sa.Integer(), nullable=False),
        sa.Column('stage_match_no', sa.Integer(), nullable=False),
        sa.Column('home_team_id', sa.Integer(), nullable=False),
        sa.Column('away_team_id', sa.Integer(), nullable=False),
        sa.Column('kickoff_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deadline_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='scheduled'),
        sa.Column('home_score', sa.Integer(), nullable=True),
        sa.Column('away_score', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_matches'),
        sa.ForeignKeyConstraint(['stage_id'], ['stages.id'], name='fk_matches_stage_id_stages', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tour_id'], ['tours.id'], name='fk_matches_tour_id_tours', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['home_team_id'], ['teams.id'], name='fk_matches_home_team_id_teams', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['away_team_id'], ['teams.id'], name='fk_matches_away_team_id_teams', ondelete='RESTRICT'),
        sa.UniqueConstraint('stage_id', 'stage_match_no', name='uq_matches_stage_match_no'),
        sa.CheckConstraint('home_team_id <> away_team_id', name='ck_matches_distinct_teams'),
        sa.CheckConstraint('(home_score IS NULL) = (away_score IS NULL)', name='ck_matches_scores_paired'),
    )
    op.create_index('ix_matches_stage_id', 'matches', ['stage_id'])
    op.create_index('ix_matches_tour_id', 'matches', ['tour_id'])
    op.create_index('idx_matches_stage_kickoff', 'matches', ['stage_id', 'kickoff_at'])

    op.create_table(
        'participants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('login', sa.String(length=64), nullable=False),
        sa.Column('display_name', sa.String(length=200), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='player'),
        sa.PrimaryKeyConstraint('id', name='pk_participants'),
        sa.UniqueConstraint('login', name='uq_participants_login'),
    )

    op.create_table(
        'predictions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('match_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('home_pred', sa.Integer(), nullable=True),
        sa.Column('away_pred', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_predictions'),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], name='fk_predictions_match_id_matches', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['participants.id'], name='fk_predictions_user_id_participants', ondelete='CASCADE'),
        sa.UniqueConstraint('match_id', 'user_id', name='uq_predictions_match_user'),
        sa.CheckConstraint('(home_pred IS NULL) = (away_pred IS NULL)', name='ck_predictions_preds_paired'),
    )
    op.create_index('ix_predictions_user_id', 'predictions', ['user_id'])

    op.create_table(
        'points_ledger',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('match_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False, server_default='prediction'),

        # Itemized components; points is their sum
        sa.Column('points', POINTS, nullable=False),
        _points_column('points_h1'),
        _points_column('points_h2'),
        _points_column('points_outcome'),
        _points_column('points_outcome_base'),
        _points_column('points_outcome_bonus'),
        _points_column('points_diff'),
        _points_column('points_diff_base'),
        _points_column('points_diff_bonus'),
        _points_column('points_bonus'),

        # Receipt context captured at scoring time
        _points_column('outcome_mult', '1'),
        _points_column('diff_mult', '1'),
        sa.Column('outcome_guessed', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('diff_guessed', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('total_preds', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('pred_home', sa.Integer(), nullable=False),
        sa.Column('pred_away', sa.Integer(), nullable=False),
        sa.Column('result_home', sa.Integer(), nullable=False),
        sa.Column('result_away', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),

        sa.PrimaryKeyConstraint('id', name='pk_points_ledger'),
        sa.ForeignKeyConstraint(['user_id'], ['participants.id'], name='fk_points_ledger_user_id_participants', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], name='fk_points_ledger_match_id_matches', ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'match_id', 'reason', name='uq_points_ledger_user_match_reason'),
    )
    op.create_index('ix_points_ledger_match_id', 'points_ledger', ['match_id'])


def downgrade() -> None:
    op.drop_index('ix_points_ledger_match_id', table_name='points_ledger')
    op.drop_table('points_ledger')
    op.drop_index('ix_predictions_user_id', table_name='predictions')
    op.drop_table('predictions')
    op.drop_table('participants')
    op.drop_index('idx_matches_stage_kickoff', table_name='matches')
    op.drop_index('ix_matches_tour_id', table_name='matches')
    op.drop_index('ix_matches_stage_id', table_name='matches')
    op.drop_table('matches')
    op.drop_index('ix_tours_stage_id', table_name='tours')
    op.drop_table('tours')
    op.drop_table('current_stage')
    op.drop_table('stages')
    op.drop_table('teams')
