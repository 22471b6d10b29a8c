"""Initial tournament schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("university", sa.String(length=200), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.CheckConstraint("role IN ('fan', 'player', 'admin')", name="ck_profiles_role"),
        sa.CheckConstraint(
            "status IN ('pending', 'active', 'disabled', 'rejected')",
            name="ck_profiles_status",
        ),
    )
    op.create_index("idx_profiles_role_status", "profiles", ["role", "status"], unique=False)

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("university", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "team_groups",
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("team_id"),
    )
    op.create_index("idx_team_groups_group", "team_groups", ["group_id"], unique=False)

    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=True),
        sa.Column("university", sa.String(length=200), nullable=True),
        sa.Column("position", sa.String(length=50), nullable=True),
        sa.Column("linked_profile_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["linked_profile_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("linked_profile_id"),
    )

    op.create_table(
        "team_players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("player_id"),
    )
    op.create_index("idx_team_players_team", "team_players", ["team_id"], unique=False)

    op.create_table(
        "player_stats",
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("matches_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("goals", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("assists", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("motm", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("player_id"),
        sa.CheckConstraint(
            "matches_played >= 0 AND goals >= 0 AND assists >= 0 AND motm >= 0",
            name="ck_player_stats_non_negative",
        ),
    )

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("stage", sa.String(length=20), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("home_team_id", sa.Integer(), nullable=False),
        sa.Column("away_team_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("home_score", sa.Integer(), nullable=True),
        sa.Column("away_score", sa.Integer(), nullable=True),
        sa.Column("knockout_round", sa.String(length=50), nullable=True),
        sa.Column("knockout_order", sa.Integer(), nullable=True),
        sa.Column("knockout_label", sa.String(length=200), nullable=True),
        sa.Column("motm_player_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["home_team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["away_team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["motm_player_id"], ["players.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("home_team_id <> away_team_id", name="ck_matches_distinct_teams"),
        sa.CheckConstraint("stage IN ('group', 'knockout')", name="ck_matches_stage"),
        sa.CheckConstraint("status IN ('scheduled', 'finished')", name="ck_matches_status"),
        sa.CheckConstraint(
            "(home_score IS NULL OR home_score >= 0) AND (away_score IS NULL OR away_score >= 0)",
            name="ck_matches_scores_non_negative",
        ),
    )
    op.create_index("idx_matches_stage_status", "matches", ["stage", "status"], unique=False)
    op.create_index("idx_matches_group", "matches", ["group_id"], unique=False)
    op.create_index("idx_matches_start_time", "matches", ["start_time"], unique=False)

    op.create_table(
        "match_goals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("scoring_team_id", sa.Integer(), nullable=False),
        sa.Column("scorer_player_id", sa.Integer(), nullable=False),
        sa.Column("assist_player_id", sa.Integer(), nullable=True),
        sa.Column("minute", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["scoring_team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["scorer_player_id"], ["players.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["assist_player_id"], ["players.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("minute IS NULL OR minute >= 0", name="ck_match_goals_minute"),
        sa.CheckConstraint(
            "assist_player_id IS NULL OR assist_player_id <> scorer_player_id",
            name="ck_match_goals_assist_not_scorer",
        ),
    )
    op.create_index("idx_match_goals_match", "match_goals", ["match_id"], unique=False)

    op.create_table(
        "predictions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("home_pred", sa.Integer(), nullable=False),
        sa.Column("away_pred", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", "user_id", name="uq_predictions_match_user"),
        sa.CheckConstraint("home_pred >= 0 AND away_pred >= 0", name="ck_predictions_non_negative"),
    )
    op.create_index("idx_predictions_user", "predictions", ["user_id"], unique=False)

    op.create_table(
        "news_posts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("media_type", sa.String(length=10), nullable=False, server_default="none"),
        sa.Column("media_url", sa.String(length=500), nullable=True),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["author_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "media_type IN ('none', 'image', 'video')", name="ck_news_posts_media_type"
        ),
    )
    op.create_index("idx_news_posts_created_at", "news_posts", ["created_at"], unique=False)

    op.create_table(
        "news_reads",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("news_reads")
    op.drop_index("idx_news_posts_created_at", table_name="news_posts")
    op.drop_table("news_posts")
    op.drop_index("idx_predictions_user", table_name="predictions")
    op.drop_table("predictions")
    op.drop_index("idx_match_goals_match", table_name="match_goals")
    op.drop_table("match_goals")
    op.drop_index("idx_matches_start_time", table_name="matches")
    op.drop_index("idx_matches_group", table_name="matches")
    op.drop_index("idx_matches_stage_status", table_name="matches")
    op.drop_table("matches")
    op.drop_table("player_stats")
    op.drop_index("idx_team_players_team", table_name="team_players")
    op.drop_table("team_players")
    op.drop_table("players")
    op.drop_index("idx_team_groups_group", table_name="team_groups")
    op.drop_table("team_groups")
    op.drop_table("groups")
    op.drop_table("teams")
    op.drop_index("idx_profiles_role_status", table_name="profiles")
    op.drop_table("profiles")
