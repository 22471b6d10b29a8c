"""
SQLAlchemy ORM models for Campustad.

This module defines all database tables and their relationships.
The schema separates roster entries (players) from login accounts
(profiles): admins create roster players whether or not the person
ever signs in, and a profile can later be linked to one roster entry.

Key design decisions:
- One group per team (team_groups keyed by team_id)
- One team per player (team_players.player_id is unique)
- Player stats are admin-editable counters, not derived on read
- Goal events cascade with their match (delete is one unit)
- One immutable prediction per fan per match

Tables:
- profiles: Login accounts with role/status (drives access control)
- teams, groups, team_groups: Tournament structure
- players, team_players, player_stats: Roster and counters
- matches, match_goals: Fixtures, results and goal events
- predictions: Fan score guesses
- news_posts, news_reads: Admin news feed and per-viewer read marker
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# =============================================================================
# Constants
# =============================================================================

PROFILE_ROLES: tuple[str, ...] = ("fan", "player", "admin")
PROFILE_STATUSES: tuple[str, ...] = ("pending", "active", "disabled", "rejected")
MEDIA_TYPES: tuple[str, ...] = ("none", "image", "video")

# Position buckets for roster sorting: (label, rank, substrings)
POSITION_BUCKETS: tuple[tuple[str, int, tuple[str, ...]], ...] = (
    ("GK", 1, ("gk", "goal")),
    ("DEF", 2, ("def",)),
    ("MID", 3, ("mid",)),
    ("FWD", 4, ("for", "att", "str")),
)
OTHER_POSITION_RANK = 9


def position_rank(position: Optional[str]) -> int:
    """Sort rank for a free-text position (GK first, unknown last)."""
    p = (position or "").strip().lower()
    for _label, rank, needles in POSITION_BUCKETS:
        if any(n in p for n in needles):
            return rank
    return OTHER_POSITION_RANK


def position_label(position: Optional[str]) -> str:
    """Short label (GK/DEF/MID/FWD) or the raw value upper-cased."""
    p = (position or "").strip().lower()
    for label, _rank, needles in POSITION_BUCKETS:
        if any(n in p for n in needles):
            return label
    return position.strip().upper() if position and position.strip() else "-"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Identity Models
# =============================================================================

class Profile(Base):
    """
    Login account.

    role/status drive every access decision:
    - fan: active on registration, may submit predictions
    - player: pending until an admin approves
    - admin: full write access while active
    """

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    university: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="fan")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    linked_player: Mapped[Optional["Player"]] = relationship(
        back_populates="linked_profile", uselist=False
    )

    __table_args__ = (
        Index("idx_profiles_role_status", "role", "status"),
        CheckConstraint("role IN ('fan', 'player', 'admin')", name="ck_profiles_role"),
        CheckConstraint(
            "status IN ('pending', 'active', 'disabled', 'rejected')",
            name="ck_profiles_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Profile(email='{self.email}', role='{self.role}', status='{self.status}')>"


# =============================================================================
# Tournament Structure
# =============================================================================

class Team(Base):
    """A college team entered in the tournament."""

    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    university: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    group_assignment: Mapped[Optional["TeamGroupAssignment"]] = relationship(
        back_populates="team", cascade="all, delete-orphan", uselist=False
    )
    roster: Mapped[list["TeamPlayerAssignment"]] = relationship(
        back_populates="team", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, name='{self.name}')>"


class Group(Base):
    """A group-stage pool, e.g. "Group A"."""

    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    assignments: Mapped[list["TeamGroupAssignment"]] = relationship(
        back_populates="group", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, name='{self.name}')>"


class TeamGroupAssignment(Base):
    """Team -> group link. Keyed by team, so a team sits in at most one group."""

    __tablename__ = "team_groups"

    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True
    )
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"), nullable=False
    )

    team: Mapped["Team"] = relationship(back_populates="group_assignment")
    group: Mapped["Group"] = relationship(back_populates="assignments")

    __table_args__ = (
        Index("idx_team_groups_group", "group_id"),
    )


# =============================================================================
# Roster Models
# =============================================================================

class Player(Base):
    """
    Roster entry.

    Independent of login: admins create players for everyone on a team
    sheet. At most one profile may be linked to a roster player.
    """

    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    university: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    position: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    linked_profile_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    linked_profile: Mapped[Optional["Profile"]] = relationship(back_populates="linked_player")
    team_assignment: Mapped[Optional["TeamPlayerAssignment"]] = relationship(
        back_populates="player", cascade="all, delete-orphan", uselist=False
    )
    stats: Mapped[Optional["PlayerStats"]] = relationship(
        back_populates="player", cascade="all, delete-orphan", uselist=False
    )

    @property
    def name(self) -> str:
        """Display name when set, otherwise the full name."""
        if self.display_name and self.display_name.strip():
            return self.display_name.strip()
        return self.full_name

    @property
    def position_label(self) -> str:
        return position_label(self.position)

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name='{self.name}')>"


class TeamPlayerAssignment(Base):
    """Team <-> player roster link. A player belongs to at most one team."""

    __tablename__ = "team_players"

    id: Mapped[int] = mapped_column(primary_key=True)
    team_id: Mapped[int] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    team: Mapped["Team"] = relationship(back_populates="roster")
    player: Mapped["Player"] = relationship(back_populates="team_assignment")

    __table_args__ = (
        Index("idx_team_players_team", "team_id"),
    )


class PlayerStats(Base):
    """Cumulative per-player counters, edited by admins."""

    __tablename__ = "player_stats"

    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"), primary_key=True
    )
    matches_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goals: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    assists: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    motm: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    player: Mapped["Player"] = relationship(back_populates="stats")

    __table_args__ = (
        CheckConstraint(
            "matches_played >= 0 AND goals >= 0 AND assists >= 0 AND motm >= 0",
            name="ck_player_stats_non_negative",
        ),
    )

    def as_dict(self) -> dict:
        return {
            "matches_played": self.matches_played,
            "goals": self.goals,
            "assists": self.assists,
            "motm": self.motm,
        }


# =============================================================================
# Match Models
# =============================================================================

class Match(Base):
    """
    A fixture, group-stage or knockout.

    Lifecycle: scheduled -> finished. Scores are editable at any time
    (live updates); only finished matches count towards standings.

    Knockout-only fields:
    - knockout_round: code (R16/QF/SF/F/3P) or free text
    - knockout_order: positive tie-break inside a round
    - knockout_label: free text shown on the bracket card
    """

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(primary_key=True)
    stage: Mapped[str] = mapped_column(String(20), nullable=False, default="group")
    group_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"), nullable=True
    )
    home_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    away_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduled")
    home_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    away_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)

    knockout_round: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    knockout_order: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    knockout_label: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    motm_player_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("players.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    home_team: Mapped["Team"] = relationship(foreign_keys=[home_team_id])
    away_team: Mapped["Team"] = relationship(foreign_keys=[away_team_id])
    motm_player: Mapped[Optional["Player"]] = relationship(foreign_keys=[motm_player_id])
    goals: Mapped[list["GoalEvent"]] = relationship(
        back_populates="match",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_matches_stage_status", "stage", "status"),
        Index("idx_matches_group", "group_id"),
        Index("idx_matches_start_time", "start_time"),
        CheckConstraint("home_team_id <> away_team_id", name="ck_matches_distinct_teams"),
        CheckConstraint("stage IN ('group', 'knockout')", name="ck_matches_stage"),
        CheckConstraint("status IN ('scheduled', 'finished')", name="ck_matches_status"),
        CheckConstraint(
            "(home_score IS NULL OR home_score >= 0) AND (away_score IS NULL OR away_score >= 0)",
            name="ck_matches_scores_non_negative",
        ),
    )

    @property
    def is_finished(self) -> bool:
        return self.status == "finished"

    @property
    def has_result(self) -> bool:
        """Finished with both scores recorded (counts towards standings)."""
        return self.is_finished and self.home_score is not None and self.away_score is not None

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def __repr__(self) -> str:
        return (
            f"<Match(id={self.id}, stage='{self.stage}', "
            f"{self.home_team_id} {self.home_score}-{self.away_score} {self.away_team_id})>"
        )


class GoalEvent(Base):
    """A goal scored in a match, with optional assist and minute."""

    __tablename__ = "match_goals"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"), nullable=False
    )
    scoring_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    scorer_player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="RESTRICT"), nullable=False
    )
    assist_player_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("players.id", ondelete="SET NULL"), nullable=True
    )
    minute: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    match: Mapped["Match"] = relationship(back_populates="goals")
    scorer: Mapped["Player"] = relationship(foreign_keys=[scorer_player_id])
    assister: Mapped[Optional["Player"]] = relationship(foreign_keys=[assist_player_id])

    __table_args__ = (
        Index("idx_match_goals_match", "match_id"),
        CheckConstraint("minute IS NULL OR minute >= 0", name="ck_match_goals_minute"),
        CheckConstraint(
            "assist_player_id IS NULL OR assist_player_id <> scorer_player_id",
            name="ck_match_goals_assist_not_scorer",
        ),
    )

    def __repr__(self) -> str:
        return f"<GoalEvent(match={self.match_id}, scorer={self.scorer_player_id}, minute={self.minute})>"


# =============================================================================
# Fan Engagement Models
# =============================================================================

class Prediction(Base):
    """A fan's one-time score guess for a match. Never updated."""

    __tablename__ = "predictions"

    id: Mapped[int] = mapped_column(primary_key=True)
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    home_pred: Mapped[int] = mapped_column(Integer, nullable=False)
    away_pred: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    match: Mapped["Match"] = relationship()
    user: Mapped["Profile"] = relationship()

    __table_args__ = (
        UniqueConstraint("match_id", "user_id", name="uq_predictions_match_user"),
        CheckConstraint("home_pred >= 0 AND away_pred >= 0", name="ck_predictions_non_negative"),
        Index("idx_predictions_user", "user_id"),
    )


class NewsPost(Base):
    """Admin-authored update with optional single image or video."""

    __tablename__ = "news_posts"

    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    media_type: Mapped[str] = mapped_column(String(10), nullable=False, default="none")
    media_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    author_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        Index("idx_news_posts_created_at", "created_at"),
        CheckConstraint("media_type IN ('none', 'image', 'video')", name="ck_news_posts_media_type"),
    )

    def __repr__(self) -> str:
        return f"<NewsPost(id={self.id}, title='{self.title}')>"


class NewsRead(Base):
    """Last time a viewer opened the news feed (drives the unread badge)."""

    __tablename__ = "news_reads"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
