"""
Database module for Campustad.

Provides SQLAlchemy ORM models and session management.

Usage:
    from campustad.db import get_session, Team, Match

    with get_session() as session:
        teams = session.query(Team).all()
"""

from campustad.db.models import (
    Base,
    GoalEvent,
    Group,
    Match,
    NewsPost,
    NewsRead,
    Player,
    PlayerStats,
    Prediction,
    Profile,
    Team,
    TeamGroupAssignment,
    TeamPlayerAssignment,
)
from campustad.db.session import get_session, get_engine, SessionLocal

__all__ = [
    # Base
    "Base",
    # Models
    "Profile",
    "Team",
    "Group",
    "TeamGroupAssignment",
    "Player",
    "TeamPlayerAssignment",
    "PlayerStats",
    "Match",
    "GoalEvent",
    "Prediction",
    "NewsPost",
    "NewsRead",
    # Session
    "get_session",
    "get_engine",
    "SessionLocal",
]
