"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

import os

# Point the app at SQLite before campustad builds its engine.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campustad.db.models import Base
from campustad.db.session import enable_sqlite_foreign_keys
from campustad.services import registry
from campustad.web.auth import create_or_update_admin, issue_token, register_profile


@pytest.fixture
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory with a single shared connection, so the app
    and the test see the same data. Foreign keys are enforced so
    ON DELETE rules behave as on PostgreSQL.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    """Create a database session for a test."""
    Session = sessionmaker(bind=test_engine, autoflush=False)
    session = Session()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def client(db_session):
    """FastAPI TestClient whose requests share the test's session."""
    from fastapi.testclient import TestClient

    from campustad.db.session import get_db
    from campustad.web.main import app

    def override_get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin(db_session):
    profile = create_or_update_admin(db_session, "admin@campus.test", "adminpass", name="Admin")
    db_session.commit()
    return profile


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {issue_token(admin)}"}


@pytest.fixture
def fan(db_session):
    profile = register_profile(db_session, "fan@campus.test", "fanpass", "Fan One")
    db_session.commit()
    return profile


@pytest.fixture
def fan_headers(fan):
    return {"Authorization": f"Bearer {issue_token(fan)}"}


@pytest.fixture
def tournament(db_session):
    """
    Two groups of two teams, one player per team.

    Returns a dict of the created rows keyed by short names.
    """
    group_a = registry.create_group(db_session, "Group A")
    group_b = registry.create_group(db_session, "Group B")
    teams = {}
    for name, group in (
        ("Engineering", group_a),
        ("Medicine", group_a),
        ("Law", group_b),
        ("Arts", group_b),
    ):
        team = registry.create_team(db_session, name)
        registry.assign_team_group(db_session, team.id, group.id)
        teams[name] = team

    players = {}
    for name, team in (
        ("Sam Striker", teams["Engineering"]),
        ("Mo Midfield", teams["Engineering"]),
        ("Kai Keeper", teams["Medicine"]),
        ("Lee Winger", teams["Law"]),
    ):
        player = registry.create_player_with_stats(db_session, name)
        registry.add_team_player(db_session, team.id, player.id)
        players[name] = player

    db_session.commit()
    return {"groups": {"A": group_a, "B": group_b}, "teams": teams, "players": players}
