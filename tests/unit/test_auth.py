"""Unit tests for the identity gate."""

import pytest
from itsdangerous import URLSafeTimedSerializer

from campustad.db.models import Profile
from campustad.web.auth import (
    TOKEN_SALT,
    authenticate_profile,
    create_or_update_admin,
    hash_password,
    is_allowed,
    issue_token,
    register_profile,
    resolve_token,
    verify_password,
)


def test_hash_and_verify_password():
    hashed = hash_password("secret123")
    assert hashed.startswith("pbkdf2_sha256$")
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret123", "not-a-hash")


def test_empty_password_rejected():
    with pytest.raises(ValueError):
        hash_password("")


@pytest.mark.parametrize(
    "role,status,capability,expected",
    [
        ("admin", "active", "admin", True),
        ("admin", "disabled", "admin", False),
        ("fan", "active", "admin", False),
        ("fan", "active", "predict", True),
        ("fan", "disabled", "predict", False),
        ("player", "active", "predict", False),
        ("player", "pending", "view", True),
        ("player", "rejected", "view", False),
        (None, None, "view", False),
    ],
)
def test_is_allowed(role, status, capability, expected):
    assert is_allowed(role, status, capability) is expected


def test_unknown_capability_raises():
    with pytest.raises(KeyError):
        is_allowed("admin", "active", "fly")


def test_register_fan_is_active_and_player_is_pending(db_session):
    fan = register_profile(db_session, " Fan@Campus.test ", "pw1", "Fan")
    player = register_profile(db_session, "p@campus.test", "pw2", "Player", role="player")

    assert fan.email == "fan@campus.test"
    assert fan.status == "active"
    assert player.status == "pending"


def test_register_rejects_admin_role_and_duplicates(db_session):
    with pytest.raises(ValueError):
        register_profile(db_session, "x@campus.test", "pw", "X", role="admin")

    register_profile(db_session, "dup@campus.test", "pw", "Dup")
    with pytest.raises(ValueError, match="already exists"):
        register_profile(db_session, "DUP@campus.test", "pw", "Dup again")


def test_create_or_update_admin(db_session):
    created = create_or_update_admin(db_session, "Boss@campus.test", "onepass")
    db_session.commit()
    assert created.email == "boss@campus.test"
    assert created.role == "admin"

    updated = create_or_update_admin(db_session, "boss@campus.test", "twopass", is_active=False)
    db_session.commit()
    assert updated.id == created.id
    assert updated.status == "disabled"
    assert verify_password("twopass", updated.password_hash)


def test_authenticate_profile_success_and_failure(db_session):
    register_profile(db_session, "kim@campus.test", "strongpass", "Kim")
    db_session.commit()

    ok = authenticate_profile(db_session, "KIM@campus.test", "strongpass")
    assert ok is not None
    assert ok.name == "Kim"

    assert authenticate_profile(db_session, "kim@campus.test", "wrong") is None
    assert authenticate_profile(db_session, "nobody@campus.test", "strongpass") is None

    profile = db_session.query(Profile).filter(Profile.email == "kim@campus.test").first()
    profile.status = "disabled"
    db_session.commit()
    assert authenticate_profile(db_session, "kim@campus.test", "strongpass") is None


def test_token_round_trip_and_tampering(db_session):
    profile = register_profile(db_session, "t@campus.test", "pw", "Tok")
    db_session.commit()

    token = issue_token(profile)
    assert resolve_token(db_session, token).id == profile.id
    assert resolve_token(db_session, token + "x") is None
    assert resolve_token(db_session, None) is None

    forged = URLSafeTimedSerializer("some-other-key", salt=TOKEN_SALT).dumps({"pid": profile.id})
    assert resolve_token(db_session, forged) is None
