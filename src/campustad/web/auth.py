"""Identity gate: password auth, bearer tokens and role/status capabilities."""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session

from campustad.config import settings
from campustad.db.models import Profile
from campustad.db.session import get_db

logger = logging.getLogger(__name__)

PBKDF2_ALGORITHM = "sha256"
PBKDF2_ITERATIONS = 390_000
SALT_SIZE = 16
TOKEN_SALT = "campustad-api-token"

# Who may do what. Evaluated once per request, never per page.
CAPABILITIES: dict[str, Callable[[str, str], bool]] = {
    "admin": lambda role, status: role == "admin" and status == "active",
    "predict": lambda role, status: role == "fan" and status == "active",
    "view": lambda role, status: status not in ("disabled", "rejected"),
}

SELF_REGISTER_ROLES = ("fan", "player")


def hash_password(password: str) -> str:
    """Hash a plaintext password using PBKDF2-HMAC-SHA256."""
    if not password:
        raise ValueError("Password cannot be empty")

    salt = os.urandom(SALT_SIZE).hex()
    derived = hashlib.pbkdf2_hmac(
        PBKDF2_ALGORITHM,
        password.encode("utf-8"),
        bytes.fromhex(salt),
        PBKDF2_ITERATIONS,
    ).hex()
    return f"pbkdf2_{PBKDF2_ALGORITHM}${PBKDF2_ITERATIONS}${salt}${derived}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify a plaintext password against a stored PBKDF2 hash."""
    try:
        scheme, iter_raw, salt_hex, expected_hex = stored_hash.split("$", 3)
        if scheme != f"pbkdf2_{PBKDF2_ALGORITHM}":
            return False
        iterations = int(iter_raw)
        actual_hex = hashlib.pbkdf2_hmac(
            PBKDF2_ALGORITHM,
            password.encode("utf-8"),
            bytes.fromhex(salt_hex),
            iterations,
        ).hex()
        return hmac.compare_digest(actual_hex, expected_hex)
    except (ValueError, TypeError):
        return False


def is_allowed(role: Optional[str], status: Optional[str], capability: str) -> bool:
    """Single {role, status} -> allowed check used by every guarded path."""
    check = CAPABILITIES.get(capability)
    if check is None:
        raise KeyError(f"Unknown capability: {capability}")
    if role is None or status is None:
        return False
    return check(role, status)


def authenticate_profile(
    db: Session,
    email: str,
    password: str,
) -> Optional[Profile]:
    """Return the profile when credentials are valid and the account is usable."""
    normalized = email.strip().lower()
    profile = db.query(Profile).filter(Profile.email == normalized).first()
    if not profile or not is_allowed(profile.role, profile.status, "view"):
        return None
    if not verify_password(password, profile.password_hash):
        return None
    return profile


def register_profile(
    db: Session,
    email: str,
    password: str,
    name: str,
    role: str = "fan",
    phone: Optional[str] = None,
    university: Optional[str] = None,
) -> Profile:
    """
    Self-service sign-up.

    Fans are active immediately; players wait in "pending" until an admin
    approves them. Admin accounts are only created from the CLI.
    """
    normalized = email.strip().lower()
    if not normalized or "@" not in normalized:
        raise ValueError("A valid email is required")
    if not name or not name.strip():
        raise ValueError("Name is required")
    if role not in SELF_REGISTER_ROLES:
        raise ValueError("Role must be 'fan' or 'player'")
    if db.query(Profile.id).filter(Profile.email == normalized).first():
        raise ValueError("An account with this email already exists")

    profile = Profile(
        email=normalized,
        password_hash=hash_password(password),
        name=name.strip(),
        phone=(phone or "").strip() or None,
        university=(university or "").strip() or None,
        role=role,
        status="pending" if role == "player" else "active",
    )
    db.add(profile)
    db.flush()
    logger.info("Registered %s profile id=%s", role, profile.id)
    return profile


def create_or_update_admin(
    db: Session,
    email: str,
    password: str,
    name: str = "Admin",
    is_active: bool = True,
) -> Profile:
    """Create a new admin profile, or promote/update an existing one by email."""
    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("Email cannot be empty")

    profile = db.query(Profile).filter(Profile.email == normalized).first()
    password_hash = hash_password(password)
    status = "active" if is_active else "disabled"
    if profile:
        profile.password_hash = password_hash
        profile.role = "admin"
        profile.status = status
    else:
        profile = Profile(
            email=normalized,
            password_hash=password_hash,
            name=name,
            role="admin",
            status=status,
        )
        db.add(profile)
    db.flush()
    return profile


def mark_login(db: Session, profile: Profile) -> None:
    """Record login timestamp for auditability."""
    profile.last_login_at = datetime.utcnow()
    db.flush()


# =============================================================================
# Bearer tokens
# =============================================================================

def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.secret_key, salt=TOKEN_SALT)


def issue_token(profile: Profile) -> str:
    """Signed, timestamped token carrying the profile id."""
    return _serializer().dumps({"pid": profile.id})


def resolve_token(db: Session, token: Optional[str]) -> Optional[Profile]:
    """Profile for a valid, unexpired token; None otherwise."""
    if not token:
        return None
    try:
        data = _serializer().loads(token, max_age=settings.token_max_age_seconds)
    except SignatureExpired:
        logger.info("Rejected expired bearer token")
        return None
    except BadSignature:
        logger.warning("Rejected bearer token with bad signature")
        return None
    profile_id = data.get("pid") if isinstance(data, dict) else None
    if profile_id is None:
        return None
    return db.get(Profile, profile_id)


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


# =============================================================================
# FastAPI dependencies
# =============================================================================

def optional_profile(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[Profile]:
    """Caller's profile when a valid bearer token is present."""
    return resolve_token(db, bearer_token(request))


def require_capability(capability: str):
    """
    Dependency factory guarding an endpoint with a capability.

    Usage:
        @app.post("/api/admin/action")
        async def admin_action(profile: Profile = Depends(require_capability("admin"))):
            ...
    """
    if capability not in CAPABILITIES:
        raise KeyError(f"Unknown capability: {capability}")

    def check(
        request: Request,
        db: Session = Depends(get_db),
    ) -> Profile:
        token = bearer_token(request)
        if token is None:
            raise HTTPException(status_code=403, detail="Missing auth token")
        profile = resolve_token(db, token)
        if profile is None:
            raise HTTPException(status_code=403, detail="Invalid session")
        if not is_allowed(profile.role, profile.status, capability):
            logger.warning(
                "Denied %s capability to profile id=%s (role=%s, status=%s)",
                capability, profile.id, profile.role, profile.status,
            )
            detail = "Not admin" if capability == "admin" else "Only fans can submit predictions"
            if capability == "view":
                detail = "Account is not active"
            raise HTTPException(status_code=403, detail=detail)
        return profile

    return check
