# Overview: Service-layer operations for session tokens; issue, validate and revoke.

"""
Session Token Management

Tokens are cryptographically secure, hashed in database, and time-limited.

- Random 32-byte tokens, sent to the client once in plaintext
- SHA-256 hash stored (tokens are high entropy, so no bcrypt needed)
- Absolute expiry of SESSION_TTL_HOURS from creation
- Revoked on logout, or on first use after the user is deactivated
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

from flask import current_app, has_app_context

from ..extensions import db
from ..models import SessionToken, User
from stockroom.time_utils import utcnow

DEFAULT_TTL_HOURS = 24


def _session_ttl() -> timedelta:
    hours = DEFAULT_TTL_HOURS
    if has_app_context():
        hours = current_app.config.get("SESSION_TTL_HOURS", DEFAULT_TTL_HOURS)
    return timedelta(hours=hours)


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(user: User) -> tuple[SessionToken, str]:
    """
    Create a new session for an active user.

    Returns (session_record, plaintext_token).
    """
    if not user.is_active:
        raise ValueError("User account is disabled")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _session_ttl(),
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> User | None:
    """
    Return the session's user, or None if the token is unknown, expired,
    revoked, or belongs to a deactivated user.
    """
    now = utcnow()
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session or session.expires_at < now:
        return None

    user = session.user
    if not user or not user.is_active:
        session.is_revoked = True
        session.revoked_at = now
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return user


def revoke_session(token: str) -> bool:
    """Revoke one session. False if no active session matches the token."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int) -> int:
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()
    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
    db.session.commit()
    return len(sessions)
