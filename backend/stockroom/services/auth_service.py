# Overview: Service-layer operations for auth; employee accounts and password checks.

"""
Authentication Service

Every stock mutation is attributed to the employee that made it, so every
request that writes must carry an authenticated user.

SECURITY NOTES:
- Passwords hashed with bcrypt (BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special character
- Session tokens managed separately (see session_service.py)
- Deactivated users cannot log in and lose their open sessions
"""

from __future__ import annotations

import logging
import re

import bcrypt
from flask import current_app, has_app_context

from ..extensions import db
from ..ledger.errors import ConflictError, NotFoundError, ValidationError
from ..ledger.records import Actor
from ..models import ROLES, ROLE_USER, User
from . import session_service
from stockroom.time_utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 12


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _bcrypt_rounds() -> int:
    if has_app_context():
        return current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS)
    return DEFAULT_BCRYPT_ROUNDS


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=_bcrypt_rounds()))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in storage
        return False


def _validate_role(role: str) -> str:
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return role


def _validate_text(value, field: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users() -> list[User]:
    return User.query.order_by(User.username).all()


def create_user(username: str, name: str, password: str, role: str = ROLE_USER) -> User:
    """
    Create a new employee account.

    Raises ValidationError for bad input or a weak password and
    ConflictError when the username is already taken.
    """
    username = _validate_text(username, "username", 64)
    name = _validate_text(name, "name", 255)
    role = _validate_role(role)

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        name=name,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()

    logger.info("Created user %s (%s) with role %s", user.id, user.username, user.role)
    return user


def update_user(
    user_id: int,
    *,
    name: str | None = None,
    password: str | None = None,
    role: str | None = None,
    is_active: bool | None = None,
) -> User:
    """
    Update the given fields only.

    Changing the password or deactivating the account revokes all of the
    user's sessions.
    """
    user = get_user(user_id)

    # Validate everything before touching the row
    changes = {}
    if name is not None:
        changes["name"] = _validate_text(name, "name", 255)
    if role is not None:
        changes["role"] = _validate_role(role)
    if password is not None:
        changes["password_hash"] = hash_password(password)
    if is_active is not None:
        if not isinstance(is_active, bool):
            raise ValidationError("is_active must be a boolean")
        changes["is_active"] = is_active

    for key, value in changes.items():
        setattr(user, key, value)
    revoke = password is not None or is_active is False

    db.session.commit()
    if revoke:
        session_service.revoke_all_user_sessions(user.id)
    return user


def delete_user(user_id: int, *, acting_user_id: int | None = None) -> None:
    """
    Delete an account. Its transactions keep the recorded employee name.
    """
    if acting_user_id is not None and user_id == acting_user_id:
        raise ValidationError("You cannot delete your own account")

    user = get_user(user_id)
    db.session.delete(user)
    db.session.commit()
    logger.info("Deleted user %s", user_id)


def authenticate(username: str, password: str) -> User | None:
    """
    Returns User if credentials are valid and the account is active, None otherwise.
    Updates last_login_at on success.
    """
    if not isinstance(username, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter(
        User.username == username.strip(),
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def user_names() -> dict[int, str]:
    """id -> display name for every existing user."""
    return {user_id: name for user_id, name in db.session.query(User.id, User.name).all()}


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, name=user.name)
