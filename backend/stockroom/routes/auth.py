# Overview: Flask API routes for auth and user management; parses input and returns JSON responses.

# backend/stockroom/routes/auth.py
"""
Authentication API routes

- Login returns a bearer token; it must be sent as "Authorization: Bearer <token>"
- Self-registration does not exist; admins create accounts
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_admin, require_auth
from ..ledger.errors import LedgerError
from ..services import auth_service, session_service
from ..validation import (
    LOGIN_POLICY,
    USER_CREATE_POLICY,
    USER_UPDATE_POLICY,
    validate_payload,
)
from . import error_response

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """Authenticate and create a session token."""
    try:
        data = validate_payload(request.get_json(silent=True), LOGIN_POLICY)
    except LedgerError as e:
        return error_response(e)

    user = auth_service.authenticate(data["username"], data["password"])
    if not user:
        return {"error": "Invalid credentials"}, 401

    session, token = session_service.create_session(user)
    current_app.logger.info("User %s logged in", user.username)
    return {
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
        "user": user.to_dict(),
    }, 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    return {"message": "Logged out"}, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return {"user": g.current_user.to_dict()}, 200


@auth_bp.get("/users")
@require_auth
@require_admin
def list_users_route():
    return {"users": [u.to_dict() for u in auth_service.list_users()]}, 200


@auth_bp.post("/users")
@require_auth
@require_admin
def create_user_route():
    try:
        data = validate_payload(request.get_json(silent=True), USER_CREATE_POLICY)
        user = auth_service.create_user(
            username=data["username"],
            name=data["name"],
            password=data["password"],
            role=data.get("role") or "user",
        )
    except LedgerError as e:
        return error_response(e)

    return {"user": user.to_dict()}, 201


@auth_bp.put("/users/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    try:
        data = validate_payload(request.get_json(silent=True), USER_UPDATE_POLICY)
        user = auth_service.update_user(user_id, **data)
    except LedgerError as e:
        return error_response(e)

    return {"user": user.to_dict()}, 200


@auth_bp.delete("/users/<int:user_id>")
@require_auth
@require_admin
def delete_user_route(user_id: int):
    try:
        auth_service.delete_user(user_id, acting_user_id=g.current_user.id)
    except LedgerError as e:
        return error_response(e)

    return {"message": "User deleted"}, 200
