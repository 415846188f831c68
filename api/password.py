"""
Password management blueprint:
- POST /auth/forgot-password
- POST /auth/reset-password
- POST /auth/change-password

Reset tokens are opaque random strings stored on the user row with a one hour
expiry. A reset revokes every refresh token of the user; a change keeps the
session that made the request and revokes the others.
"""
from __future__ import annotations

import logging

from flask import Blueprint, current_app, g, jsonify, request

from api.errors import APIError, InvalidArgument
from models import storage, token_ledger
from models.base_model import utcnow
from models.schemas.user import ChangePasswordSchema, ForgotPasswordSchema, ResetPasswordSchema
from models.user import User
from utils.cookies import REFRESH_COOKIE
from utils.decorators import jwt_required
from utils.security import generate_reset_token, hash_password, verify_password
from utils.tokens import get_token_issuer

logger = logging.getLogger(__name__)

bp = Blueprint("password", __name__, url_prefix="/auth")

forgot_password_schema = ForgotPasswordSchema()
reset_password_schema = ResetPasswordSchema()
change_password_schema = ChangePasswordSchema()

FORGOT_PASSWORD_MESSAGE = "If an account with this email exists, a password reset link has been sent."


def deliver_reset_link(user: User, token: str) -> None:
    # No mail transport here; the link only ever goes to the debug log
    logger.info("Password reset requested for user %s", user.id)
    logger.debug("Reset link for user %s: %s", user.id, current_app.config["PASSWORD_RESET_URL"].format(token=token))


def _current_session_jti(user: User) -> str | None:
    """JTI of the refresh cookie on this request, if it belongs to user."""
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        return None
    try:
        payload = get_token_issuer().validate_refresh_token(token)
    except APIError:
        return None
    if payload["sub"] != user.id:
        return None
    return payload["jti"]


@bp.post("/forgot-password")
def forgot_password():
    """
    Request a password reset. The answer is the same whether or not the
    email belongs to an account.
    ---
    tags:
      - Password
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
    responses:
      200:
        description: Always succeeds
    """
    payload = request.get_json(silent=True) or {}
    data = forgot_password_schema.load(payload)

    session = storage.get_session()
    user = session.query(User).filter(User.email == data["email"]).first()
    if user is not None:
        token = generate_reset_token()
        user.reset_token = token
        user.reset_token_expires = utcnow() + current_app.config["RESET_TOKEN_EXPIRES"]
        user.save()
        deliver_reset_link(user, token)

    return jsonify({"success": True, "message": FORGOT_PASSWORD_MESSAGE}), 200


@bp.post("/reset-password")
def reset_password():
    """
    Set a new password using a reset token; signs the user out everywhere.
    ---
    tags:
      - Password
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            token: { type: string }
            newPassword: { type: string, minLength: 6 }
    responses:
      200:
        description: Password reset
      400:
        description: Invalid or expired token, or weak password
    """
    payload = request.get_json(silent=True) or {}
    data = reset_password_schema.load(payload)

    session = storage.get_session()
    # Strictly later than now: a token expiring this instant is already dead
    user = session.query(User).filter(
        User.reset_token == data["token"],
        User.reset_token_expires > utcnow(),
    ).first()
    if user is None:
        raise InvalidArgument("Invalid or expired reset token")

    user.password_hash = hash_password(data["new_password"])
    user.reset_token = None
    user.reset_token_expires = None
    user.save()
    token_ledger.revoke_all(user.id)
    logger.info("Password reset for user %s", user.id)

    return jsonify(
        {
            "success": True,
            "message": "Password has been reset successfully. Please sign in with your new password.",
        }
    ), 200


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the password of the signed-in user
    ---
    tags:
      - Password
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            currentPassword: { type: string }
            newPassword: { type: string, minLength: 6 }
    responses:
      200:
        description: Password changed
      400:
        description: Wrong current password or weak new password
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    data = change_password_schema.load(payload)

    user = g.current_user
    if not verify_password(data["current_password"], user.password_hash):
        raise InvalidArgument("Current password is incorrect")

    user.password_hash = hash_password(data["new_password"])
    user.save()
    token_ledger.revoke_all(user.id, except_jti=_current_session_jti(user))
    logger.info("Password changed for user %s", user.id)

    return jsonify({"success": True, "message": "Password changed successfully"}), 200
