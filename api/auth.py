"""
Authentication blueprint:
- POST /auth/signup
- POST /auth/signin
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/me

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and longer-lived refresh tokens (JWTs signed
  with HS256 and two distinct secrets)
- Records every refresh token JTI in the ledger so it can be revoked and
  rotated; a refresh token is single use
- Delivers both tokens as HttpOnly cookies, the access token also in the body
"""
from __future__ import annotations

import logging

from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from api.errors import AlreadyExists, APIError, Internal, Unauthenticated
from models import storage, token_ledger
from models.base_model import utcnow
from models.schemas.user import SigninSchema, SignupSchema, UserOutSchema
from models.user import User
from utils.cookies import REFRESH_COOKIE, apply_cookies, cleared_cookies, session_cookies
from utils.decorators import jwt_required
from utils.security import burn_verification, generate_verification_token, hash_password, verify_password
from utils.tokens import TokenPair, get_token_issuer

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/auth")

signup_schema = SignupSchema()
signin_schema = SigninSchema()
user_out_schema = UserOutSchema()

INVALID_CREDENTIALS = "Invalid email or password"


def start_session(user: User) -> TokenPair:
    """Mint a token pair for user and record its refresh JTI in the ledger."""
    issuer = get_token_issuer()
    pair = issuer.issue_token_pair(user)
    try:
        token_ledger.store(user.id, pair.jti, expires_at=utcnow() + issuer.refresh_expires)
    except token_ledger.TokenCollisionError as exc:
        logger.error("Refresh token collision for user %s: %s", user.id, exc)
        raise Internal("Failed to start session")
    return pair


def session_response(user: User, pair: TokenPair):
    response = jsonify(
        {
            "user": user_out_schema.dump(user),
            "access_token": pair.access_token,
        }
    )
    return apply_cookies(response, session_cookies(pair.access_token, pair.refresh_token))


@bp.post("/signup")
def signup():
    """
    Register a new user and start a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string }
            password: { type: string, minLength: 6 }
    responses:
      200:
        description: Signed up; access_token and refresh_token cookies are set
      400:
        description: Missing email/password or password too short
      409:
        description: Email already registered
    """
    payload = request.get_json(silent=True) or {}
    data = signup_schema.load(payload)

    session = storage.get_session()
    if session.query(User.id).filter(User.email == data["email"]).first():
        raise AlreadyExists("User with this email already exists")

    user = User(
        email=data["email"],
        password_hash=hash_password(data["password"]),
        is_verified=False,
        verification_token=generate_verification_token(),
    )
    storage.new(user)
    storage.save()
    logger.info("User %s signed up", user.id)

    pair = start_session(user)
    return session_response(user, pair), 200


@bp.post("/signin")
def signin():
    """
    Sign in with email and password
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (sets cookies, returns user and access_token)
      401:
        description: Invalid email or password
    """
    payload = request.get_json(silent=True) or {}
    data = signin_schema.load(payload)

    session = storage.get_session()
    user = session.query(User).filter(User.email == data["email"]).first()
    if user is None:
        # Same cost and same answer as a wrong password
        burn_verification(data["password"])
        logger.info("Sign-in failed: unknown email")
        raise Unauthenticated(INVALID_CREDENTIALS)
    if not verify_password(data["password"], user.password_hash):
        logger.info("Sign-in failed for user %s", user.id)
        raise Unauthenticated(INVALID_CREDENTIALS)

    pair = start_session(user)
    return session_response(user, pair), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange the refresh_token cookie for a new token pair (rotation).
    The presented refresh token is revoked and cannot be used again.
    ---
    tags:
      - Auth
    responses:
      200:
        description: New cookies set
      401:
        description: Missing, invalid, expired or revoked refresh token
    """
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise Unauthenticated("No refresh token provided")

    payload = get_token_issuer().validate_refresh_token(token)

    # Validity check and revocation of the old JTI happen in one statement
    if not token_ledger.consume(payload["jti"]):
        raise Unauthenticated("Refresh token revoked or expired")

    user = storage.get(User, payload["sub"])
    if user is None:
        raise Unauthenticated("User not found")

    pair = start_session(user)
    logger.info("Rotated refresh token for user %s", user.id)

    response = jsonify({"success": True})
    return apply_cookies(response, session_cookies(pair.access_token, pair.refresh_token)), 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the refresh token (if any) and clears both cookies
    ---
    tags:
      - Auth
    responses:
      200:
        description: Always succeeds
    """
    token = request.cookies.get(REFRESH_COOKIE)
    if token:
        try:
            payload = get_token_issuer().validate_refresh_token(token)
            token_ledger.revoke(payload["jti"])
            logger.info("User %s logged out", payload["sub"])
        except APIError as exc:
            logger.info("Logout with unusable refresh token: %s", exc.message)
        except SQLAlchemyError:
            storage.rollback()
            logger.warning("Could not revoke refresh token on logout", exc_info=True)

    response = jsonify({"success": True})
    return apply_cookies(response, cleared_cookies()), 200


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user info
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify(user_out_schema.dump(g.current_user)), 200
