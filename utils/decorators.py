from __future__ import annotations
from functools import wraps
from flask import request, g

from api.errors import Unauthenticated
from models import storage
from models.user import User
from utils.cookies import ACCESS_COOKIE
from utils.tokens import get_token_issuer


def access_token_from_request() -> str | None:
    """Bearer header first, access_token cookie as fallback."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        token = auth.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(ACCESS_COOKIE) or None


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = access_token_from_request()
            if not token:
                raise Unauthenticated("No access token provided")

            claims = get_token_issuer().extract_user(token)

            # The token can outlive the account it was issued for
            user = storage.get(User, claims["user_id"])
            if not user:
                raise Unauthenticated("User not found")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator
