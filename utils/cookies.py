"""
Auth cookie handling.

Endpoints describe the cookies they want as plain dicts (name, value, max_age);
apply_cookies() is the only place that turns them into Set-Cookie headers, using
Flask's native response.set_cookie and the environment's security attributes.
"""
from __future__ import annotations

from typing import Dict, List

from flask import current_app

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def session_cookies(access_token: str, refresh_token: str) -> List[Dict]:
    config = current_app.config
    return [
        {
            "name": ACCESS_COOKIE,
            "value": access_token,
            "max_age": int(config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
        },
        {
            "name": REFRESH_COOKIE,
            "value": refresh_token,
            "max_age": int(config["REFRESH_TOKEN_EXPIRES"].total_seconds()),
        },
    ]


def cleared_cookies() -> List[Dict]:
    return [
        {"name": ACCESS_COOKIE, "value": "", "max_age": 0},
        {"name": REFRESH_COOKIE, "value": "", "max_age": 0},
    ]


def apply_cookies(response, cookies: List[Dict]):
    """HttpOnly always; Secure/SameSite follow COOKIE_SECURE/COOKIE_SAMESITE."""
    config = current_app.config
    for cookie in cookies:
        response.set_cookie(
            cookie["name"],
            cookie["value"],
            max_age=cookie["max_age"],
            path="/",
            httponly=True,
            secure=config["COOKIE_SECURE"],
            samesite=config["COOKIE_SAMESITE"],
        )
    return response
