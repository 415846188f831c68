"""
JWT issuance and validation via PyJWT.

Access tokens and refresh tokens are signed with different secrets, carry a
"type" discriminator and share a fixed issuer/audience pair. Secrets and
lifetimes are handed to TokenIssuer at construction; the app keeps one
instance in app.extensions["token_issuer"].
"""
from __future__ import annotations

import secrets
from collections import namedtuple
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

import jwt
from flask import current_app

from api.errors import Unauthenticated

TokenPair = namedtuple("TokenPair", ["access_token", "refresh_token", "jti"])

ACCESS = "access"
REFRESH = "refresh"


def generate_jti() -> str:
    """Generate a unique JWT ID (128 bits, hex encoded)."""
    return secrets.token_hex(16)


def decode_unverified(token: str) -> Dict[str, Any]:
    """Read claims without checking anything. For diagnostics only."""
    return jwt.decode(token, options={"verify_signature": False})


class TokenIssuer:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        issuer: str = "cms-api",
        audience: str = "cms-users",
        access_expires: timedelta = timedelta(minutes=30),
        refresh_expires: timedelta = timedelta(days=7),
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("Both access and refresh secrets are required")
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must use distinct secrets")
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.access_expires = access_expires
        self.refresh_expires = refresh_expires

    @classmethod
    def from_config(cls, config) -> "TokenIssuer":
        return cls(
            access_secret=config["JWT_ACCESS_SECRET"],
            refresh_secret=config["JWT_REFRESH_SECRET"],
            algorithm=config["JWT_ALGORITHM"],
            issuer=config["JWT_ISSUER"],
            audience=config["JWT_AUDIENCE"],
            access_expires=config["ACCESS_TOKEN_EXPIRES"],
            refresh_expires=config["REFRESH_TOKEN_EXPIRES"],
        )

    def _encode(self, claims: Dict[str, Any], secret: str, lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = dict(
            claims,
            iat=now,
            exp=now + lifetime,
            iss=self.issuer,
            aud=self.audience,
        )
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def issue_access_token(self, user) -> str:
        return self._encode(
            {
                "sub": str(user.id),
                "email": user.email,
                "is_verified": bool(user.is_verified),
                "type": ACCESS,
            },
            self.access_secret,
            self.access_expires,
        )

    def issue_refresh_token(self, user_id: str) -> Tuple[str, str]:
        jti = generate_jti()
        token = self._encode(
            {"sub": str(user_id), "jti": jti, "type": REFRESH},
            self.refresh_secret,
            self.refresh_expires,
        )
        return token, jti

    def issue_token_pair(self, user) -> TokenPair:
        access_token = self.issue_access_token(user)
        refresh_token, jti = self.issue_refresh_token(user.id)
        return TokenPair(access_token, refresh_token, jti)

    def _decode(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        """
        Decode and validate a JWT: signature, expiry, issuer, audience and type.
        Every failure is reported as Unauthenticated.
        """
        label = expected_type.capitalize()
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated(f"{label} token expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated(f"Invalid {expected_type} token")

        if payload.get("type") != expected_type:
            raise Unauthenticated("Invalid token type")
        return payload

    def validate_access_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.access_secret, ACCESS)

    def validate_refresh_token(self, token: str) -> Dict[str, Any]:
        payload = self._decode(token, self.refresh_secret, REFRESH)
        if not payload.get("jti"):
            raise Unauthenticated("Invalid refresh token")
        return payload

    def extract_user(self, token: str) -> Dict[str, Any]:
        payload = self.validate_access_token(token)
        return {
            "user_id": payload["sub"],
            "email": payload.get("email"),
            "is_verified": payload.get("is_verified", False),
        }


def get_token_issuer() -> TokenIssuer:
    return current_app.extensions["token_issuer"]
