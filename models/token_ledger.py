"""
Refresh-token revocation ledger.

Every issued refresh token has a row here keyed by its JTI. The ledger, not the
JWT signature, decides whether a refresh token is still trusted: a correctly
signed token whose row is missing, expired or revoked is rejected.

Each operation commits on its own.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import or_

from models import storage
from models.base_model import utcnow
from models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=7)


class TokenCollisionError(Exception):
    """Raised when a JTI is stored twice."""


def _active(query, now: datetime):
    return query.filter(RefreshToken.revoked.is_(False), RefreshToken.expires_at > now)


def store(user_id: str, jti: str, expires_at: datetime | None = None) -> RefreshToken:
    """Record a freshly issued refresh token. Never overwrites an existing JTI."""
    session = storage.get_session()
    if session.get(RefreshToken, jti) is not None:
        raise TokenCollisionError(f"refresh token {jti} already recorded")

    record = RefreshToken(
        jti=jti,
        user_id=user_id,
        expires_at=expires_at or utcnow() + DEFAULT_TTL,
        revoked=False,
    )
    storage.new(record)
    storage.save()
    return record


def is_valid(jti: str) -> bool:
    """True iff the row exists, has not expired and has not been revoked."""
    session = storage.get_session()
    row = _active(session.query(RefreshToken.jti), utcnow()).filter(RefreshToken.jti == jti).first()
    return row is not None


def get(jti: str) -> RefreshToken | None:
    session = storage.get_session()
    return session.get(RefreshToken, jti, populate_existing=True)


def revoke(jti: str) -> None:
    """Revoke a single token. Revoking an already revoked token is a no-op."""
    session = storage.get_session()
    session.query(RefreshToken).filter(
        RefreshToken.jti == jti, RefreshToken.revoked.is_(False)
    ).update({"revoked": True, "revoked_at": utcnow()}, synchronize_session="fetch")
    storage.save()


def revoke_all(user_id: str, except_jti: str | None = None) -> int:
    """Revoke every live token owned by user_id, optionally sparing one JTI."""
    session = storage.get_session()
    query = session.query(RefreshToken).filter(
        RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False)
    )
    if except_jti:
        query = query.filter(RefreshToken.jti != except_jti)
    count = query.update({"revoked": True, "revoked_at": utcnow()}, synchronize_session="fetch")
    storage.save()
    logger.info("Revoked %d refresh token(s) for user %s", count, user_id)
    return count


def consume(jti: str) -> bool:
    """
    Atomically revoke a token if, and only if, it is currently valid.

    This is a single conditional UPDATE, so when two requests race with the
    same refresh token exactly one of them sees rowcount == 1.
    """
    session = storage.get_session()
    now = utcnow()
    count = _active(session.query(RefreshToken), now).filter(RefreshToken.jti == jti).update(
        {"revoked": True, "revoked_at": now}, synchronize_session="fetch"
    )
    storage.save()
    return count == 1


def purge() -> int:
    """Delete every expired or revoked row; returns how many were removed."""
    session = storage.get_session()
    count = session.query(RefreshToken).filter(
        or_(RefreshToken.expires_at < utcnow(), RefreshToken.revoked.is_(True))
    ).delete(synchronize_session="fetch")
    storage.save()
    return count
