"""Tests for forgot/reset/change password endpoints."""

from datetime import datetime, timedelta, timezone

import pytest

from api.password import FORGOT_PASSWORD_MESSAGE
from models import storage, token_ledger
from models.user import User
from utils.tokens import generate_jti


def _signup(client, email="real@x.com", password="secret1"):
    return client.post("/auth/signup", json={"email": email, "password": password})


def _load_user(email="real@x.com"):
    storage.close()
    return storage.get_session().query(User).filter_by(email=email).one()


def _refresh_jti(client, issuer):
    return issuer.validate_refresh_token(client.get_cookie("refresh_token").value)["jti"]


@pytest.fixture
def reset_token(client):
    _signup(client)
    client.post("/auth/forgot-password", json={"email": "real@x.com"})
    return _load_user().reset_token


# ============================================================================
# Forgot password
# ============================================================================


class TestForgotPassword:
    """Tests for POST /auth/forgot-password."""

    def test_same_answer_for_known_and_unknown_email(self, client):
        _signup(client)
        known = client.post("/auth/forgot-password", json={"email": "real@x.com"})
        unknown = client.post("/auth/forgot-password", json={"email": "unknown@x.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.get_json() == unknown.get_json() == {"success": True, "message": FORGOT_PASSWORD_MESSAGE}

    def test_reset_token_stored_with_one_hour_expiry(self, client):
        _signup(client)
        before = datetime.now(timezone.utc).replace(tzinfo=None)
        client.post("/auth/forgot-password", json={"email": "real@x.com"})

        user = _load_user()
        assert len(user.reset_token) == 64
        expires = user.reset_token_expires.replace(tzinfo=None)
        assert timedelta(minutes=59) < expires - before <= timedelta(hours=1, seconds=5)

    def test_unknown_email_changes_nothing(self, client, user):
        client.post("/auth/forgot-password", json={"email": "unknown@x.com"})
        storage.close()
        assert storage.get(User, user.id).reset_token is None

    def test_missing_email(self, client):
        response = client.post("/auth/forgot-password", json={})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Email is required"


# ============================================================================
# Reset password
# ============================================================================


class TestResetPassword:
    """Tests for POST /auth/reset-password."""

    def test_reset_success(self, client, app, reset_token):
        response = client.post("/auth/reset-password", json={"token": reset_token, "newPassword": "brandnew1"})
        assert response.status_code == 200
        assert response.get_json()["success"] is True

        fresh = app.test_client()
        assert fresh.post("/auth/signin", json={"email": "real@x.com", "password": "brandnew1"}).status_code == 200
        assert fresh.post("/auth/signin", json={"email": "real@x.com", "password": "secret1"}).status_code == 401

    def test_reset_clears_token_and_is_single_use(self, client, reset_token):
        client.post("/auth/reset-password", json={"token": reset_token, "newPassword": "brandnew1"})
        user = _load_user()
        assert user.reset_token is None
        assert user.reset_token_expires is None

        again = client.post("/auth/reset-password", json={"token": reset_token, "newPassword": "brandnew2"})
        assert again.status_code == 400

    def test_reset_revokes_every_session(self, client, issuer, reset_token):
        jti = _refresh_jti(client, issuer)
        client.post("/auth/reset-password", json={"token": reset_token, "newPassword": "brandnew1"})
        assert not token_ledger.is_valid(jti)
        assert client.post("/auth/refresh").status_code == 401

    def test_unknown_token(self, client):
        response = client.post("/auth/reset-password", json={"token": "nope", "newPassword": "brandnew1"})
        assert response.status_code == 400
        data = response.get_json()
        assert data["code"] == "invalid_argument"
        assert data["message"] == "Invalid or expired reset token"

    def test_short_password(self, client, reset_token):
        response = client.post("/auth/reset-password", json={"token": reset_token, "newPassword": "123"})
        assert response.status_code == 400
        assert _load_user().reset_token == reset_token

    def test_missing_fields(self, client):
        response = client.post("/auth/reset-password", json={"newPassword": "brandnew1"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Token and new password are required"

    def test_token_expiring_exactly_now_is_expired(self, client, user, monkeypatch):
        frozen = datetime(2030, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        user.reset_token = "t" * 64
        user.reset_token_expires = frozen
        user.save()
        monkeypatch.setattr("api.password.utcnow", lambda: frozen)

        response = client.post("/auth/reset-password", json={"token": "t" * 64, "newPassword": "brandnew1"})
        assert response.status_code == 400

    def test_token_one_second_before_expiry_is_valid(self, client, user, monkeypatch):
        frozen = datetime(2030, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        user.reset_token = "t" * 64
        user.reset_token_expires = frozen
        user.save()
        monkeypatch.setattr("api.password.utcnow", lambda: frozen - timedelta(seconds=1))

        response = client.post("/auth/reset-password", json={"token": "t" * 64, "newPassword": "brandnew1"})
        assert response.status_code == 200


# ============================================================================
# Change password
# ============================================================================


class TestChangePassword:
    """Tests for POST /auth/change-password."""

    def test_change_then_signin(self, client, app):
        _signup(client)
        response = client.post(
            "/auth/change-password", json={"currentPassword": "secret1", "newPassword": "brandnew1"}
        )
        assert response.status_code == 200
        assert response.get_json() == {"success": True, "message": "Password changed successfully"}

        fresh = app.test_client()
        assert fresh.post("/auth/signin", json={"email": "real@x.com", "password": "brandnew1"}).status_code == 200
        old = fresh.post("/auth/signin", json={"email": "real@x.com", "password": "secret1"})
        assert old.status_code == 401
        assert old.get_json()["code"] == "unauthenticated"

    def test_other_sessions_revoked_current_kept(self, client, app, issuer):
        _signup(client)
        other = app.test_client()
        other.post("/auth/signin", json={"email": "real@x.com", "password": "secret1"})
        current_jti = _refresh_jti(client, issuer)
        other_jti = _refresh_jti(other, issuer)

        client.post("/auth/change-password", json={"currentPassword": "secret1", "newPassword": "brandnew1"})

        assert token_ledger.is_valid(current_jti)
        assert not token_ledger.is_valid(other_jti)
        assert client.post("/auth/refresh").status_code == 200
        assert other.post("/auth/refresh").status_code == 401

    def test_bearer_only_revokes_everything(self, client, app, issuer):
        access_token = _signup(client).get_json()["access_token"]
        jti = _refresh_jti(client, issuer)

        headerless = app.test_client()
        response = headerless.post(
            "/auth/change-password",
            json={"currentPassword": "secret1", "newPassword": "brandnew1"},
            headers={"Authorization": f"Bearer {access_token}"},
        )
        assert response.status_code == 200
        assert not token_ledger.is_valid(jti)

    def test_foreign_refresh_cookie_is_not_spared(self, client, app, issuer, make_user):
        _signup(client)
        mine = _refresh_jti(client, issuer)
        stranger = make_user(email="stranger@x.com")
        stranger_token, stranger_jti = issuer.issue_refresh_token(stranger.id)
        token_ledger.store(stranger.id, stranger_jti)
        client.set_cookie("refresh_token", stranger_token)

        client.post("/auth/change-password", json={"currentPassword": "secret1", "newPassword": "brandnew1"})
        assert not token_ledger.is_valid(mine)
        assert token_ledger.is_valid(stranger_jti)

    def test_wrong_current_password(self, client):
        _signup(client)
        response = client.post(
            "/auth/change-password", json={"currentPassword": "nope-nope", "newPassword": "brandnew1"}
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "Current password is incorrect"

    def test_short_new_password(self, client):
        _signup(client)
        response = client.post("/auth/change-password", json={"currentPassword": "secret1", "newPassword": "123"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Password must be at least 6 characters long"

    def test_requires_authentication(self, client):
        response = client.post(
            "/auth/change-password", json={"currentPassword": "secret1", "newPassword": "brandnew1"}
        )
        assert response.status_code == 401
        assert response.get_json()["message"] == "No access token provided"

    def test_authentication_checked_before_input(self, client):
        response = client.post("/auth/change-password", json={})
        assert response.status_code == 401

    def test_revokes_tokens_issued_before_change(self, client, issuer, user):
        stale = generate_jti()
        token_ledger.store(user.id, stale)
        token = issuer.issue_access_token(user)
        client.post(
            "/auth/change-password",
            json={"currentPassword": "secret1", "newPassword": "brandnew1"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert not token_ledger.is_valid(stale)
