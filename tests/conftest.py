"""Shared test fixtures for the CMS auth service."""

import os

# Must be set before the app and storage modules are imported
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TOKEN_CLEANUP_ENABLED"] = "false"

import pytest

from api import create_app
from models import storage
from models.user import User
from utils.security import hash_password


@pytest.fixture
def app(tmp_path):
    """Create an app backed by a fresh SQLite file database.

    A file (rather than :memory:) keeps the schema visible to every
    connection, including the cleanup thread's.
    """
    storage.configure(f"sqlite:///{tmp_path / 'auth.db'}")
    app = create_app("testing")
    yield app
    storage.drop_all()


@pytest.fixture
def client(app):
    """Flask test client; keeps cookies between requests like a browser."""
    return app.test_client()


@pytest.fixture
def issuer(app):
    return app.extensions["token_issuer"]


@pytest.fixture
def make_user(app):
    """Factory that inserts a user directly, bypassing the HTTP layer."""

    def _make(email="user@example.com", password="secret1", is_verified=False):
        user = User(email=email, password_hash=hash_password(password), is_verified=is_verified)
        storage.new(user)
        storage.save()
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def set_cookie_header():
    """Return the raw Set-Cookie header a response sent for one cookie."""

    def _find(response, name):
        headers = [h for h in response.headers.getlist("Set-Cookie") if h.startswith(f"{name}=")]
        assert len(headers) == 1, f"expected one Set-Cookie for {name}, got {headers}"
        return headers[0]

    return _find
