"""
Environment-aware configuration.
Secrets and environment flags come from the process environment (.env is read
if present). Token lifetimes and the issuer/audience pair are fixed constants.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

DEV_ACCESS_SECRET = "dev-access-secret-change-me"
DEV_REFRESH_SECRET = "dev-refresh-secret-change-me"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # Cookies are sent cross-origin, so origins must be explicit (no '*')
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Two distinct signing secrets: one cannot forge the other's tokens
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", DEV_ACCESS_SECRET)
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", DEV_REFRESH_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = "cms-api"
    JWT_AUDIENCE = "cms-users"
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=30)
    REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    RESET_TOKEN_EXPIRES = timedelta(hours=1)

    COOKIE_SECURE = False
    COOKIE_SAMESITE = "Lax"

    TOKEN_CLEANUP_ENABLED = _env_flag("TOKEN_CLEANUP_ENABLED", "true")
    TOKEN_CLEANUP_INTERVAL = timedelta(hours=6)

    PASSWORD_RESET_URL = os.getenv("PASSWORD_RESET_URL", "http://localhost:5173/reset-password?token={token}")

    # Refuse to boot with the built-in development secrets
    ENFORCE_SECRETS = False


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    JWT_ACCESS_SECRET = "test-access-secret"
    JWT_REFRESH_SECRET = "test-refresh-secret"
    TOKEN_CLEANUP_ENABLED = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    COOKIE_SECURE = True
    COOKIE_SAMESITE = "Strict"
    ENFORCE_SECRETS = True


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
