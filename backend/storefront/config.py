# backend/storefront/config.py
from __future__ import annotations
import os


INSECURE_JWT_SECRET = "dev-jwt-secret-change-me"
DEVELOPMENT_ENVS = {"development", "testing"}


class Config:
    APP_ENV = os.environ.get("APP_ENV", "development")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Signs the OAuth state cookie
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound on how long a request waits for the database
    DB_TIMEOUT_SECONDS = float(os.environ.get("DB_TIMEOUT_SECONDS", "5"))

    # Access tokens. The fallback secret is for local development only and is
    # flagged at startup (and by `flask system check-config`) elsewhere.
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", INSECURE_JWT_SECRET)
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    TOKEN_TTL_DAYS = int(os.environ.get("TOKEN_TTL_DAYS", "7"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")

    GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET")
    GOOGLE_REDIRECT_URI = os.environ.get("GOOGLE_REDIRECT_URI")

    APPLE_CLIENT_ID = os.environ.get("APPLE_CLIENT_ID")
    APPLE_CLIENT_SECRET = os.environ.get("APPLE_CLIENT_SECRET")
    APPLE_REDIRECT_URI = os.environ.get("APPLE_REDIRECT_URI")

    OAUTH_HTTP_TIMEOUT_SECONDS = float(os.environ.get("OAUTH_HTTP_TIMEOUT_SECONDS", "10"))
    # Optional httpx.Client shared by the providers (tests inject a mock transport)
    OAUTH_HTTP_CLIENT = None


def insecure_settings(config) -> list[str]:
    """
    Return human-readable problems with a config mapping that must not reach
    a non-development deployment. Empty list means nothing to flag.
    """
    if config.get("APP_ENV", "development") in DEVELOPMENT_ENVS:
        return []

    problems = []
    if config.get("JWT_SECRET_KEY") == INSECURE_JWT_SECRET:
        problems.append("JWT_SECRET_KEY is the insecure development default")
    if config.get("SECRET_KEY") == "dev-secret-key-change-me":
        problems.append("SECRET_KEY is the insecure development default")
    return problems
