# backend/marketplace/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/marketplace.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///marketplace.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sessions: absolute lifetime of a bearer token, and the cookie checked
    # when no Authorization header is sent
    SESSION_LIFETIME_HOURS = int(os.environ.get("SESSION_LIFETIME_HOURS", "168"))
    TOKEN_COOKIE_NAME = os.environ.get("TOKEN_COOKIE_NAME", "userToken")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Deliver order notifications on a worker thread (False = inline)
    NOTIFICATIONS_ASYNC = _env_bool("NOTIFICATIONS_ASYNC", True)

    ORDERS_PAGE_SIZE = int(os.environ.get("ORDERS_PAGE_SIZE", "10"))
    ORDERS_MAX_PAGE_SIZE = int(os.environ.get("ORDERS_MAX_PAGE_SIZE", "100"))
