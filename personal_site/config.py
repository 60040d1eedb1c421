import os
from datetime import timedelta


def normalize_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def normalize_prefix(prefix: str) -> str:
    cleaned = "/" + prefix.strip().strip("/")
    return cleaned if cleaned != "/" else "/app"


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = normalize_database_url(
        os.getenv("DATABASE_URL", "sqlite:///dev.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", 1024 * 1024))
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE = env_flag("SESSION_COOKIE_SECURE")
    SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "site_session")
    PERMANENT_SESSION_LIFETIME = timedelta(
        hours=int(os.getenv("SESSION_LIFETIME_HOURS", "24"))
    )

    SITE_TITLE = os.getenv("SITE_TITLE", "Seth Weidman's Website")
    SITE_AUTHOR = os.getenv("SITE_AUTHOR", "Seth Weidman")
    SITE_DESCRIPTION = os.getenv(
        "SITE_DESCRIPTION",
        "Personal website of Seth Weidman: notes, writing, and a visitor log.",
    )
    # Calendar days for the visitor log are bucketed in this zone.
    SITE_TIMEZONE = os.getenv("SITE_TIMEZONE", "UTC")
    VISITOR_NAME_MAX_LENGTH = 120

    FORCE_HTTPS = env_flag("FORCE_HTTPS")

    PROXY_PREFIX = normalize_prefix(os.getenv("PROXY_PREFIX", "/app"))
    PROXY_ORIGIN = (os.getenv("PROXY_ORIGIN") or "").strip().rstrip("/") or None
    PROXY_TIMEOUT_SECONDS = float(os.getenv("PROXY_TIMEOUT_SECONDS", "30"))
