import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


def _optional_float(name: str) -> float | None:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return None
    return float(raw)


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'smartmark.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "1") == "1"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    TITLE_FETCH_TIMEOUT = float(os.environ.get("TITLE_FETCH_TIMEOUT", "5"))
    TITLE_FETCH_USER_AGENT = os.environ.get(
        "TITLE_FETCH_USER_AGENT", "Mozilla/5.0 (compatible; SmartBookmark/1.0)"
    )
    TITLE_FETCH_MAX_BYTES = int(os.environ.get("TITLE_FETCH_MAX_BYTES", "1000000"))

    GOOGLE_API_KEY = os.environ.get("GOOGLE_API_KEY")
    AI_SEARCH_MODEL = os.environ.get("AI_SEARCH_MODEL", "gemini-2.0-flash-lite")
    AI_SEARCH_ENDPOINT = os.environ.get(
        "AI_SEARCH_ENDPOINT", "https://generativelanguage.googleapis.com/v1beta"
    )
    AI_SEARCH_TEMPERATURE = float(os.environ.get("AI_SEARCH_TEMPERATURE", "0.1"))
    AI_SEARCH_MAX_OUTPUT_TOKENS = int(
        os.environ.get("AI_SEARCH_MAX_OUTPUT_TOKENS", "256")
    )
    AI_SEARCH_TIMEOUT = _optional_float("AI_SEARCH_TIMEOUT")

    OAUTH_CLIENT_ID = os.environ.get("OAUTH_CLIENT_ID")
    OAUTH_CLIENT_SECRET = os.environ.get("OAUTH_CLIENT_SECRET")
    OAUTH_AUTHORIZE_URL = os.environ.get(
        "OAUTH_AUTHORIZE_URL", "https://accounts.google.com/o/oauth2/v2/auth"
    )
    OAUTH_TOKEN_URL = os.environ.get(
        "OAUTH_TOKEN_URL", "https://oauth2.googleapis.com/token"
    )
    OAUTH_USERINFO_URL = os.environ.get(
        "OAUTH_USERINFO_URL", "https://openidconnect.googleapis.com/v1/userinfo"
    )
    OAUTH_SCOPES = os.environ.get("OAUTH_SCOPES", "openid email profile")
    OAUTH_POST_LOGIN_REDIRECT = os.environ.get(
        "OAUTH_POST_LOGIN_REDIRECT", "/auth/session"
    )

    REALTIME_EVENT_RETENTION_HOURS = int(
        os.environ.get("REALTIME_EVENT_RETENTION_HOURS", "24")
    )
    REALTIME_SUBSCRIPTION_IDLE_HOURS = int(
        os.environ.get("REALTIME_SUBSCRIPTION_IDLE_HOURS", "12")
    )
    REALTIME_PRUNE_INTERVAL_MINUTES = int(
        os.environ.get("REALTIME_PRUNE_INTERVAL_MINUTES", "60")
    )


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SCHEDULER_ENABLED = False
    GOOGLE_API_KEY = "test-google-key"
    OAUTH_CLIENT_ID = "test-client"
    OAUTH_CLIENT_SECRET = "test-secret"
