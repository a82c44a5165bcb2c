"""
Environment-aware configuration.
Values come from the environment (a .env file is read if present) with
development-friendly defaults; production must supply real secrets.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///course-auth.db")

    # JWT
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "course-auth-api")
    JWT_ACCESS_EXPIRES = timedelta(seconds=int(os.getenv("JWT_ACCESS_EXPIRES_SECONDS", "3600")))
    JWT_REFRESH_EXPIRES = timedelta(seconds=int(os.getenv("JWT_REFRESH_EXPIRES_SECONDS", str(3 * 24 * 3600))))

    # One-time codes
    OTP_LENGTH = int(os.getenv("OTP_LENGTH", "6"))
    OTP_TTL = timedelta(seconds=int(os.getenv("OTP_TTL_SECONDS", "600")))
    FORGOT_PASSWORD_DELAY_SECONDS = float(os.getenv("FORGOT_PASSWORD_DELAY_SECONDS", "1.0"))

    # Refresh token cookie
    REFRESH_COOKIE_NAME = os.getenv("REFRESH_COOKIE_NAME", "refresh_token")
    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", "true")

    # Housekeeping
    BLACKLIST_SWEEP_ENABLED = _env_bool("BLACKLIST_SWEEP_ENABLED", "true")
    BLACKLIST_SWEEP_INTERVAL_SECONDS = float(os.getenv("BLACKLIST_SWEEP_INTERVAL_SECONDS", "3600"))

    # Flask-Mail. MAIL_CONSOLE_FALLBACK logs codes instead of mailing them when
    # MAIL_USERNAME is unset; only development turns it on
    MAIL_CONSOLE_FALLBACK = False
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", "true")
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", "false")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", MAIL_USERNAME or "no-reply@course-auth.local")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    MAIL_CONSOLE_FALLBACK = _env_bool("MAIL_CONSOLE_FALLBACK", "true")
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True
    REFRESH_COOKIE_SECURE = _env_bool("REFRESH_COOKIE_SECURE", "false")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite:///:memory:"
    JWT_SECRET = "test-secret-key-with-enough-length-for-hs256"
    FORGOT_PASSWORD_DELAY_SECONDS = 0.0
    REFRESH_COOKIE_SECURE = False
    BLACKLIST_SWEEP_ENABLED = False
    # Flask-Mail records messages instead of opening an SMTP connection
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = "no-reply@course-auth.local"


class ProductionConfig(BaseConfig):
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
