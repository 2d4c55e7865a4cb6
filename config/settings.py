"""
Configuration settings for different environments
"""
import os
import logging
import secrets

from dotenv import load_dotenv

load_dotenv()


def _require_in_production(var_name, default):
    """Return env var value. Outside development, warn loudly if still using default."""
    value = os.environ.get(var_name, "")
    if value:
        return value
    env = os.environ.get("FLASK_ENV", "development")
    if env != "development" and default:
        logging.getLogger(__name__).warning(
            "%s is using an insecure default. Set it via environment variable!", var_name
        )
    return default


def _database_url():
    url = os.environ.get("DATABASE_URL", "")
    if not url:
        return "sqlite:///roadside.db"
    # SQLAlchemy 2.x only understands the postgresql:// scheme
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def _env_bool(name, default="false"):
    return os.environ.get(name, default).lower() in ("true", "on", "1")


class Config:
    """Base configuration"""
    SECRET_KEY = _require_in_production("SECRET_KEY", "dev-only-" + secrets.token_hex(16))

    # Identity boundary: tokens are issued elsewhere, we only verify them
    JWT_SECRET = _require_in_production("JWT_SECRET", "dev-only-" + secrets.token_hex(32))
    JWT_ALGORITHM = "HS256"

    # Database
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }
    DB_TRANSACTION_RETRIES = int(os.environ.get("DB_TRANSACTION_RETRIES", 3))

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")

    # Public base URL used to build claim links
    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:3000")

    # Job lifecycle
    CLAIM_TOKEN_TTL_MINUTES = int(os.environ.get("CLAIM_TOKEN_TTL_MINUTES", 60))
    BID_REQUIRES_PROVIDER_CONFIRMATION = _env_bool("BID_REQUIRES_PROVIDER_CONFIRMATION")

    # Pagination
    ITEMS_PER_PAGE = 20
    MAX_ITEMS_PER_PAGE = 100

    # Outbound calls (geocoding, SMS)
    EXTERNAL_RETRY_ATTEMPTS = int(os.environ.get("EXTERNAL_RETRY_ATTEMPTS", 3))
    EXTERNAL_RETRY_BASE_DELAY = float(os.environ.get("EXTERNAL_RETRY_BASE_DELAY", 0.5))
    EXTERNAL_TIMEOUT_SECONDS = float(os.environ.get("EXTERNAL_TIMEOUT_SECONDS", 5))

    # SMS
    TWILIO_ACCOUNT_SID = os.environ.get("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN = os.environ.get("TWILIO_AUTH_TOKEN", "")
    TWILIO_FROM_NUMBER = os.environ.get("TWILIO_FROM_NUMBER", "")

    # Geocoding
    GOOGLE_MAPS_API_KEY = os.environ.get("GOOGLE_MAPS_API_KEY", "")

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL") or "memory://"

    # Error monitoring
    SENTRY_DSN = os.environ.get("SENTRY_DSN", "")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Socket.IO
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "threading")


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 20,
        "max_overflow": 40,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }
