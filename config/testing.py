"""
Testing configuration for the roadside backend
"""
import os
from config.settings import Config


class TestingConfig(Config):
    """Testing configuration with isolated database and safe defaults"""

    TESTING = True
    DEBUG = False

    # Use in-memory SQLite for fast tests
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "TEST_DATABASE_URL",
        "sqlite:///:memory:"
    )
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Deterministic secrets so fixtures can mint tokens
    SECRET_KEY = "test-secret-key"
    JWT_SECRET = "test-jwt-secret"

    APP_BASE_URL = "https://app.test"

    # Disable rate limiting in tests
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = "memory://"

    # No waiting between retries
    EXTERNAL_RETRY_ATTEMPTS = 3
    EXTERNAL_RETRY_BASE_DELAY = 0
    DB_TRANSACTION_RETRIES = 2

    # Never talk to real providers
    TWILIO_ACCOUNT_SID = ""
    TWILIO_AUTH_TOKEN = ""
    TWILIO_FROM_NUMBER = ""
    GOOGLE_MAPS_API_KEY = "test-maps-key"
    SENTRY_DSN = ""

    # Logging
    LOG_LEVEL = "WARNING"

    # CORS - allow local frontends in tests
    CORS_ORIGINS = ["http://localhost:3000"]
