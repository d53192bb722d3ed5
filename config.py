"""
CabinShare configuration.
Values come from the environment (.env is loaded by app.py) with
development-friendly defaults.
"""

import os
from datetime import timedelta


def _env_float(name, default):
    return float(os.environ.get(name, default))


def _env_int(name, default):
    return int(os.environ.get(name, default))


class Config:
    """Settings shared by every environment."""

    APP_NAME = 'CabinShare'
    APP_VERSION = '1.0.0'

    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # SQLite store. Calls give up with OperationalError after DATABASE_TIMEOUT
    # seconds on a locked database and are reported as store errors.
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or 'instance/cabinshare.db'
    DATABASE_TIMEOUT = _env_float('DATABASE_TIMEOUT', 15)

    LOG_FILE = os.environ.get('LOG_FILE') or 'logs/cabinshare.log'

    # Session cookie and CSRF (the API is used from the same-origin web app)
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = 3600
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False
    PERMANENT_SESSION_LIFETIME = timedelta(hours=_env_int('SESSION_TIMEOUT_HOURS', 8))

    # "Today" for past-date rules and season due dates
    TIMEZONE = os.environ.get('TIMEZONE') or 'America/Chicago'

    # Alternative date search
    ALTERNATIVE_SEARCH_DAYS = _env_int('ALTERNATIVE_SEARCH_DAYS', 14)
    MAX_ALTERNATIVES = 5

    # Email/SMS notification function; unset disables dispatch
    NOTIFICATION_FUNCTION_URL = os.environ.get('NOTIFICATION_FUNCTION_URL')
    NOTIFICATION_API_KEY = os.environ.get('NOTIFICATION_API_KEY')
    NOTIFICATION_TIMEOUT = _env_float('NOTIFICATION_TIMEOUT', 10)


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False
    WTF_CSRF_SSL_STRICT = False


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'true').lower() == 'true'
    WTF_CSRF_SSL_STRICT = SESSION_COOKIE_SECURE
    PREFERRED_URL_SCHEME = 'https' if SESSION_COOKIE_SECURE else 'http'

    @classmethod
    def validate(cls) -> None:
        """
        Refuse to start production without real secrets.

        Raises:
            ValueError: If SECRET_KEY is missing/short or DATABASE_PATH is unset
        """
        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        if not os.environ.get('DATABASE_PATH'):
            raise ValueError("DATABASE_PATH environment variable must be set in production")


class TestConfig(Config):
    TESTING = True
    DEBUG = True
    WTF_CSRF_ENABLED = False
    SECRET_KEY = 'test-secret-key'
    DATABASE_PATH = os.environ.get('DATABASE_PATH', ':memory:')
    DATABASE_TIMEOUT = 5.0
    NOTIFICATION_FUNCTION_URL = None


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig
}
