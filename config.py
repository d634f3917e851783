"""
Flask application configuration classes.
Provides configuration for development, production, and testing environments.
"""

import os


class Config:
    """Base configuration class with common settings."""

    # Secret key for session signing
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or 'instance/rental_engine.db'

    # Reference timezone used to turn timestamps into calendar dates
    TIMEZONE = os.environ.get('TIMEZONE', 'UTC')

    # Booking rules
    REJECTION_RETENTION_DAYS = int(os.environ.get('REJECTION_RETENTION_DAYS', 3))
    CURRENCY_PLACES = 2
    ALTERNATIVE_SEARCH_WINDOW_DAYS = int(os.environ.get('ALTERNATIVE_SEARCH_WINDOW_DAYS', 14))
    MAX_ALTERNATIVE_SUGGESTIONS = int(os.environ.get('MAX_ALTERNATIVE_SUGGESTIONS', 5))

    # Header set by the upstream gateway once it has authenticated the caller
    AUTH_USER_HEADER = 'X-User-Id'

    # Application settings
    APP_NAME = 'CameraRentals'
    APP_VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    TESTING = False

    SECRET_KEY = os.environ.get('SECRET_KEY') or Config.SECRET_KEY
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or Config.DATABASE_PATH

    @classmethod
    def validate(cls) -> None:
        """Validate that required production environment variables are set."""
        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        if not os.environ.get('DATABASE_PATH'):
            raise ValueError("DATABASE_PATH environment variable must be set in production")


class TestConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    DATABASE_PATH = os.environ.get('DATABASE_PATH', ':memory:')
    SECRET_KEY = 'test-secret-key'
    TIMEZONE = 'UTC'
    REJECTION_RETENTION_DAYS = 3


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig
}
