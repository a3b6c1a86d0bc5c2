"""
Configuration settings for the Taskboard API
"""
import os
from functools import lru_cache

from . import __version__


DEFAULT_JWT_SECRET = "changeme"


class Settings:
    """Application settings"""

    def __init__(self):
        self.app_name = os.getenv("APP_NAME", "Taskboard API")
        self.app_version = os.getenv("APP_VERSION", __version__)
        self.environment = os.getenv("ENVIRONMENT", "development")

        # Database
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./taskboard.db")
        self.db_echo = os.getenv("DB_ECHO", "False").lower() == "true"

        # Authentication
        self.jwt_secret = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
        if self.environment == "production" and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set in production")
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_expires_in_minutes = int(os.getenv("JWT_EXPIRES_IN_MINUTES", str(7 * 24 * 60)))

        # Security
        self.bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", "12"))

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_format = os.getenv("LOG_FORMAT", "text")

        # Server
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "8000"))

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()
