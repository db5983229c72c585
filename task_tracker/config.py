"""Configuration management and validation using Pydantic."""

import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables or .env files."""

    @staticmethod
    def get_env_file() -> str | None:
        """Determine which .env file to load based on environment variables.

        Returns:
            None if SKIP_ENV_FILE is set (Docker/direct env vars)
            .env.{APP_ENV} file path otherwise (defaults to .env.dev)
        """
        if os.getenv("SKIP_ENV_FILE"):
            return None
        env = os.getenv("APP_ENV", "dev")
        env_file = f".env.{env}"
        if not os.path.exists(env_file):
            raise FileNotFoundError(
                f"Environment file '{env_file}' not found. "
                f"Create it (see .env.example) or set SKIP_ENV_FILE=1."
            )
        return env_file

    model_config = SettingsConfigDict(
        env_file=get_env_file.__func__(),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # ==================== Application Settings ====================
    APP_NAME: str = "Task Tracker"
    APP_ENV: str = "dev"
    API_PREFIX: str = "/api"
    DB_URL: str  # Required, defined in .env files

    # ==================== Database Connection Pooling ====================
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for a pooled connection
    DB_POOL_RECYCLE: int = 3600
    DB_QUERY_TIMEOUT: int = 60  # asyncpg command timeout (seconds)
    DB_CONNECT_TIMEOUT: int = 10

    # ==================== CORS Settings ====================
    CORS_ORIGINS: str = "http://localhost:3000"  # Comma-separated allowed origins

    # ==================== Field Validation ====================
    USER_NAME_MAX_LENGTH: int = 100
    USER_EMAIL_MAX_LENGTH: int = 255
    PASSWORD_MAX_LENGTH: int = 128
    TASK_TITLE_MAX_LENGTH: int = 255

    # ==================== Authentication ====================
    JWT_SECRET_KEY: str  # Required, defined in .env files
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 60 * 24
    AUTH_HEADER_NAME: str = "x-auth-token"
    BCRYPT_ROUNDS: int = 12

    # ==================== Logging ====================
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FILE: str | None = None  # e.g. "app.log"; None disables file logging
    LOG_FORMAT: str = "console"  # "console" for dev, "json" for production

    @field_validator('DB_URL')
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        """Validate that DB_URL is provided and properly formatted."""
        if not v:
            raise ValueError("DB_URL is required but not provided in environment variables")
        if not v.startswith(("postgresql://", "postgresql+asyncpg://")):
            raise ValueError("DB_URL must be a valid PostgreSQL connection string")
        return v

    @field_validator('JWT_SECRET_KEY')
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Validate that JWT_SECRET_KEY is provided and sufficiently long."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required but not provided in environment variables")
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long for security")
        return v

    @field_validator('BCRYPT_ROUNDS')
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        """bcrypt accepts work factors between 4 and 31."""
        if not 4 <= v <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list of allowed origins."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def get_async_db_url(self) -> str:
        """Return DB_URL with the asyncpg driver selected."""
        if self.DB_URL.startswith("postgresql://"):
            return "postgresql+asyncpg://" + self.DB_URL[len("postgresql://"):]
        return self.DB_URL

settings = Settings()
