"""Configuration settings for the event registration core.

Uses pydantic-settings for environment variable management.
- Dev: Loads from .env file
- Prod: Uses environment variables injected by the deployment
"""

import logging
import sys
from functools import lru_cache

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Required environment variables with descriptions
REQUIRED_ENV_VARS = {
    "NEO4J_URL": "Graph database connection URL (e.g., bolt://localhost:7687)",
    "NEO4J_USERNAME": "Graph database username",
    "NEO4J_PASSWORD": "Graph database password",
    "SMTP_HOST": "SMTP server used for invitations and account mail",
    "SENDER_EMAIL": "Default From address (also the SMTP login)",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Graph Store Connection Settings
    NEO4J_URL: str
    NEO4J_USERNAME: str
    NEO4J_PASSWORD: str
    NEO4J_DATABASE: str | None = None

    # Email Transport Settings
    SMTP_HOST: str
    SMTP_PORT: int = 587
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 30.0
    SENDER_EMAIL: str
    SENDER_PASSWORD: str = ""

    # Links embedded in account mail
    FRONTEND_URL: str = "http://localhost:3000"

    # Domain Settings
    ID_SEQUENCE_START: int = 10000
    QR_THUMBNAIL_SIZE: int = 200
    ALLOWED_EMAIL_DOMAINS: list[str] = []

    # Password reset policy
    PASSWORD_RESET_TTL_MINUTES: int = 20
    PASSWORD_RESET_COOLDOWN_SECONDS: int = 90
    PASSWORD_RESET_MAX_ATTEMPTS: int = 10

    # Application Settings
    APP_NAME: str = "Event Registration Core"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS Settings
    CORS_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    @field_validator("QR_THUMBNAIL_SIZE")
    @classmethod
    def validate_thumbnail_size(cls, v: int) -> int:
        """QR thumbnails must be at least a few pixels wide."""
        if v < 16:
            raise ValueError("QR_THUMBNAIL_SIZE must be at least 16 pixels")
        return v

    @field_validator("ALLOWED_EMAIL_DOMAINS")
    @classmethod
    def normalize_domains(cls, v: list[str]) -> list[str]:
        return [domain.strip().lower() for domain in v if domain.strip()]


def _log_configuration_error(errors: list[dict]) -> None:
    """Log a helpful error message for configuration errors."""
    logger.error("")
    logger.error("=" * 60)
    logger.error("❌ CONFIGURATION ERROR: Invalid or missing environment variables")
    logger.error("=" * 60)
    logger.error("")

    for error in errors:
        field = error["loc"][0] if error["loc"] else "unknown"
        error_type = error["type"]
        msg = error.get("msg", "")

        if error_type == "missing":
            desc = REQUIRED_ENV_VARS.get(field, "Required configuration value")
            logger.error(f"  • {field} (MISSING)")
            logger.error(f"    {desc}")
        else:
            logger.error(f"  • {field}: {msg}")

        logger.error("")

    logger.error("To fix this, either:")
    logger.error("  1. Create a .env file (copy from .env.example)")
    logger.error("  2. Set environment variables directly")
    logger.error("")
    logger.error("See .env.example for a template.")
    logger.error("=" * 60)
    logger.error("")


def validate_settings() -> Settings:
    """Validate and load settings with helpful error messages.

    Returns:
        Settings instance if validation succeeds.

    Raises:
        SystemExit: If validation fails, exits with code 1.
    """
    try:
        return Settings()
    except ValidationError as e:
        _log_configuration_error(e.errors())
        sys.exit(1)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance with validation."""
    return validate_settings()
