"""
Configuration settings for selfretry.

All settings are loaded from environment variables (prefixed ``SELFRETRY_``)
with sensible defaults. Use a .env file for local development.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SELFRETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Retry ===
    DEFAULT_RETRY_LIMIT: int = Field(default=3, ge=0)  # re-invocations after the first failure

    # === Logging ===
    LOG_ENABLED: bool = True  # failure diagnostics on/off
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"  # "production" switches to JSON output

    # === Call-site keys ===
    # Frames from these modules never contribute to a call-site key
    SKIP_MODULE_PREFIXES: list[str] = ["functools", "contextlib", "importlib"]


# Global settings instance
settings = Settings()
