"""
Configuration Management

Pydantic-based configuration for the crash reporter with environment
variable support (``SQUASH_`` prefix) and validation.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CLIENT_NAME,
    DEFAULT_EXCLUDED_PREFIXES,
    ENVIRONMENT,
    FOLLOW_CONTEXT,
)


class Settings(BaseSettings):
    """Main settings class for the Squash crash reporter."""

    model_config = SettingsConfigDict(
        env_prefix="SQUASH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    app_name: str = Field(default="Squash Reporter")
    app_version: str = Field(default="0.1.0")
    build: Optional[str] = Field(default=None)
    revision: Optional[str] = Field(default=None)

    # Squash client settings
    client: str = Field(default=CLIENT_NAME)
    api_key: Optional[str] = Field(default=None)
    environment: str = Field(default=ENVIRONMENT)
    device_id: Optional[str] = Field(default=None)
    user_id: Optional[str] = Field(default=None)

    # Extraction settings
    excluded_field_prefixes: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_PREFIXES)
    )
    follow_context: bool = Field(default=FOLLOW_CONTEXT)

    # Logging settings
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    def extractor_config(self) -> Dict[str, Any]:
        """Options understood by ``BacktraceExtractor``."""
        return {
            'excluded_prefixes': tuple(self.excluded_field_prefixes),
            'follow_context': self.follow_context,
        }

    def client_metadata(self) -> Dict[str, Any]:
        """Client metadata copied onto every crash entry."""
        return {
            'api_key': self.api_key,
            'client': self.client,
            'environment': self.environment,
            'revision': self.revision,
            'build': self.build,
            'version': self.app_version,
            'device_id': self.device_id,
            'user_id': self.user_id,
        }


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
