"""Timeout settings configuration for EC2 RAID operations.

Provides centralized timeout configuration using Pydantic BaseSettings
with environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderTimeoutSettings(BaseSettings):
    """Provider call timeout configuration."""

    aws_cli_timeout: int = Field(
        60, alias="AWS_CLI_TIMEOUT", description="Timeout for a single aws CLI call in seconds"
    )

    detach_settle_seconds: float = Field(
        8.0, alias="DETACH_SETTLE_SECONDS", description="Wait after detach before re-attaching"
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


# Global settings instance
timeout_settings = ProviderTimeoutSettings()

# Timeout constants for easy import
AWS_CLI_TIMEOUT: int = timeout_settings.aws_cli_timeout
DETACH_SETTLE_SECONDS: float = timeout_settings.detach_settle_seconds
