"""Configuration management for EC2 RAID tools."""

import asyncio
import os
import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from ..constants import (
    DEFAULT_DISK_COUNT,
    DEFAULT_DRIVE_ID,
    DEFAULT_HVM_DISK_COUNT,
    DEFAULT_RECOVERY_FILE,
    HVM_VISIBLE_DEVICE_PREFIX,
    REQUEST_DEVICE_PREFIX,
)
from .settings import AWS_CLI_TIMEOUT, DETACH_SETTLE_SECONDS

logger = structlog.get_logger()


class AwsSettings(BaseModel):
    """How the aws CLI is invoked. Credentials stay with the CLI's own chain."""

    cli_path: str = "aws"
    region: str | None = None
    profile: str | None = None
    timeout: int = AWS_CLI_TIMEOUT


class NamingPolicy(BaseModel):
    """Provider-specific device naming rules."""

    request_prefix: str = REQUEST_DEVICE_PREFIX
    hvm_visible_prefix: str = HVM_VISIBLE_DEVICE_PREFIX
    # HVM guests renumber attachments to sequential letters; some providers
    # need the incremented letter in the attach request as well.
    hvm_request_incremented_letter: bool = False


class ArrayDefaults(BaseModel):
    """Defaults applied when a build request leaves a field unset."""

    drive_id: str = DEFAULT_DRIVE_ID
    disk_count: int = DEFAULT_DISK_COUNT
    hvm_disk_count: int = DEFAULT_HVM_DISK_COUNT


class MigrationSettings(BaseModel):
    """Detach/attach sequencing and recovery record location."""

    settle_seconds: float = DETACH_SETTLE_SECONDS
    poll_attempts: int = Field(default=5, ge=0)
    poll_interval_seconds: float = Field(default=2.0, ge=0)
    recovery_file: str = DEFAULT_RECOVERY_FILE


class Ec2RaidConfig(BaseSettings):
    """Main configuration for EC2 RAID tools."""

    aws: AwsSettings = Field(default_factory=AwsSettings)
    naming: NamingPolicy = Field(default_factory=NamingPolicy)
    defaults: ArrayDefaults = Field(default_factory=ArrayDefaults)
    migration: MigrationSettings = Field(default_factory=MigrationSettings)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    config_file: str | None = Field(default=None, alias="EC2RAID_CONFIG")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


def get_user_config_path() -> Path:
    """Per-user config file, honouring XDG_CONFIG_HOME."""
    base = os.getenv("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "ec2raid" / "config.yml"


def load_config(config_path: str | None = None) -> Ec2RaidConfig:
    """Load configuration from multiple sources (synchronous interface).

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration

    Note:
        For async code, use load_config_async() instead.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(load_config_async(config_path))
    raise RuntimeError(
        "load_config() cannot be called from within an async context. "
        "Use 'await load_config_async()' instead."
    )


async def load_config_async(config_path: str | None = None) -> Ec2RaidConfig:
    """Load configuration from multiple sources (async interface).

    Priority, lowest first: defaults, .env, user config, project config,
    environment variables.
    """
    load_dotenv()

    config = Ec2RaidConfig()

    await _load_config_file(config, get_user_config_path())

    project_path = config_path or os.getenv("EC2RAID_CONFIG")
    if project_path:
        project_config_path = Path(project_path)
        if not project_config_path.exists():
            raise ValueError(f"Config file not found: {project_config_path}")
        await _load_config_file(config, project_config_path)
        config.config_file = str(project_config_path)

    _apply_env_overrides(config)

    return config


async def _load_config_file(config: Ec2RaidConfig, config_path: Path) -> None:
    """Load and apply configuration from a YAML file."""
    if not config_path.exists():
        return

    yaml_config = await _load_yaml_config(config_path)
    _apply_section(config, "aws", AwsSettings, yaml_config)
    _apply_section(config, "naming", NamingPolicy, yaml_config)
    _apply_section(config, "defaults", ArrayDefaults, yaml_config)
    _apply_section(config, "migration", MigrationSettings, yaml_config)
    if "log_level" in yaml_config:
        config.log_level = str(yaml_config["log_level"])

    logger.debug("Loaded config file", path=str(config_path))


def _apply_section(
    config: Ec2RaidConfig, name: str, model: type[BaseModel], yaml_config: dict[str, Any]
) -> None:
    """Merge one YAML section over the current values of that section."""
    section = yaml_config.get(name)
    if not section:
        return
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    current = getattr(config, name).model_dump()
    current.update(section)
    setattr(config, name, model(**current))


def _apply_env_overrides(config: Ec2RaidConfig) -> None:
    """Apply environment variable overrides."""
    if region := os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION"):
        config.aws.region = region
    if profile := os.getenv("AWS_PROFILE"):
        config.aws.profile = profile
    if cli_path := os.getenv("EC2RAID_AWS_CLI"):
        config.aws.cli_path = cli_path
    if recovery_file := os.getenv("EC2RAID_RECOVERY_FILE"):
        config.migration.recovery_file = recovery_file
    if os.getenv("LOG_LEVEL"):
        config.log_level = os.getenv("LOG_LEVEL", config.log_level)


async def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration file."""
    try:
        content = await asyncio.to_thread(config_path.read_text)

        content = _expand_yaml_config(content)

        loaded = yaml.safe_load(content)
        # yaml.safe_load can return None, str, list, etc.
        if not isinstance(loaded, dict):
            return {}
        return loaded
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def _expand_yaml_config(content: str) -> str:
    """Securely expand environment variables with allowlist."""

    allowed_env_vars = {
        "HOME",
        "USER",
        "TMPDIR",
        "XDG_CONFIG_HOME",
        "XDG_DATA_HOME",
        "AWS_REGION",
        "AWS_PROFILE",
    }

    def replace_var(match):
        var_name = match.group(1)
        if var_name in allowed_env_vars:
            return os.getenv(var_name, match.group(0))  # Keep original if not found
        logger.warning(
            "Environment variable not in allowlist, skipping expansion",
            variable=var_name,
        )
        return match.group(0)

    return re.sub(r"\$\{([^}]+)\}", replace_var, content)
