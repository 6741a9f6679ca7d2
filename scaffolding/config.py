"""Configuration management for x402-scaffold.

Loads configuration from:
1. x402-scaffold.toml (current or parent directory) or ~/.x402/config.toml
2. Environment variables and a .env file (overrides)
"""

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .errors import ConfigError
from .manifest import DEFAULT_REPOSITORY_PREFIX, MANIFEST_FILENAME

CONFIG_FILENAME = "x402-scaffold.toml"


def default_home() -> Path:
    """Per-user state directory (~/.x402)."""
    return Path.home() / ".x402"


@dataclass
class DiscoveryConfig:
    """GitHub template discovery configuration."""

    api_base: str = "https://api.github.com"
    topic: str = "x402-template"
    token: str = ""  # Optional; raises the API rate limit
    timeout: int = 30
    per_page: int = 100


@dataclass
class CacheConfig:
    """Discovery cache configuration."""

    cache_dir: str = ""  # Empty = ~/.x402/cache
    ttl_hours: int = 1

    @property
    def path(self) -> Path:
        return Path(self.cache_dir).expanduser() if self.cache_dir else default_home() / "cache"


@dataclass
class TemplatesConfig:
    """Template manifest and download configuration."""

    manifest_name: str = MANIFEST_FILENAME
    # Trust anchor for template.repository; tied to the discovery source
    repository_prefix: str = DEFAULT_REPOSITORY_PREFIX
    default_branch: str = "main"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """Main configuration container."""

    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    templates: TemplatesConfig = field(default_factory=TemplatesConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        return cls(
            discovery=_section(DiscoveryConfig, data, "discovery"),
            cache=_section(CacheConfig, data, "cache"),
            templates=_section(TemplatesConfig, data, "templates"),
            logging=_section(LoggingConfig, data, "logging"),
        )


def _section(section_cls: type, data: dict[str, Any], name: str) -> Any:
    section_data = data.get(name, {})
    if not isinstance(section_data, dict):
        raise ConfigError(f"[{name}] must be a table")

    known = {f.name for f in fields(section_cls)}
    unknown = set(section_data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in [{name}]: {', '.join(sorted(unknown))}")
    return section_cls(**section_data)


def find_config_file() -> Path | None:
    """Find the config file in current or parent directories, then in ~/.x402.

    Returns:
        Path to the config file or None if not found.
    """
    current = Path.cwd()

    for directory in [current, *current.parents]:
        config_path = directory / CONFIG_FILENAME
        if config_path.exists():
            return config_path

    user_config = default_home() / "config.toml"
    if user_config.exists():
        return user_config

    return None


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Optional explicit path to a config file

    Returns:
        Config object with merged settings.

    Raises:
        ConfigError: If the config file is not valid TOML or has unknown keys.
    """
    load_dotenv()

    config_data: dict[str, Any] = {}

    if config_path is None:
        config_path = find_config_file()

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path, "rb") as f:
                config_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    # Apply environment variable overrides
    env_overrides = {
        "discovery": {
            "api_base": os.getenv("X402_GITHUB_API"),
            "token": os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN"),
        },
        "cache": {
            "cache_dir": os.getenv("X402_CACHE_DIR"),
            "ttl_hours": _int_or_none(os.getenv("X402_CACHE_TTL_HOURS")),
        },
        "logging": {
            "level": os.getenv("X402_LOG_LEVEL"),
        },
    }

    # Merge env overrides (only non-None values)
    for section, values in env_overrides.items():
        if section not in config_data:
            config_data[section] = {}
        for key, value in values.items():
            if value is not None:
                config_data[section][key] = value

    try:
        return Config.from_dict(config_data)
    except TypeError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def _int_or_none(value: str | None) -> int | None:
    """Convert string to int, or return None."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
