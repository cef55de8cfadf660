"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation,
with an optional YAML file supplying defaults.
"""

import logging
import os
import yaml
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for logmask.yaml in common locations
        possible_paths = [
            "logmask.yaml",  # Current directory
            "config/logmask.yaml",
            "../logmask.yaml",
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class MaskingSettings(BaseSettings):
    """Log masking configuration."""

    enabled: bool = Field(default=True, description="Load masking rules at all")
    config_dir: Path = Field(default=Path("."), description="Directory holding the patterns file")
    patterns_file_name: str = Field(
        default="log-masking.properties",
        description="Properties file with the masking rules"
    )
    encoding: str = Field(default="utf-8", description="Encoding of the patterns file")
    default_replacement: str = Field(
        default="*",
        description="Replacement used when a rule has no .REPLACER entry"
    )

    @field_validator("patterns_file_name")
    def validate_file_name(cls, v: str) -> str:
        """Reject blank file names."""
        if not v.strip():
            raise ValueError("patterns_file_name must not be blank")
        return v.strip()

    @property
    def patterns_path(self) -> Path:
        """Full path of the masking patterns file."""
        return self.config_dir / self.patterns_file_name

    class Config:
        env_prefix = "LOGMASK_MASKING_"


class Settings(BaseSettings):
    """Main application settings."""

    log_level: str = Field(default="INFO", description="Log level")
    metrics_enabled: bool = Field(default=True, description="Export Prometheus metrics")

    masking: MaskingSettings = Field(default_factory=MaskingSettings)

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        """Normalise and check the log level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level

    class Config:
        env_prefix = "LOGMASK_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    # Load config file data
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    settings = Settings()
    return settings


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("logging", "log_level"): "LOGMASK_LOG_LEVEL",
        ("logging", "metrics_enabled"): "LOGMASK_METRICS_ENABLED",
        ("masking", "enabled"): "LOGMASK_MASKING_ENABLED",
        ("masking", "config_dir"): "LOGMASK_MASKING_CONFIG_DIR",
        ("masking", "patterns_file_name"): "LOGMASK_MASKING_PATTERNS_FILE_NAME",
        ("masking", "encoding"): "LOGMASK_MASKING_ENCODING",
        ("masking", "default_replacement"): "LOGMASK_MASKING_DEFAULT_REPLACEMENT",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
