"""Application configuration module."""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseSettings, validator

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings."""

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./thinkpro.db"
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    AUTO_CREATE_TABLES: bool = False

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None

    # API settings
    PROJECT_NAME: str = "ThinkPro Assessments"
    API_PREFIX: str = ""
    ALLOW_ORIGINS: List[str] = ["*"]
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Assessment engine settings
    ATTEMPT_WRITE_RETRIES: int = 3

    # Development identity fixtures
    IDENTITY_FILE: Optional[str] = None

    @validator("LOG_LEVEL")
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @validator("ATTEMPT_WRITE_RETRIES", "DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE")
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    class Config:
        """Pydantic settings config."""
        env_file = ".env"
        case_sensitive = True


def _load_yaml_overrides(path: Optional[str]) -> Dict[str, Any]:
    """
    Load setting overrides from a YAML file.

    Args:
        path: Path to the YAML file, or None

    Returns:
        Mapping of setting names to values (empty if the file is missing)
    """
    if not path:
        return {}

    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}")
        return {}

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return data


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Build settings from defaults, an optional YAML file and the environment.

    Environment variables take precedence over values from the YAML file.

    Args:
        config_path: Optional YAML path; defaults to the CONFIG_PATH variable

    Returns:
        Loaded settings
    """
    overrides = _load_yaml_overrides(config_path or os.environ.get("CONFIG_PATH"))
    overrides = {k: v for k, v in overrides.items() if k not in os.environ}
    return Settings(**overrides)


# Create global settings instance
settings = load_settings()
