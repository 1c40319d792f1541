"""
Configuration loader for the Aegis Intel application.

This module is responsible for loading application settings. It follows a
priority system:
1. Values passed directly to the Settings constructor.
2. Environment variables (can be populated by a .env file for development).
3. The YAML application configuration ('config.yaml' by default).

Scoring weights and thresholds are not configurable; they are versioned
constants in the scoring modules.
"""

import logging
import os

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .schemas import AppConfig

# Get a logger instance for this specific file
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Environment-level settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    config_path: str = Field("config.yaml", alias="AEGIS_CONFIG_PATH")
    log_level: str | None = Field(None, alias="AEGIS_LOG_LEVEL")
    log_config_path: str = Field("logging.yaml", alias="LOG_CFG")


class ConfigurationError(Exception):
    """Raised when the YAML configuration exists but cannot be used."""


def load_config_from_yaml(path: str = "config.yaml") -> AppConfig:
    """
    Loads and validates the main application configuration from a YAML file.

    A missing file is not an error: the defaults are used instead.

    Raises:
        ConfigurationError: If the file is unreadable, not YAML, or fails validation.
    """
    if not os.path.exists(path):
        logger.warning("%s not found. Using default application settings.", path)
        return AppConfig.model_validate({})
    try:
        with open(path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
        return AppConfig.model_validate(config_data)
    except ValidationError as e:
        logger.critical(
            "Invalid configuration in %s. Please check the structure. Error: %s", path, e
        )
        raise ConfigurationError(f"Invalid configuration in {path}") from e
    except (OSError, yaml.YAMLError) as e:
        logger.critical("An unexpected error occurred while loading %s: %s", path, e)
        raise ConfigurationError(f"Could not read {path}: {e}") from e


def load_app_config(settings: Settings) -> AppConfig:
    """Loads the YAML configuration and applies environment overrides."""
    config = load_config_from_yaml(settings.config_path)
    if settings.log_level:
        config.log_level = settings.log_level.upper()
    return config


# --- Single Source of Truth ---
# Settings and configuration are loaded once when this module is first imported.
# Other modules can simply `from .config_loader import CONFIG, SETTINGS`.


SETTINGS = Settings()  # type: ignore
CONFIG = load_app_config(SETTINGS)
