"""
Settings for the calendar client, loaded from a YAML file.
"""

import logging
import zoneinfo
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .validation import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "~/.config/nostrcal/config.yaml"


class Settings(BaseModel):
    """User settings; every field has a usable default."""

    timezone: str = Field(
        "UTC",
        description=(
            "IANA zone used as local time for all-day events and day views"
        ),
    )
    query_limit: int = Field(100, ge=1)
    discovery_page_size: int = Field(20, ge=1)
    store_path: str = "~/.local/share/nostrcal/events.json"
    pubkey: Optional[str] = Field(
        None, description="Hex public key whose calendar is shown by default"
    )
    log_level: str = "INFO"

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        try:
            zoneinfo.ZoneInfo(v)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def tzinfo(self) -> zoneinfo.ZoneInfo:
        return zoneinfo.ZoneInfo(self.timezone)


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load settings from YAML.

    A missing file yields the defaults. A file that exists but cannot be
    parsed or validated raises ConfigurationError.
    """
    path = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
    if not path.exists():
        logger.warning(f"Configuration file not found: {path}")
        return Settings()

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (IOError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping in {path}")

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings in {path}: {e}") from e

    logger.debug(f"Loaded settings from {path}")
    return settings
