"""
Configuration module for the Retro EVC weather backend.

The config file is written by the setup step and read exactly once at
process start. It must contain a primary location with both a province
and a location (citypage) code; everything else is optional.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./cfg/retro-evc-config.json"
CONFIG_PATH_ENV = "RETRO_EVC_CONFIG"

DEFAULT_TIMEZONE = "America/Winnipeg"


class PrimaryLocation(BaseModel):
    """Location whose citypage drives the main screen."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    province: str = Field(min_length=1)
    location: str = Field(min_length=1)
    name: Optional[str] = None


class AQHILocation(BaseModel):
    """Datamart AQHI region folder and community code."""
    model_config = ConfigDict(frozen=True)

    region: str = Field(min_length=1)
    code: str = Field(min_length=1)


class AppConfig(BaseModel):
    """
    Immutable process configuration.

    Feature flags:
    - show_mb_highlow: enables the Manitoba regional high/low feed and its
      endpoint. When false the feed is never scheduled and the endpoint
      answers with no body.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    primary_location: PrimaryLocation = Field(alias="primaryLocation")
    show_mb_highlow: bool = Field(default=False, alias="showMBHighLow")
    timezone: str = DEFAULT_TIMEZONE
    climate_station_id: Optional[str] = Field(default=None, alias="climateStationId")
    aqhi: Optional[AQHILocation] = None
    alerts_feed_url: Optional[str] = Field(default=None, alias="alertsFeedUrl")
    music_dir: str = Field(default="music", alias="musicDir")
    crawler_file: str = Field(default="cfg/crawler.txt", alias="crawlerFile")

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def config_path_from_env() -> str:
    """Resolve the config file path, honouring RETRO_EVC_CONFIG."""
    return os.getenv(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load and validate the config file.

    Raises:
        ConfigError: if the file is missing, empty, not JSON, or lacks
            primaryLocation.province / primaryLocation.location.
    """
    config_path = Path(path or config_path_from_env())

    if not config_path.is_file():
        raise ConfigError(f"No config file found at {config_path}, run setup first!")

    raw = config_path.read_text(encoding="utf-8")
    if not raw.strip():
        raise ConfigError(f"Config file {config_path} has no data")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} is corrupted")

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config file {config_path} is corrupted: {e}")

    location = config.primary_location
    logger.info(
        f"Loaded config with primary location of {location.name or 'N/A'} - {location.province}"
    )
    return config
