"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Constructor arguments
  2. Environment variables  (BIGAPPLIST__CACHE__MAX_AGE_HOURS=72)
  3. bigapplist.yaml        (searched in cwd, then the user config dir)
  4. Hardcoded defaults

The config file is optional: all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_APP_NAME = "bigapplist"
_DEFAULT_CACHE_DIR = platformdirs.user_cache_dir(_APP_NAME)
_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir(_APP_NAME)

DEFAULT_URL = "https://api.steampowered.com/ISteamApps/GetAppList/v2/"


def _find_config_file() -> str | None:
    """Return the path of the first bigapplist.yaml found, or None."""
    candidates = [
        Path("bigapplist.yaml"),
        Path(_DEFAULT_CONFIG_DIR) / "bigapplist.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class RemoteSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = DEFAULT_URL
    timeout_seconds: float = Field(default=60.0, gt=0)
    user_agent: str = "bigapplist (+https://pypi.org/project/bigapplist/)"


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dir: str = _DEFAULT_CACHE_DIR
    max_age_hours: float = Field(default=24.0, ge=0)
    file_prefix: str = Field(default="AppList", pattern=r"^[A-Za-z0-9_-]+$")
    bugs_log_name: str = "BUGS.log"


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: BIGAPPLIST__REMOTE__URL=...
        env_prefix="BIGAPPLIST__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    remote: RemoteSettings = RemoteSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )

    @property
    def cache_dir(self) -> Path:
        return Path(self.cache.dir).expanduser()

    @property
    def bugs_log_path(self) -> Path:
        return self.cache_dir / self.cache.bugs_log_name
