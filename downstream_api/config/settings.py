import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from downstream_api.core.errors import ConfigurationError
from downstream_api.core.logging import get_logger
from downstream_api.models.options import DownstreamApiOptions

from .http import HTTPSettings
from .logging import LoggingSettings


__all__ = ["Settings", "get_settings", "find_toml_config_file"]

CONFIG_FILE_ENV = "DOWNSTREAM_API_CONFIG_FILE"


def find_toml_config_file() -> Path | None:
    """Find the TOML configuration file.

    Lookup order:
    1. .downstream_api.toml in current directory
    2. config.toml in XDG_CONFIG_HOME/downstream_api/
    """
    candidates = [Path.cwd() / ".downstream_api.toml"]
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(xdg_config) if xdg_config else Path.home() / ".config"
    candidates.append(config_home / "downstream_api" / "config.toml")

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    """
    Configuration settings for downstream API calls.

    Settings are loaded from environment variables, .env files, and TOML configuration files.
    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    http: HTTPSettings = Field(
        default_factory=HTTPSettings,
        description="HTTP client configuration settings",
    )

    downstream_apis: dict[str, DownstreamApiOptions] = Field(
        default_factory=dict,
        description="Named downstream API options keyed by service name",
    )

    @classmethod
    def load_toml_config(cls, toml_path: Path) -> dict[str, Any]:
        """Load configuration from a TOML file."""
        try:
            with toml_path.open("rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read TOML config file {toml_path}: {e}"
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {toml_path}: {e}") from e

    @classmethod
    def from_config(
        cls, config_path: Path | str | None = None, **kwargs: Any
    ) -> "Settings":
        """Create Settings from a TOML file, environment and keyword overrides.

        Environment variables win over TOML values, keyword arguments win over both.
        """
        if config_path is None:
            config_path_env = os.environ.get(CONFIG_FILE_ENV)
            if config_path_env:
                config_path = Path(config_path_env)

        if isinstance(config_path, str):
            config_path = Path(config_path)

        if config_path is None:
            config_path = find_toml_config_file()

        config_data: dict[str, Any] = {}
        if config_path and config_path.exists():
            config_data = cls.load_toml_config(config_path)
            get_logger(__name__).info(
                "config_file_loaded", path=str(config_path), category="config"
            )

        env_settings = cls()
        merged = env_settings.model_dump(exclude_unset=True)
        data = {**config_data}
        for key, value in merged.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        data.update(kwargs)
        return cls.model_validate(data)


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings.from_config()
