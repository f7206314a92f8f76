"""Configuration for downstream API calls."""

from .http import HTTPClientOverrides, HTTPSettings
from .logging import LoggingSettings
from .settings import Settings, get_settings


__all__ = [
    "HTTPClientOverrides",
    "HTTPSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
]
