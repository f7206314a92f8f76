"""Data models for downstream API calls."""

from .inputs import (
    Bytes,
    DownstreamInput,
    Empty,
    PrebuiltContent,
    Stream,
    Structured,
    Text,
)
from .options import AuthorizationHeaderProviderOptions, DownstreamApiOptions
from .principal import UserPrincipal


__all__ = [
    "AuthorizationHeaderProviderOptions",
    "Bytes",
    "DownstreamApiOptions",
    "DownstreamInput",
    "Empty",
    "PrebuiltContent",
    "Stream",
    "Structured",
    "Text",
    "UserPrincipal",
]
