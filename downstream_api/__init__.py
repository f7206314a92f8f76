"""Helpers for calling downstream HTTP APIs with bearer authorization."""

from ._version import __version__
from .auth import AuthorizationHeaderProvider, StaticAuthorizationHeaderProvider
from .core.content import (
    ByteArrayContent,
    EmptyContent,
    HttpContent,
    JsonContent,
    ResponseContent,
    StreamContent,
    StringContent,
)
from .core.errors import (
    ConfigurationError,
    DownstreamApiError,
    HttpStatusError,
    UnsupportedContentTypeError,
)
from .models import DownstreamApiOptions, UserPrincipal
from .services import (
    DownstreamApi,
    DownstreamApiOptionsMonitor,
    DownstreamRequest,
    PayloadCodec,
    RequestFinalizer,
)


__all__ = [
    "__version__",
    "AuthorizationHeaderProvider",
    "ByteArrayContent",
    "ConfigurationError",
    "DownstreamApi",
    "DownstreamApiError",
    "DownstreamApiOptions",
    "DownstreamApiOptionsMonitor",
    "DownstreamRequest",
    "EmptyContent",
    "HttpContent",
    "HttpStatusError",
    "JsonContent",
    "PayloadCodec",
    "RequestFinalizer",
    "ResponseContent",
    "StaticAuthorizationHeaderProvider",
    "StreamContent",
    "StringContent",
    "UnsupportedContentTypeError",
    "UserPrincipal",
]
