"""Per-call options for downstream API calls."""

import copy
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field, field_validator

from downstream_api.core.content import HttpContent
from downstream_api.core.errors import ConfigurationError


class AuthorizationHeaderProviderOptions(BaseModel):
    """Options understood by authorization-header providers.

    Besides describing the target endpoint, these carry provider-specific
    extras (``acquire_token_options``) which are passed through untouched.
    """

    base_url: str | None = Field(
        default=None,
        description="Base URL of the downstream API",
    )

    relative_path: str = Field(
        default="",
        description="Path appended to the base URL",
    )

    http_method: str = Field(
        default="GET",
        description="HTTP method used for the call",
    )

    protocol_scheme: str = Field(
        default="Bearer",
        description="Authorization scheme expected by the downstream API",
    )

    request_app_token: bool = Field(
        default=False,
        description="Request an application token instead of a user-delegated one",
    )

    acquire_token_options: dict[str, Any] = Field(
        default_factory=dict,
        description="Provider-specific token acquisition parameters",
    )

    customize_http_request: Callable[[Any], None] | None = Field(
        default=None,
        description="Hook invoked with the finalized request before it is sent",
        exclude=True,
    )

    @field_validator("http_method")
    @classmethod
    def normalize_http_method(cls, v: str) -> str:
        """Upper-case the HTTP method."""
        method = v.strip().upper()
        if not method:
            raise ValueError("HTTP method cannot be empty")
        return method


class DownstreamApiOptions(AuthorizationHeaderProviderOptions):
    """Options for one downstream API call.

    Options are treated as a read-only snapshot for the duration of a call:
    callers and the options monitor hand out clones, never the stored instance.
    """

    scopes: list[str] = Field(
        default_factory=list,
        description="Authorization scopes requested for the call",
    )

    content_type: str | None = Field(
        default=None,
        description="Content type used when the input is plain text",
    )

    serializer: Callable[[Any], HttpContent] | None = Field(
        default=None,
        description="Custom input encoder, overrides the built-in encodings",
        exclude=True,
    )

    deserializer: Callable[[HttpContent], Any] | None = Field(
        default=None,
        description="Custom output decoder, overrides the built-in JSON decoder",
        exclude=True,
    )

    extra_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Additional headers sent with every request",
    )

    extra_query_parameters: dict[str, str] = Field(
        default_factory=dict,
        description="Additional query parameters sent with every request",
    )

    def clone(self) -> "DownstreamApiOptions":
        """Return an independent copy safe to customize for a single call.

        Containers are copied, callables are shared.
        """
        return self.model_copy(
            update={
                "scopes": list(self.scopes),
                "extra_headers": dict(self.extra_headers),
                "extra_query_parameters": dict(self.extra_query_parameters),
                "acquire_token_options": copy.deepcopy(self.acquire_token_options),
            }
        )

    def joined_scopes(self) -> str:
        """Scopes as a single space-separated string."""
        return " ".join(self.scopes)

    def get_api_url(self) -> str:
        """Combine base URL and relative path with a single slash."""
        if not self.base_url:
            raise ConfigurationError("base_url is not configured for this downstream API")
        url = self.base_url.rstrip("/")
        relative_path = self.relative_path.lstrip("/")
        if relative_path:
            url = f"{url}/{relative_path}"
        return url
