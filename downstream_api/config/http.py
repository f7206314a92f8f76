"""HTTP client configuration settings."""

from pydantic import BaseModel, Field


class HTTPClientOverrides(BaseModel):
    """Per-client overrides applied to a named HTTP client."""

    base_url: str | None = Field(
        default=None,
        description="Base URL set on the named httpx client",
    )

    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Default headers sent by the named client",
    )

    timeout_read: float | None = Field(
        default=None,
        description="Read timeout override in seconds",
    )


class HTTPSettings(BaseModel):
    """HTTP client configuration settings.

    Controls how the client factory builds the httpx clients used as transport.
    """

    compression_enabled: bool = Field(
        default=True,
        description="Enable compression for downstream requests (Accept-Encoding header)",
    )

    accept_encoding: str = Field(
        default="gzip, deflate",
        description="Accept-Encoding header value when compression is enabled",
    )

    timeout_connect: float = Field(default=5.0, description="Connect timeout in seconds")

    timeout_read: float = Field(default=30.0, description="Read timeout in seconds")

    max_keepalive_connections: int = Field(
        default=20,
        description="Max keep-alive connections kept in the pool",
        ge=0,
    )

    max_connections: int = Field(
        default=100,
        description="Max concurrent connections",
        ge=1,
    )

    http2: bool = Field(
        default=False,
        description="Enable HTTP/2 (requires httpx[http2])",
    )

    clients: dict[str, HTTPClientOverrides] = Field(
        default_factory=dict,
        description="Named client overrides keyed by downstream service name",
    )
