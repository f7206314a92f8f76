"""HTTP client factory for downstream API calls.

Clients are created lazily per downstream service name and reused, so every
call to the same service shares one connection pool. The pool itself is
managed entirely by httpx.
"""

import os
import ssl
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx

from downstream_api.config.http import HTTPSettings
from downstream_api.core.logging import get_logger


logger = get_logger(__name__)

DEFAULT_CLIENT_NAME = ""


@runtime_checkable
class HttpClientFactoryProtocol(Protocol):
    """Source of transport clients, keyed by downstream service name."""

    def create_client(self, name: str | None = None) -> httpx.AsyncClient:
        """Return the client to use for the named service."""
        ...


class HTTPClientFactory:
    """Factory for named httpx clients.

    Provides centralized configuration for HTTP clients with:
    - Consistent timeout configuration
    - Unified connection limits
    - Proxy and CA bundle configuration from the environment
    - Per-service overrides (base URL, default headers, read timeout)
    """

    def __init__(self, settings: HTTPSettings | None = None) -> None:
        self.settings = settings or HTTPSettings()
        self._clients: dict[str, httpx.AsyncClient] = {}

    def create_client(self, name: str | None = None) -> httpx.AsyncClient:
        """Get the client for a service, creating it on first use.

        Args:
            name: Downstream service name, the default client when empty

        Returns:
            Shared httpx.AsyncClient for that name
        """
        key = name or DEFAULT_CLIENT_NAME
        client = self._clients.get(key)
        if client is None or client.is_closed:
            client = self.build_client(key)
            self._clients[key] = client
        return client

    def build_client(self, name: str = DEFAULT_CLIENT_NAME, **kwargs: Any) -> httpx.AsyncClient:
        """Create a new, unshared client configured for the named service.

        Args:
            name: Downstream service name used to look up overrides
            **kwargs: Additional httpx.AsyncClient arguments

        Returns:
            Configured httpx.AsyncClient instance
        """
        http_settings = self.settings
        overrides = http_settings.clients.get(name) if name else None

        timeout = httpx.Timeout(
            connect=http_settings.timeout_connect,
            read=(
                overrides.timeout_read
                if overrides and overrides.timeout_read is not None
                else http_settings.timeout_read
            ),
            write=30.0,
            pool=30.0,
        )

        limits = httpx.Limits(
            max_keepalive_connections=http_settings.max_keepalive_connections,
            max_connections=http_settings.max_connections,
        )

        proxy = _get_proxy_url()
        transport = kwargs.pop("transport", None) or httpx.AsyncHTTPTransport(
            limits=limits,
            http2=http_settings.http2,
            verify=_get_ssl_context(),
            proxy=proxy,
        )

        default_headers: dict[str, str] = {}
        if not http_settings.compression_enabled:
            # "identity" means no compression
            default_headers["accept-encoding"] = "identity"
        elif http_settings.accept_encoding:
            default_headers["accept-encoding"] = http_settings.accept_encoding

        if overrides:
            default_headers.update(overrides.headers)
            if overrides.base_url and "base_url" not in kwargs:
                kwargs["base_url"] = overrides.base_url

        if "headers" in kwargs:
            default_headers.update(kwargs.pop("headers"))

        logger.info(
            "http_client_created",
            client_name=name or "default",
            timeout_connect=http_settings.timeout_connect,
            max_connections=http_settings.max_connections,
            http2=http_settings.http2,
            has_proxy=proxy is not None,
            accept_encoding=default_headers.get("accept-encoding", "httpx default"),
        )

        return httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers=default_headers,
            **kwargs,
        )

    def register_client(self, name: str, client: httpx.AsyncClient) -> None:
        """Use an externally built client for the named service."""
        self._clients[name or DEFAULT_CLIENT_NAME] = client

    async def aclose(self) -> None:
        """Close every client created or registered through this factory."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()
        logger.debug("http_clients_closed", count=len(clients))

    async def __aenter__(self) -> "HTTPClientFactory":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    @asynccontextmanager
    async def managed_client(
        self, name: str = DEFAULT_CLIENT_NAME, **kwargs: Any
    ) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Create an unshared client that is closed on exit.

        Example:
            async with factory.managed_client("graph") as client:
                response = await client.get("https://api.example.com")
        """
        client = self.build_client(name, **kwargs)
        try:
            logger.debug("managed_http_client_created", client_name=name or "default")
            yield client
        finally:
            await client.aclose()
            logger.debug("managed_http_client_closed", client_name=name or "default")


def _get_proxy_url() -> str | None:
    """Get proxy URL from environment variables.

    Returns:
        str or None: Proxy URL if any proxy is set
    """
    # For HTTPS requests, prioritize HTTPS_PROXY
    https_proxy = os.environ.get("HTTPS_PROXY") or os.environ.get("https_proxy")
    all_proxy = os.environ.get("ALL_PROXY")
    http_proxy = os.environ.get("HTTP_PROXY") or os.environ.get("http_proxy")

    proxy_url = https_proxy or all_proxy or http_proxy

    if proxy_url:
        logger.debug("proxy_configured", proxy_url=proxy_url)

    return proxy_url


def _get_ssl_context() -> ssl.SSLContext | bool:
    """Get SSL verification configuration from environment variables.

    Returns:
        SSL context for a custom CA bundle, True for default verification,
        or False when verification is disabled (insecure)
    """
    ca_bundle = os.environ.get("REQUESTS_CA_BUNDLE") or os.environ.get("SSL_CERT_FILE")
    ssl_verify = os.environ.get("SSL_VERIFY", "true").lower()

    if ca_bundle and Path(ca_bundle).exists():
        logger.info("ssl_ca_bundle_configured", ca_bundle_path=ca_bundle)
        return ssl.create_default_context(cafile=ca_bundle)
    elif ssl_verify in ("false", "0", "no"):
        logger.warning(
            "ssl_verification_disabled",
            ssl_verify_value=ssl_verify,
            security_warning=True,
        )
        return False
    else:
        return True
