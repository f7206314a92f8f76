"""Shared test fixtures for downstream API tests.

External collaborators (authorization-header provider, HTTP transport) are
replaced by in-memory fakes; everything else runs for real.
"""

from collections.abc import AsyncGenerator, Callable, Generator

import httpx
import pytest
import pytest_asyncio
import structlog

from downstream_api.core.http_client import HTTPClientFactory
from downstream_api.models.options import DownstreamApiOptions
from downstream_api.services.downstream_api import DownstreamApi
from downstream_api.services.options_monitor import DownstreamApiOptionsMonitor
from tests.helpers.fakes import (
    RecordingAuthorizationHeaderProvider,
    RecordingTransport,
)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Keep structlog configuration from leaking between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def auth_provider() -> RecordingAuthorizationHeaderProvider:
    return RecordingAuthorizationHeaderProvider()


@pytest.fixture
def people_options() -> DownstreamApiOptions:
    return DownstreamApiOptions(
        base_url="https://api.example.com/v1/",
        relative_path="people",
        scopes=["people.read", "people.write"],
    )


@pytest.fixture
def json_transport() -> RecordingTransport:
    """Transport answering every request with the same JSON person."""
    return RecordingTransport(
        lambda request: httpx.Response(
            200,
            json={"name": "John", "age": 30},
        )
    )


@pytest_asyncio.fixture
async def client_factory() -> AsyncGenerator[HTTPClientFactory, None]:
    factory = HTTPClientFactory()
    yield factory
    await factory.aclose()


@pytest.fixture
def make_downstream_api(
    auth_provider: RecordingAuthorizationHeaderProvider,
    people_options: DownstreamApiOptions,
    client_factory: HTTPClientFactory,
) -> Callable[[RecordingTransport], DownstreamApi]:
    """Build a DownstreamApi whose "people" client goes through a fake transport."""

    def _make(transport: RecordingTransport) -> DownstreamApi:
        client_factory.register_client(
            "people", httpx.AsyncClient(transport=httpx.MockTransport(transport))
        )
        monitor = DownstreamApiOptionsMonitor({"people": people_options})
        return DownstreamApi(auth_provider, monitor, client_factory)

    return _make
