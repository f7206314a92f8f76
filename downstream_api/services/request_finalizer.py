"""Request finalization: body, default headers and authorization."""

from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from downstream_api.auth.base import AuthorizationHeaderProvider
from downstream_api.core.content import (
    JSON_MEDIA_TYPE,
    HttpContent,
    ResponseContent,
    StreamContent,
)
from downstream_api.core.logging import get_logger
from downstream_api.models.options import DownstreamApiOptions
from downstream_api.models.principal import UserPrincipal


logger = get_logger(__name__)

# Headers owned by the finalizer, extra headers never replace them
PROTECTED_HEADERS = frozenset({"accept", "authorization"})


class DownstreamRequest:
    """Mutable description of an outgoing downstream request.

    Turned into an ``httpx.Request`` only when it is sent, so it can be
    finalized and customized in place beforehand.
    """

    def __init__(
        self,
        method: str,
        url: httpx.URL | str,
        *,
        headers: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
        params: Mapping[str, str] | None = None,
        content: HttpContent | None = None,
    ) -> None:
        self.method = method.upper()
        self.url = httpx.URL(url)
        self.headers = httpx.Headers(headers)
        self.params: dict[str, str] = dict(params or {})
        self.content = content

    def build(self, client: httpx.AsyncClient) -> httpx.Request:
        """Build the transport request, merging the client's defaults."""
        headers = httpx.Headers(self.headers)
        body: Any = None
        if self.content is not None:
            for name, value in self.content.headers.multi_items():
                headers[name] = value
            if isinstance(self.content, StreamContent | ResponseContent):
                body = self.content.aiter_bytes()
            else:
                body = self.content.read()

        return client.build_request(
            self.method,
            self.url,
            params=self.params or None,
            headers=headers,
            content=body,
        )

    def __repr__(self) -> str:
        return f"<DownstreamRequest [{self.method} {self.url}]>"


class RequestFinalizer:
    """Attaches content, the Accept header and the Authorization header."""

    def __init__(self, authorization_header_provider: AuthorizationHeaderProvider):
        self.authorization_header_provider = authorization_header_provider

    async def finalize(
        self,
        request: DownstreamRequest,
        content: HttpContent | None,
        options: DownstreamApiOptions,
        app_token: bool,
        user: UserPrincipal | None = None,
    ) -> None:
        """Prepare ``request`` for transport, in place.

        Afterwards the request carries exactly one ``Accept: application/json``
        and exactly one ``Authorization`` header; other caller headers are kept.
        Provider failures propagate unchanged.

        Args:
            request: Request to finalize
            content: Body to attach, None keeps the current one
            options: Options of the call, read only
            app_token: Request an application token, ``user`` is then ignored
            user: Principal for a user-delegated token
        """
        if content is not None:
            request.content = content

        request.headers["Accept"] = JSON_MEDIA_TYPE

        provider = self.authorization_header_provider
        if app_token:
            authorization = await provider.create_authorization_header_for_app(
                options.joined_scopes(), options
            )
        else:
            authorization = await provider.create_authorization_header_for_user(
                options.scopes, options, user
            )
        request.headers["Authorization"] = authorization

        for name, value in options.extra_headers.items():
            if name.lower() not in PROTECTED_HEADERS:
                request.headers[name] = value
        request.params.update(options.extra_query_parameters)

        if options.customize_http_request is not None:
            options.customize_http_request(request)

        logger.debug(
            "downstream_request_finalized",
            method=request.method,
            url=str(request.url),
            app_token=app_token,
            scheme=authorization.split(" ", 1)[0],
            has_content=request.content is not None,
        )
