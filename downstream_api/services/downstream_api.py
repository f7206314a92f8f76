"""High-level client for calling downstream APIs with delegated or app tokens."""

from collections.abc import Callable
from typing import Any

import httpx
from pydantic import TypeAdapter

from downstream_api.auth.base import AuthorizationHeaderProvider
from downstream_api.config.logging import LoggingSettings
from downstream_api.core.content import HttpContent
from downstream_api.core.http_client import HTTPClientFactory, HttpClientFactoryProtocol
from downstream_api.core.logging import get_logger
from downstream_api.models.options import DownstreamApiOptions
from downstream_api.models.principal import UserPrincipal
from downstream_api.services.options_monitor import DownstreamApiOptionsMonitor
from downstream_api.services.payload_codec import PayloadCodec
from downstream_api.services.request_finalizer import DownstreamRequest, RequestFinalizer


logger = get_logger(__name__)

OptionsOverride = Callable[[DownstreamApiOptions], None]

_LOGGED_BODY_LIMIT = 1024


class DownstreamApi:
    """Calls named downstream APIs.

    Each call takes a snapshot of the named options, applies the caller's
    override to it, serializes the input, finalizes the request with the
    authorization header, sends it through the named HTTP client and
    deserializes the response.
    """

    def __init__(
        self,
        authorization_header_provider: AuthorizationHeaderProvider,
        options_monitor: DownstreamApiOptionsMonitor | None = None,
        http_client_factory: HttpClientFactoryProtocol | None = None,
        logging_settings: LoggingSettings | None = None,
    ) -> None:
        self.options_monitor = options_monitor or DownstreamApiOptionsMonitor()
        self._owns_http_client_factory = http_client_factory is None
        self.http_client_factory = http_client_factory or HTTPClientFactory()
        self.finalizer = RequestFinalizer(authorization_header_provider)
        self.logging_settings = logging_settings or LoggingSettings()

    async def aclose(self) -> None:
        """Close the HTTP clients of a factory created by this instance.

        A factory passed in by the caller is left open.
        """
        if self._owns_http_client_factory and isinstance(
            self.http_client_factory, HTTPClientFactory
        ):
            await self.http_client_factory.aclose()

    async def __aenter__(self) -> "DownstreamApi":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    # ==================== Raw calls ====================

    async def call_api(
        self,
        service_name: str | None,
        options_override: OptionsOverride | None = None,
        user: UserPrincipal | None = None,
        content: HttpContent | None = None,
    ) -> httpx.Response:
        """Call a downstream API and return the response without checking it.

        The token kind follows ``request_app_token`` of the effective options.
        """
        options = self._merge_options(service_name, options_override)
        return await self._send(
            service_name, options, options.request_app_token, content, user
        )

    # ==================== Typed calls ====================

    async def call_api_for_user(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        user: UserPrincipal | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        """Call a downstream API with a user-delegated token."""
        options = self._merge_options(service_name, options_override)
        return await self._call_typed(
            service_name,
            options,
            False,
            input_value,
            output_type,
            user,
            input_type_adapter,
            output_type_adapter,
        )

    async def call_api_for_app(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        """Call a downstream API with an application token."""
        options = self._merge_options(service_name, options_override)
        return await self._call_typed(
            service_name,
            options,
            True,
            input_value,
            output_type,
            None,
            input_type_adapter,
            output_type_adapter,
        )

    # ==================== Verb helpers ====================

    async def get_for_user(
        self,
        service_name: str | None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        user: UserPrincipal | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "GET",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=False,
            user=user,
            output_type_adapter=output_type_adapter,
        )

    async def get_for_app(
        self,
        service_name: str | None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "GET",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=True,
            output_type_adapter=output_type_adapter,
        )

    async def post_for_user(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        user: UserPrincipal | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "POST",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=False,
            input_value=input_value,
            input_type_adapter=input_type_adapter,
            user=user,
            output_type_adapter=output_type_adapter,
        )

    async def post_for_app(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "POST",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=True,
            input_value=input_value,
            input_type_adapter=input_type_adapter,
            output_type_adapter=output_type_adapter,
        )

    async def put_for_user(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        user: UserPrincipal | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "PUT",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=False,
            input_value=input_value,
            input_type_adapter=input_type_adapter,
            user=user,
            output_type_adapter=output_type_adapter,
        )

    async def put_for_app(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "PUT",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=True,
            input_value=input_value,
            input_type_adapter=input_type_adapter,
            output_type_adapter=output_type_adapter,
        )

    async def patch_for_user(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        user: UserPrincipal | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "PATCH",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=False,
            input_value=input_value,
            input_type_adapter=input_type_adapter,
            user=user,
            output_type_adapter=output_type_adapter,
        )

    async def patch_for_app(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "PATCH",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=True,
            input_value=input_value,
            input_type_adapter=input_type_adapter,
            output_type_adapter=output_type_adapter,
        )

    async def delete_for_user(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        user: UserPrincipal | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "DELETE",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=False,
            input_value=input_value,
            input_type_adapter=input_type_adapter,
            user=user,
            output_type_adapter=output_type_adapter,
        )

    async def delete_for_app(
        self,
        service_name: str | None,
        input_value: Any = None,
        *,
        output_type: Any = Any,
        options_override: OptionsOverride | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        return await self._call_verb(
            "DELETE",
            service_name,
            output_type=output_type,
            options_override=options_override,
            app_token=True,
            input_value=input_value,
            input_type_adapter=input_type_adapter,
            output_type_adapter=output_type_adapter,
        )

    # ==================== Internals ====================

    def _merge_options(
        self,
        service_name: str | None,
        options_override: OptionsOverride | None,
        http_method: str | None = None,
    ) -> DownstreamApiOptions:
        options = self.options_monitor.get(service_name)
        if options_override is not None:
            options_override(options)
        if http_method is not None:
            options.http_method = http_method
        return options

    async def _call_verb(
        self,
        http_method: str,
        service_name: str | None,
        *,
        output_type: Any,
        options_override: OptionsOverride | None,
        app_token: bool,
        input_value: Any = None,
        user: UserPrincipal | None = None,
        input_type_adapter: TypeAdapter[Any] | None = None,
        output_type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        options = self._merge_options(service_name, options_override, http_method)
        return await self._call_typed(
            service_name,
            options,
            app_token,
            input_value,
            output_type,
            user,
            input_type_adapter,
            output_type_adapter,
        )

    async def _call_typed(
        self,
        service_name: str | None,
        options: DownstreamApiOptions,
        app_token: bool,
        input_value: Any,
        output_type: Any,
        user: UserPrincipal | None,
        input_type_adapter: TypeAdapter[Any] | None,
        output_type_adapter: TypeAdapter[Any] | None,
    ) -> Any:
        content = PayloadCodec.serialize_input(input_value, options, input_type_adapter)
        response = await self._send(service_name, options, app_token, content, user)
        return await PayloadCodec.deserialize_output(
            response, options, output_type, output_type_adapter
        )

    async def _send(
        self,
        service_name: str | None,
        options: DownstreamApiOptions,
        app_token: bool,
        content: HttpContent | None,
        user: UserPrincipal | None,
    ) -> httpx.Response:
        request = DownstreamRequest(options.http_method, options.get_api_url())
        await self.finalizer.finalize(request, content, options, app_token, user)

        client = self.http_client_factory.create_client(service_name)
        http_request = request.build(client)

        logger.debug(
            "downstream_request_sending",
            service_name=service_name or "default",
            method=request.method,
            url=str(http_request.url),
        )
        try:
            response = await client.send(http_request)
        except httpx.HTTPError as e:
            logger.error(
                "downstream_transport_error",
                service_name=service_name or "default",
                method=request.method,
                url=str(http_request.url),
                error=str(e),
                exc_info=e,
            )
            raise

        if not response.is_success:
            self._log_error_response(service_name, response)
        else:
            logger.debug(
                "downstream_response_received",
                service_name=service_name or "default",
                status_code=response.status_code,
            )
        return response

    def _log_error_response(
        self, service_name: str | None, response: httpx.Response
    ) -> None:
        body = None
        if self.logging_settings.log_response_body_on_error:
            body = response.text[:_LOGGED_BODY_LIMIT] or None
        logger.warning(
            "downstream_response_error",
            service_name=service_name or "default",
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=body,
        )
