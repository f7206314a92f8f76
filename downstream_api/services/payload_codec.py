"""Conversion between caller values and downstream HTTP payloads."""

import inspect
from functools import lru_cache
from typing import Any

import httpx
from pydantic import TypeAdapter

from downstream_api.core.content import (
    JSON_MEDIA_TYPE,
    TEXT_MEDIA_TYPE,
    ByteArrayContent,
    EmptyContent,
    HttpContent,
    JsonContent,
    ResponseContent,
    StreamContent,
    StringContent,
    has_content,
    parse_charset,
    parse_media_type,
)
from downstream_api.core.errors import HttpStatusError, UnsupportedContentTypeError
from downstream_api.core.logging import get_logger
from downstream_api.models.inputs import (
    Bytes,
    DownstreamInput,
    Empty,
    PrebuiltContent,
    Stream,
    Text,
)
from downstream_api.models.options import DownstreamApiOptions


logger = get_logger(__name__)


@lru_cache(maxsize=256)
def _cached_type_adapter(output_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(output_type)


def _type_adapter_for(output_type: Any) -> TypeAdapter[Any]:
    try:
        return _cached_type_adapter(output_type)
    except TypeError:
        # Unhashable types, e.g. Annotated with dict metadata
        return TypeAdapter(output_type)


def is_json_media_type(media_type: str | None) -> bool:
    """Whether a media type is decoded by the built-in JSON decoder.

    Absent media types are treated as JSON.
    """
    if media_type is None:
        return True
    return media_type == JSON_MEDIA_TYPE or media_type.endswith("+json")


def is_raw_content_type(output_type: Any) -> bool:
    """Whether the caller asked for the raw response content."""
    return isinstance(output_type, type) and issubclass(output_type, HttpContent)


async def _read_error_body(response: httpx.Response) -> str | None:
    try:
        await response.aread()
    except httpx.StreamError:
        return None
    return response.text or None


class PayloadCodec:
    """Encodes request inputs and decodes downstream responses."""

    @staticmethod
    def serialize_input(
        value: Any,
        options: DownstreamApiOptions,
        type_adapter: TypeAdapter[Any] | None = None,
    ) -> HttpContent | None:
        """Turn an input value into request content.

        Branches, first match wins:

        1. no value: no content
        2. content built by the caller: returned as is
        3. ``options.serializer``: its result, verbatim
        4. text: ``StringContent`` typed with ``options.content_type`` or text/plain
        5. bytes: ``ByteArrayContent``
        6. readable stream: ``StreamContent``
        7. anything else: ``JsonContent``, through ``type_adapter`` when given

        Args:
            value: Raw value or an already classified ``DownstreamInput``
            options: Options of the call
            type_adapter: Precompiled pydantic adapter for structured values

        Returns:
            Request content, or None when there is no body
        """
        variant = DownstreamInput.of(value)

        if isinstance(variant, Empty):
            return None
        if isinstance(variant, PrebuiltContent):
            return variant.content
        if options.serializer is not None:
            return options.serializer(variant.raw)
        if isinstance(variant, Text):
            content_type = options.content_type or TEXT_MEDIA_TYPE
            return StringContent(
                variant.text,
                media_type=parse_media_type(content_type),
                encoding=parse_charset(content_type) or "utf-8",
            )
        if isinstance(variant, Bytes):
            return ByteArrayContent(variant.data)
        if isinstance(variant, Stream):
            return StreamContent(variant.stream)
        return JsonContent(variant.raw, type_adapter)

    @staticmethod
    async def deserialize_output(
        response: httpx.Response,
        options: DownstreamApiOptions,
        output_type: Any = Any,
        type_adapter: TypeAdapter[Any] | None = None,
    ) -> Any:
        """Validate a response and convert it to ``output_type``.

        The status is always checked first, even when a custom deserializer is
        configured. Asking for ``HttpContent`` returns the raw content, unread
        when content headers are present; a response whose body turns out to
        be empty and that has no content headers yields ``EmptyContent``.

        Args:
            response: Downstream response
            options: Options of the call
            output_type: Requested result type
            type_adapter: Precompiled pydantic adapter for ``output_type``

        Returns:
            Decoded value, the raw content, or None for an empty JSON body

        Raises:
            HttpStatusError: Status outside 2xx
            UnsupportedContentTypeError: Non-JSON body and no deserializer
        """
        if not response.is_success:
            raise HttpStatusError(
                response.status_code,
                body=await _read_error_body(response),
                headers=response.headers,
                reason_phrase=response.reason_phrase,
            )

        if is_raw_content_type(output_type):
            if not has_content(response) and not await response.aread():
                return EmptyContent()
            return ResponseContent(response)

        await response.aread()
        content = ResponseContent(response)

        if options.deserializer is not None:
            result = options.deserializer(content)
            if inspect.isawaitable(result):
                result = await result
            return result

        media_type = content.media_type
        if not is_json_media_type(media_type):
            raise UnsupportedContentTypeError(media_type or "")

        body = content.read()
        if not body.strip():
            return None

        adapter = type_adapter or _type_adapter_for(output_type)
        charset = content.charset
        if charset and charset.lower().replace("-", "").replace("_", "") != "utf8":
            return adapter.validate_json(body.decode(charset))
        return adapter.validate_json(body)
