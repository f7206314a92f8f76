"""HTTP content objects exchanged with downstream APIs.

Content objects carry a body plus the content headers describing it
(``Content-Type``, ``Content-Length``, ...). They are used on both sides of a
call: the request body built by the payload codec, and the raw content view
of a downstream response.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterable, AsyncIterator, Iterator
from typing import IO, Any

import httpx
import pydantic_core
from pydantic import TypeAdapter


JSON_MEDIA_TYPE = "application/json"
TEXT_MEDIA_TYPE = "text/plain"

# Header names that describe the body rather than the message
CONTENT_HEADER_NAMES = frozenset(
    {
        "allow",
        "content-disposition",
        "content-encoding",
        "content-language",
        "content-length",
        "content-location",
        "content-md5",
        "content-range",
        "content-type",
        "expires",
        "last-modified",
    }
)

_CHUNK_SIZE = 64 * 1024


def parse_media_type(content_type: str | None) -> str | None:
    """Extract the lowercase media type from a Content-Type header value."""
    if not content_type:
        return None
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type or None


def parse_charset(content_type: str | None) -> str | None:
    """Extract the charset parameter from a Content-Type header value."""
    if not content_type:
        return None
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset":
            return value.strip().strip('"') or None
    return None


class HttpContent(ABC):
    """Base class for request and response bodies."""

    def __init__(self) -> None:
        self.headers = httpx.Headers()

    @property
    def media_type(self) -> str | None:
        """Media type of the body, without parameters."""
        return parse_media_type(self.headers.get("content-type"))

    @property
    def charset(self) -> str | None:
        return parse_charset(self.headers.get("content-type"))

    @property
    def content_length(self) -> int | None:
        value = self.headers.get("content-length")
        return int(value) if value is not None else None

    @abstractmethod
    def read(self) -> bytes:
        """Return the whole body."""

    async def aread(self) -> bytes:
        return self.read()

    def read_text(self) -> str:
        return self.read().decode(self.charset or "utf-8")

    async def aread_text(self) -> str:
        return (await self.aread()).decode(self.charset or "utf-8")

    def iter_bytes(self) -> Iterator[bytes]:
        yield self.read()

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        yield await self.aread()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} media_type={self.media_type!r}>"


class EmptyContent(HttpContent):
    """Content without a body and without headers."""

    def read(self) -> bytes:
        return b""


class ByteArrayContent(HttpContent):
    """In-memory binary body. No content type is declared."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        super().__init__()
        # Copy so later changes to a caller's bytearray don't leak into the request
        self._data = bytes(data)
        self.headers["Content-Length"] = str(len(self._data))

    def read(self) -> bytes:
        return self._data


class StringContent(ByteArrayContent):
    """Text body encoded with an explicit media type and charset."""

    def __init__(
        self,
        text: str,
        media_type: str | None = None,
        encoding: str = "utf-8",
    ) -> None:
        super().__init__(text.encode(encoding))
        self.text = text
        self.headers["Content-Type"] = (
            f"{media_type or TEXT_MEDIA_TYPE}; charset={encoding}"
        )


class JsonContent(ByteArrayContent):
    """JSON body produced from a structured value.

    When a pydantic ``TypeAdapter`` is supplied it is used to encode the value,
    otherwise pydantic-core's structural encoder handles models, dataclasses,
    mappings and sequences. Both paths produce the same document for the same
    logical type.
    """

    def __init__(self, value: Any, type_adapter: TypeAdapter[Any] | None = None):
        if type_adapter is not None:
            body = type_adapter.dump_json(value)
        else:
            body = pydantic_core.to_json(value)
        super().__init__(body)
        self.value = value
        self.headers["Content-Type"] = f"{JSON_MEDIA_TYPE}; charset=utf-8"


class StreamContent(HttpContent):
    """Body read from a file-like object or an async byte iterator.

    The underlying stream is consumed at most once; the length is unknown so
    no ``Content-Length`` is declared.
    """

    def __init__(self, stream: IO[Any] | AsyncIterable[bytes]) -> None:
        super().__init__()
        self._stream = stream
        self._consumed = False

    def _mark_consumed(self) -> None:
        if self._consumed:
            raise httpx.StreamConsumed()
        self._consumed = True

    @staticmethod
    def _to_bytes(chunk: bytes | str) -> bytes:
        return chunk.encode("utf-8") if isinstance(chunk, str) else chunk

    def iter_bytes(self) -> Iterator[bytes]:
        if isinstance(self._stream, AsyncIterable):
            raise RuntimeError("Attempted to read an async stream synchronously")
        self._mark_consumed()
        while chunk := self._stream.read(_CHUNK_SIZE):
            yield self._to_bytes(chunk)

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        if isinstance(self._stream, AsyncIterable):
            self._mark_consumed()
            async for chunk in self._stream:
                yield self._to_bytes(chunk)
        else:
            for chunk in self.iter_bytes():
                yield chunk

    def read(self) -> bytes:
        return b"".join(self.iter_bytes())

    async def aread(self) -> bytes:
        return b"".join([chunk async for chunk in self.aiter_bytes()])


class ResponseContent(HttpContent):
    """Content view over a downstream ``httpx.Response``.

    Headers are the content headers of the response. Reading goes through the
    response, so the body is fetched from the network at most once.
    """

    def __init__(self, response: httpx.Response) -> None:
        super().__init__()
        self.response = response
        self.headers = httpx.Headers(
            [
                (name, value)
                for name, value in response.headers.multi_items()
                if name.lower() in CONTENT_HEADER_NAMES
            ]
        )

    def read(self) -> bytes:
        try:
            return self.response.content
        except httpx.ResponseNotRead:
            return self.response.read()

    async def aread(self) -> bytes:
        return await self.response.aread()

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        async for chunk in self.response.aiter_bytes():
            yield chunk


def has_content(response: httpx.Response) -> bool:
    """Whether a response declares any body."""
    if "transfer-encoding" in response.headers:
        return True
    return any(name in CONTENT_HEADER_NAMES for name in response.headers.keys())
