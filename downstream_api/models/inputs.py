"""Tagged input variants accepted by the payload codec.

A raw caller value is classified once, at the boundary, into one of the
variants below. The codec then branches on the variant class instead of
probing the value again.
"""

import io
from abc import ABC, abstractmethod
from collections.abc import AsyncIterable
from dataclasses import dataclass
from typing import IO, Any, Generic, TypeVar

from downstream_api.core.content import HttpContent


T = TypeVar("T")


class DownstreamInput(ABC):
    """Base class of all input variants."""

    @property
    @abstractmethod
    def raw(self) -> Any:
        """The caller's original value."""

    @classmethod
    def of(cls, value: Any) -> "DownstreamInput":
        """Classify a raw value into its input variant.

        Variants are returned unchanged.
        """
        if isinstance(value, DownstreamInput):
            return value
        if value is None:
            return Empty()
        if isinstance(value, HttpContent):
            return PrebuiltContent(value)
        if isinstance(value, str):
            return Text(value)
        if isinstance(value, bytes | bytearray | memoryview):
            return Bytes(value)
        if _is_stream(value):
            return Stream(value)
        return Structured(value)


def _is_stream(value: Any) -> bool:
    if isinstance(value, io.IOBase | AsyncIterable):
        return True
    return callable(getattr(value, "read", None)) and hasattr(value, "readable")


@dataclass(frozen=True)
class Empty(DownstreamInput):
    """No request body."""

    @property
    def raw(self) -> None:
        return None


@dataclass(frozen=True)
class PrebuiltContent(DownstreamInput):
    """Content already encoded by the caller."""

    content: HttpContent

    @property
    def raw(self) -> HttpContent:
        return self.content


@dataclass(frozen=True)
class Text(DownstreamInput):
    text: str

    @property
    def raw(self) -> str:
        return self.text


@dataclass(frozen=True)
class Bytes(DownstreamInput):
    data: bytes | bytearray | memoryview

    @property
    def raw(self) -> bytes | bytearray | memoryview:
        return self.data


@dataclass(frozen=True)
class Stream(DownstreamInput):
    """Readable binary file-like object or async byte iterator."""

    stream: IO[Any] | AsyncIterable[bytes]

    @property
    def raw(self) -> IO[Any] | AsyncIterable[bytes]:
        return self.stream


@dataclass(frozen=True)
class Structured(DownstreamInput, Generic[T]):
    """Any other value, encoded as JSON."""

    value: T

    @property
    def raw(self) -> T:
        return self.value
