"""Exceptions raised by the downstream API helpers."""

from collections.abc import Mapping


class DownstreamApiError(Exception):
    """Base exception for all downstream API errors."""

    pass


class ConfigurationError(DownstreamApiError):
    """Raised when downstream API options are incomplete or invalid."""

    pass


class HttpStatusError(DownstreamApiError):
    """Raised when the downstream API answered with a non-success status."""

    def __init__(
        self,
        status_code: int,
        body: str | None = None,
        headers: Mapping[str, str] | None = None,
        reason_phrase: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.headers = dict(headers or {})
        self.reason_phrase = reason_phrase
        message = f"Response status code does not indicate success: {status_code}"
        if reason_phrase:
            message += f" ({reason_phrase})"
        super().__init__(message)


class UnsupportedContentTypeError(DownstreamApiError):
    """Raised when a response media type has no built-in decoder."""

    def __init__(self, media_type: str) -> None:
        self.media_type = media_type
        super().__init__(
            f"Content type '{media_type}' is not supported, "
            "configure a deserializer on the downstream API options"
        )
