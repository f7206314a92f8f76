"""Services composing downstream API calls."""

from .downstream_api import DownstreamApi
from .options_monitor import DownstreamApiOptionsMonitor
from .payload_codec import PayloadCodec
from .request_finalizer import DownstreamRequest, RequestFinalizer


__all__ = [
    "DownstreamApi",
    "DownstreamApiOptionsMonitor",
    "DownstreamRequest",
    "PayloadCodec",
    "RequestFinalizer",
]
