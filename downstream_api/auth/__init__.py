"""Authorization-header providers."""

from .base import AuthorizationHeaderProvider
from .bearer import StaticAuthorizationHeaderProvider


__all__ = ["AuthorizationHeaderProvider", "StaticAuthorizationHeaderProvider"]
