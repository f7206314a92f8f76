"""Authorization-header provider interface consumed by the request finalizer."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from downstream_api.models.options import AuthorizationHeaderProviderOptions
from downstream_api.models.principal import UserPrincipal


@runtime_checkable
class AuthorizationHeaderProvider(Protocol):
    """Creates complete ``Authorization`` header values (scheme and parameter).

    Token acquisition, caching and refresh are the provider's business. Errors
    raised here reach the caller unchanged.
    """

    async def create_authorization_header_for_app(
        self,
        scopes: str,
        options: AuthorizationHeaderProviderOptions | None = None,
    ) -> str:
        """Create a header for the application's own identity.

        Args:
            scopes: Space-separated scopes
            options: Options of the call the header is for

        Returns:
            Header value such as ``"Bearer ey..."``
        """
        ...

    async def create_authorization_header_for_user(
        self,
        scopes: Sequence[str],
        options: AuthorizationHeaderProviderOptions | None = None,
        user: UserPrincipal | None = None,
    ) -> str:
        """Create a header delegated by a user.

        Args:
            scopes: Requested scopes
            options: Options of the call the header is for
            user: Principal to scope the token to, the current user when omitted

        Returns:
            Header value such as ``"Bearer ey..."``
        """
        ...
