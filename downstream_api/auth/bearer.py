"""Static bearer token authorization-header provider."""

from collections.abc import Sequence

from downstream_api.core.logging import get_logger
from downstream_api.models.options import AuthorizationHeaderProviderOptions
from downstream_api.models.principal import UserPrincipal


logger = get_logger(__name__)


class StaticAuthorizationHeaderProvider:
    """Authorization-header provider for a pre-issued static token.

    The same header is returned for app and user calls regardless of scopes.
    """

    def __init__(self, token: str, scheme: str = "Bearer") -> None:
        """Initialize with a static token.

        Args:
            token: Token string
            scheme: Authorization scheme placed before the token
        """
        self.token = token.strip()
        if not self.token:
            raise ValueError("Token cannot be empty")
        self.scheme = scheme

    @property
    def header_value(self) -> str:
        return f"{self.scheme} {self.token}"

    async def create_authorization_header_for_app(
        self,
        scopes: str,
        options: AuthorizationHeaderProviderOptions | None = None,
    ) -> str:
        logger.debug("static_app_header_issued", scopes=scopes)
        return self.header_value

    async def create_authorization_header_for_user(
        self,
        scopes: Sequence[str],
        options: AuthorizationHeaderProviderOptions | None = None,
        user: UserPrincipal | None = None,
    ) -> str:
        logger.debug(
            "static_user_header_issued",
            scopes=list(scopes),
            subject=user.subject if user else None,
        )
        return self.header_value

    def get_provider_name(self) -> str:
        """Get the provider name for logging."""
        return "static-bearer"
