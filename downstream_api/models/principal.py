"""Authenticated user principal passed through to the authorization provider."""

from typing import Any

from pydantic import BaseModel, Field


class UserPrincipal(BaseModel):
    """Identity of the end user a delegated token is requested for.

    The downstream API helpers never inspect claims themselves; the principal
    is handed to the authorization-header provider untouched.
    """

    subject: str | None = None
    authentication_type: str | None = None
    claims: dict[str, Any] = Field(
        default_factory=dict, description="Claims of the authenticated user"
    )

    @property
    def is_authenticated(self) -> bool:
        return bool(self.authentication_type)

    def find_first(self, claim_type: str) -> Any | None:
        """Return the value of a claim, or None when absent."""
        return self.claims.get(claim_type)
