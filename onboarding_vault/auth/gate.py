"""
Access gate: caller identity and role-based approval of vault operations.

Writing a sensitive answer and reading it back are deliberately asymmetric:
a client may write into its own onboarding, but only administrators may
ever see a decrypted value.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from onboarding_vault.auth.provider import IdentityProvider
from onboarding_vault.config import DEFAULT_ADMIN_ROLES
from onboarding_vault.errors import AuthError, AuthorizationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caller:
    """An authenticated user and the roles they held at request time."""

    user_id: str
    roles: frozenset[str] = field(default_factory=frozenset)
    is_admin: bool = False


def parse_bearer(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise AuthError("Missing authorization")
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthError("Invalid token")
    return token


class AccessGate:
    def __init__(
        self,
        provider: IdentityProvider,
        admin_roles: Iterable[str] = DEFAULT_ADMIN_ROLES,
    ) -> None:
        self.provider = provider
        self.admin_roles = frozenset(admin_roles)

    async def authenticate(self, authorization: str | None) -> Caller:
        """Resolve the caller behind a bearer header. Raises AuthError (401)."""
        token = parse_bearer(authorization)
        user_id = await self.provider.verify_token(token)
        roles = frozenset(await self.provider.resolve_roles(user_id))
        return Caller(user_id=user_id, roles=roles, is_admin=bool(roles & self.admin_roles))

    async def authorize_write(self, caller: Caller, owner_client_id: str | None) -> None:
        """Administrators, or the client that owns the onboarding instance."""
        if caller.is_admin:
            return
        client_id = await self.provider.client_for_user(caller.user_id)
        if client_id is None or owner_client_id is None or client_id != owner_client_id:
            logger.warning("User %s denied write to instance owned by %s", caller.user_id, owner_client_id)
            raise AuthorizationError("No permission for this onboarding")

    def authorize_decrypt(self, caller: Caller) -> None:
        """Administrators only, regardless of ownership."""
        if not caller.is_admin:
            logger.warning("Non-admin user %s attempted to decrypt a sensitive field", caller.user_id)
            raise AuthorizationError("Only administrators can view sensitive data")
