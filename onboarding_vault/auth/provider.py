"""
Identity provider adapters.

The vault never manages sessions itself; it consumes the portal's auth service
for exactly three questions: who does this token belong to, which roles does
that user hold, and which client account is the user attached to.

The production adapter speaks to a Supabase-compatible API (GoTrue for tokens,
PostgREST for the role RPC and the profiles table) over a shared
``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from onboarding_vault.config import IdentityConfig
from onboarding_vault.errors import AuthError, IdentityProviderError

logger = logging.getLogger(__name__)


class IdentityProvider(ABC):
    """Narrow capability interface the access gate depends on."""

    @abstractmethod
    async def verify_token(self, token: str) -> str:
        """Return the user id for a bearer token. Raises AuthError if rejected."""

    @abstractmethod
    async def resolve_roles(self, user_id: str) -> set[str]:
        """Return the role names held by a user."""

    @abstractmethod
    async def client_for_user(self, user_id: str) -> str | None:
        """Return the client account a user belongs to, or None."""

    async def ping(self) -> bool:
        return True


class SupabaseIdentityProvider(IdentityProvider):
    """IdentityProvider backed by Supabase auth + REST endpoints."""

    def __init__(self, config: IdentityConfig, client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = client

    def _service_headers(self) -> dict[str, str]:
        return {
            "apikey": self.config.service_key,
            "Authorization": f"Bearer {self.config.service_key}",
            "Accept": "application/json",
        }

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, url, timeout=self.config.timeout, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Identity provider request failed: %s %s: %s", method, url, e)
            raise IdentityProviderError() from e

    async def ping(self) -> bool:
        r = await self._request("GET", f"{self.config.auth_url}/health", headers={"apikey": self.config.service_key})
        return r.status_code == 200

    async def verify_token(self, token: str) -> str:
        r = await self._request(
            "GET",
            f"{self.config.auth_url}/user",
            headers={"apikey": self.config.service_key, "Authorization": f"Bearer {token}"},
        )
        if r.status_code in (401, 403, 404):
            raise AuthError("Invalid token")
        if r.status_code != 200:
            logger.error("Token verification returned %s", r.status_code)
            raise IdentityProviderError()
        user_id = _json_body(r, dict, "Token verification").get("id")
        if not user_id:
            raise AuthError("Invalid token")
        return str(user_id)

    async def resolve_roles(self, user_id: str) -> set[str]:
        r = await self._request(
            "POST",
            f"{self.config.rest_url}/rpc/get_user_roles",
            headers=self._service_headers(),
            json={"_user_id": user_id},
        )
        if r.status_code != 200:
            logger.error("Role lookup for user %s returned %s", user_id, r.status_code)
            raise IdentityProviderError()
        rows = _rows(_json_body(r, list, "Role lookup"), "Role lookup")
        return {str(row["role_name"]) for row in rows if row.get("role_name")}

    async def client_for_user(self, user_id: str) -> str | None:
        r = await self._request(
            "GET",
            f"{self.config.rest_url}/profiles",
            headers=self._service_headers(),
            params={"id": f"eq.{user_id}", "select": "client_id"},
        )
        if r.status_code != 200:
            logger.error("Profile lookup for user %s returned %s", user_id, r.status_code)
            raise IdentityProviderError()
        rows = _rows(_json_body(r, list, "Profile lookup"), "Profile lookup")
        if not rows or not rows[0].get("client_id"):
            return None
        return str(rows[0]["client_id"])


def _json_body(r: httpx.Response, shape: type, what: str):
    """Decode a JSON body of the expected top-level type; null reads as empty."""
    try:
        body = r.json()
    except ValueError as e:
        logger.error("%s returned a non-JSON body", what)
        raise IdentityProviderError() from e
    if body is None:
        return shape()
    if not isinstance(body, shape):
        logger.error("%s returned %s, expected %s", what, type(body).__name__, shape.__name__)
        raise IdentityProviderError()
    return body


def _rows(body: list, what: str) -> list[dict]:
    if not all(isinstance(row, dict) for row in body):
        logger.error("%s returned non-object rows", what)
        raise IdentityProviderError()
    return body
