"""
Typed failures for the onboarding vault.

Each error carries the HTTP status it maps to and a message that is safe to
return to the caller. Internal detail goes to the log, never into ``message``.
"""

from __future__ import annotations


class VaultError(Exception):
    """Base class for every failure the API surfaces to a caller."""

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VaultError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(VaultError):
    status_code = 401
    default_message = "Not authenticated"


class AuthorizationError(VaultError):
    status_code = 403
    default_message = "Not authorized"


class NotFoundError(VaultError):
    status_code = 404
    default_message = "Not found"


class ConflictError(VaultError):
    status_code = 409
    default_message = "Conflict"


class ConfigurationError(VaultError):
    """Missing or unusable configuration. Fatal; never retried."""

    default_message = "Service misconfigured"


class IntegrityError(VaultError):
    """Ciphertext failed authentication.

    Tampering, corruption and a wrong key are deliberately indistinguishable.
    """

    default_message = "Failed to decrypt value"


class StoreError(VaultError):
    default_message = "Storage error"


class IdentityProviderError(VaultError):
    default_message = "Identity provider unavailable"


__all__ = [
    "AuthError",
    "AuthorizationError",
    "ConfigurationError",
    "ConflictError",
    "IdentityProviderError",
    "IntegrityError",
    "NotFoundError",
    "StoreError",
    "ValidationError",
    "VaultError",
]
