"""Caller identity and role-gated authorization."""

from onboarding_vault.auth.gate import AccessGate, Caller, parse_bearer
from onboarding_vault.auth.provider import IdentityProvider, SupabaseIdentityProvider

__all__ = ["AccessGate", "Caller", "IdentityProvider", "SupabaseIdentityProvider", "parse_bearer"]
