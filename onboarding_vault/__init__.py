"""Onboarding Vault — field-level envelope encryption with role-gated decryption."""

__version__ = "1.0.0"
