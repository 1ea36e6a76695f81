"""Append-only audit trail for sensitive onboarding fields."""

from onboarding_vault.audit.logger import ACTIONS, DECRYPT, ENCRYPT, AuditLogger

__all__ = ["ACTIONS", "DECRYPT", "ENCRYPT", "AuditLogger"]
