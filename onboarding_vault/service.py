"""
Field service — orchestrates the vault's entry points.

Write path:  gate (owner or admin) -> cipher.encrypt -> store.upsert -> audit
Read path:   gate (identity) -> store.fetch -> gate (admin) -> cipher.decrypt -> audit

Steps run strictly in that order. The audit write is a best-effort side
channel: once the store has committed, the operation has succeeded whatever
happens to its audit entry.
"""

from __future__ import annotations

import logging
from typing import Any

from onboarding_vault.audit.logger import DECRYPT, ENCRYPT, AuditLogger
from onboarding_vault.auth.gate import AccessGate
from onboarding_vault.errors import ValidationError
from onboarding_vault.responses.models import response_to_dict
from onboarding_vault.responses.store import ResponseStore
from onboarding_vault.vault.crypto import FieldCipher

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_LIMIT = 20
MAX_AUDIT_LIMIT = 100


def _require(fields: dict[str, Any], *, allow_empty: tuple[str, ...] = ()) -> None:
    """Raise ValidationError unless every field is a string (non-empty unless allowed)."""
    missing = [
        name for name, value in fields.items()
        if not isinstance(value, str) or (not value and name not in allow_empty)
    ]
    if missing:
        raise ValidationError(f"Required fields: {', '.join(fields)}")


class FieldService:
    def __init__(
        self,
        gate: AccessGate,
        cipher: FieldCipher,
        store: ResponseStore,
        audit: AuditLogger,
    ) -> None:
        self.gate = gate
        self.cipher = cipher
        self.store = store
        self.audit = audit

    async def encrypt_field(
        self,
        authorization: str | None,
        instance_id: str,
        field_key: str,
        section: str,
        value: str,
    ) -> dict:
        """Encrypt and store a sensitive answer."""
        _require({
            "onboarding_instance_id": instance_id,
            "field_key": field_key,
            "value": value,
            "section": section,
        })
        caller = await self.gate.authenticate(authorization)
        owner = self.store.get_instance_owner(instance_id)
        await self.gate.authorize_write(caller, owner)

        logger.info("Encrypting field %s for onboarding %s", field_key, instance_id)
        blob = self.cipher.encrypt(value)
        self.store.upsert(instance_id, field_key, section, blob, is_sensitive=True)
        self.audit.record(instance_id, field_key, ENCRYPT, caller.user_id)

        return {"success": True, "encrypted": True}

    async def decrypt_field(
        self,
        authorization: str | None,
        instance_id: str,
        field_key: str,
    ) -> dict:
        """Return a stored answer, decrypting it for administrators."""
        _require({"onboarding_instance_id": instance_id, "field_key": field_key})
        caller = await self.gate.authenticate(authorization)
        response = self.store.fetch(instance_id, field_key)

        if not response.is_sensitive:
            return {"value": response.value, "encrypted": False}

        self.gate.authorize_decrypt(caller)
        plaintext = self.cipher.decrypt(response.value)
        self.audit.record(instance_id, field_key, DECRYPT, caller.user_id)
        logger.info("Admin %s viewed sensitive field %s of onboarding %s", caller.user_id, field_key, instance_id)

        return {"value": plaintext, "encrypted": True}

    async def save_field(
        self,
        authorization: str | None,
        instance_id: str,
        field_key: str,
        section: str,
        value: str,
    ) -> dict:
        """Store a non-sensitive answer verbatim. The cipher is not involved."""
        _require(
            {
                "onboarding_instance_id": instance_id,
                "field_key": field_key,
                "value": value,
                "section": section,
            },
            allow_empty=("value",),
        )
        caller = await self.gate.authenticate(authorization)
        owner = self.store.get_instance_owner(instance_id)
        await self.gate.authorize_write(caller, owner)

        self.store.upsert(instance_id, field_key, section, value, is_sensitive=False)
        return {"success": True, "encrypted": False}

    async def list_responses(self, authorization: str | None, instance_id: str) -> list[dict]:
        """All answers of an instance, sensitive values masked."""
        _require({"onboarding_instance_id": instance_id})
        caller = await self.gate.authenticate(authorization)
        owner = self.store.get_instance_owner(instance_id)
        await self.gate.authorize_write(caller, owner)
        return [response_to_dict(r) for r in self.store.list_for_instance(instance_id)]

    async def audit_trail(
        self,
        authorization: str | None,
        instance_id: str,
        limit: int = DEFAULT_AUDIT_LIMIT,
    ) -> list[dict]:
        """Newest audit entries for an instance. Administrators only."""
        _require({"onboarding_instance_id": instance_id})
        if not 1 <= limit <= MAX_AUDIT_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_AUDIT_LIMIT}")
        caller = await self.gate.authenticate(authorization)
        self.gate.authorize_decrypt(caller)
        return self.audit.query(instance_id, limit=limit)
