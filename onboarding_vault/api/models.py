"""Pydantic request models for the vault API.

Fields are optional at the schema level so that a missing field is reported
by the service as a 400 with the list of required fields, rather than as a
schema error.
"""

from __future__ import annotations

from pydantic import BaseModel


class EncryptFieldRequest(BaseModel):
    onboarding_instance_id: str | None = None
    field_key: str | None = None
    value: str | None = None
    section: str | None = None


class DecryptFieldRequest(BaseModel):
    onboarding_instance_id: str | None = None
    field_key: str | None = None


class SaveFieldRequest(BaseModel):
    onboarding_instance_id: str | None = None
    field_key: str | None = None
    value: str | None = None
    section: str | None = None
