"""Onboarding response shapes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StoredResponse:
    """One answer in ``onboarding_responses``.

    ``value`` is the base64 nonce+ciphertext+tag blob when ``is_sensitive``,
    and the answer verbatim otherwise.
    """

    instance_id: str
    field_key: str
    section: str
    value: str
    is_sensitive: bool
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> StoredResponse:
        return cls(
            instance_id=str(row["onboarding_instance_id"]),
            field_key=row["field_key"],
            section=row.get("section") or "",
            value=row.get("value") or "",
            is_sensitive=bool(row.get("is_sensitive")),
            updated_at=row.get("updated_at"),
        )


def response_to_dict(response: StoredResponse) -> dict:
    """API shape for a listed response. Sensitive values are masked."""
    return {
        "onboarding_instance_id": response.instance_id,
        "field_key": response.field_key,
        "section": response.section,
        "value": None if response.is_sensitive else response.value,
        "is_sensitive": response.is_sensitive,
        "updated_at": response.updated_at.isoformat() if response.updated_at else None,
    }
