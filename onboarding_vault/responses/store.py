"""
Response store: one row per (onboarding instance, field key).

Writes are unconditional upserts, so concurrent writers to the same field
race and the last one wins. The only guard is that a plaintext write can
never replace a row already marked sensitive.

Usage:
    from onboarding_vault.responses.store import ResponseStore

    store = ResponseStore()
    store.upsert("inst-1", "cpf", "Dados Pessoais", blob, is_sensitive=True)
    store.fetch("inst-1", "cpf").value
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

import psycopg2
from psycopg2.extras import RealDictCursor

from onboarding_vault.db.connection import get_connection
from onboarding_vault.errors import ConflictError, NotFoundError, StoreError
from onboarding_vault.responses.models import StoredResponse

logger = logging.getLogger(__name__)


@contextmanager
def _cursor() -> Iterator:
    try:
        with get_connection() as conn:
            yield conn.cursor(cursor_factory=RealDictCursor)
    except (psycopg2.Error, ConnectionError) as e:
        logger.error("Response store failure: %s", e)
        raise StoreError() from e


class ResponseStore:
    def upsert(
        self,
        instance_id: str,
        field_key: str,
        section: str,
        value: str,
        is_sensitive: bool,
    ) -> None:
        """Insert or replace the response for (instance_id, field_key)."""
        with _cursor() as cur:
            cur.execute(
                """
                INSERT INTO onboarding_responses
                    (onboarding_instance_id, field_key, section, value, is_sensitive, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (onboarding_instance_id, field_key)
                DO UPDATE SET section = EXCLUDED.section,
                              value = EXCLUDED.value,
                              is_sensitive = EXCLUDED.is_sensitive,
                              updated_at = EXCLUDED.updated_at
                WHERE NOT onboarding_responses.is_sensitive OR EXCLUDED.is_sensitive
                """,
                (instance_id, field_key, section, value, is_sensitive, datetime.now(UTC)),
            )
            if cur.rowcount == 0:
                raise ConflictError("Field is sensitive and must be written encrypted")

    def fetch(self, instance_id: str, field_key: str) -> StoredResponse:
        """Return the stored response. Raises NotFoundError if absent."""
        with _cursor() as cur:
            cur.execute(
                """
                SELECT onboarding_instance_id, field_key, section, value, is_sensitive, updated_at
                FROM onboarding_responses
                WHERE onboarding_instance_id = %s AND field_key = %s
                """,
                (instance_id, field_key),
            )
            row = cur.fetchone()
        if not row:
            raise NotFoundError("Field not found")
        return StoredResponse.from_row(row)

    def list_for_instance(self, instance_id: str) -> list[StoredResponse]:
        with _cursor() as cur:
            cur.execute(
                """
                SELECT onboarding_instance_id, field_key, section, value, is_sensitive, updated_at
                FROM onboarding_responses
                WHERE onboarding_instance_id = %s
                ORDER BY section, field_key
                """,
                (instance_id,),
            )
            rows = cur.fetchall()
        return [StoredResponse.from_row(r) for r in rows]

    def get_instance_owner(self, instance_id: str) -> str:
        """Return the client id owning an onboarding instance. Raises NotFoundError."""
        with _cursor() as cur:
            cur.execute(
                "SELECT client_id FROM onboarding_instances WHERE id = %s",
                (instance_id,),
            )
            row = cur.fetchone()
        if not row:
            raise NotFoundError("Onboarding not found")
        return str(row["client_id"])

    def ping(self) -> bool:
        with _cursor() as cur:
            cur.execute("SELECT 1")
            return cur.fetchone() is not None
