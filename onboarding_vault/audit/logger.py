"""
Onboarding audit log — append-only trail of sensitive-field access.

Actions:
  - encrypt: a sensitive answer was written (encrypted) by user_id
  - decrypt: an administrator viewed a sensitive answer

Entries identify the field and the user, never the value or its ciphertext.
Writes are best effort: a failing audit sink is logged and swallowed so it
cannot block the operation it describes. Nothing here issues UPDATE or DELETE.

Usage:
    from onboarding_vault.audit.logger import AuditLogger, DECRYPT
    AuditLogger().record("inst-1", "cpf", DECRYPT, user_id="u-1")
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from psycopg2.extras import RealDictCursor

from onboarding_vault.db.connection import get_pool
from onboarding_vault.errors import StoreError

logger = logging.getLogger(__name__)

ENCRYPT = "encrypt"
DECRYPT = "decrypt"
ACTIONS = frozenset({ENCRYPT, DECRYPT})


class AuditLogger:
    def __init__(self, connection_factory: Callable[[], Any] | None = None) -> None:
        # Override for tests; default borrows from the shared pool
        self._connection_factory = connection_factory

    def _get_connection(self):
        if self._connection_factory is not None:
            return self._connection_factory()
        return get_pool().getconn()

    def _release_connection(self, conn) -> None:
        """Close or return the connection. Never raises."""
        try:
            if self._connection_factory is not None:
                conn.close()
            else:
                get_pool().putconn(conn)
        except Exception as e:
            logger.warning("Audit connection release failed: %s", e)

    def record(
        self,
        instance_id: str,
        field_key: str,
        action: str,
        user_id: str,
    ) -> dict | None:
        """Append one audit entry.

        Returns {"id": int, "timestamp": str} on success, None on failure.
        Failures are logged but never raise; audit must not break callers.
        """
        if action not in ACTIONS:
            raise ValueError(f"Unknown audit action: {action!r}")
        try:
            conn = self._get_connection()
        except Exception as e:
            logger.warning("Audit record failed (%s %s/%s by %s): %s", action, instance_id, field_key, user_id, e)
            return None
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO onboarding_audit_log
                    (onboarding_instance_id, field_key, action, user_id)
                VALUES (%s, %s, %s, %s)
                RETURNING id, created_at
                """,
                (instance_id, field_key, action, user_id),
            )
            row = cur.fetchone()
            conn.commit()
            return {"id": row[0], "timestamp": row[1].isoformat()}
        except Exception as e:
            logger.warning("Audit record failed (%s %s/%s by %s): %s", action, instance_id, field_key, user_id, e)
            try:
                conn.rollback()
            except Exception as rollback_error:
                logger.debug("Audit rollback failed: %s", rollback_error)
            return None
        finally:
            self._release_connection(conn)

    def query(self, instance_id: str, limit: int = 20) -> list[dict]:
        """Newest-first audit entries for one onboarding instance."""
        try:
            conn = self._get_connection()
            try:
                cur = conn.cursor(cursor_factory=RealDictCursor)
                cur.execute(
                    """
                    SELECT id, onboarding_instance_id, field_key, action, user_id, created_at
                    FROM onboarding_audit_log
                    WHERE onboarding_instance_id = %s
                    ORDER BY created_at DESC, id DESC
                    LIMIT %s
                    """,
                    (instance_id, limit),
                )
                rows = cur.fetchall()
            finally:
                self._release_connection(conn)
        except Exception as e:
            logger.error("Audit query failed for %s: %s", instance_id, e)
            raise StoreError() from e

        return [
            {
                "id": r["id"],
                "onboarding_instance_id": r["onboarding_instance_id"],
                "field_key": r["field_key"],
                "action": r["action"],
                "user_id": r["user_id"],
                "timestamp": r["created_at"].isoformat(),
            }
            for r in rows
        ]
