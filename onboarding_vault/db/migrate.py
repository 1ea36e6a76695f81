"""
SQL migration runner behind ``onboarding-vault migrate``.

Each ``migrations/NNN_name.sql`` file runs once, in version order, inside
its own transaction. The ``schema_migrations`` ledger records the file's
SHA-256 so an edited file shows up as DRIFT in ``status``.
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import NamedTuple

from psycopg2.extras import RealDictCursor

from onboarding_vault.db.connection import get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"

_FILENAME = re.compile(r"^(?P<version>\d{3})_\w+\.sql$")

_LEDGER_DDL = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version     TEXT PRIMARY KEY,
        filename    TEXT NOT NULL,
        checksum    TEXT NOT NULL,
        applied_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


class Migration(NamedTuple):
    version: str
    path: Path

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.path.read_bytes()).hexdigest()


def discover(migrations_dir: Path | None = None) -> list[Migration]:
    """Versioned .sql files in the directory, oldest first. Other files are ignored."""
    found = []
    for path in (migrations_dir or MIGRATIONS_DIR).glob("*.sql"):
        m = _FILENAME.match(path.name)
        if m:
            found.append(Migration(m.group("version"), path))
    return sorted(found)


def _ledger(conn) -> dict[str, dict]:
    cur = conn.cursor(cursor_factory=RealDictCursor)
    cur.execute(_LEDGER_DDL)
    cur.execute("SELECT version, checksum, applied_at FROM schema_migrations")
    return {row["version"]: row for row in cur.fetchall()}


def status(migrations_dir: Path | None = None) -> list[dict]:
    with get_connection() as conn:
        ledger = _ledger(conn)

    report = []
    for migration in discover(migrations_dir):
        entry = ledger.get(migration.version)
        if entry is None:
            state = "pending"
        elif entry["checksum"] != migration.checksum:
            state = "DRIFT"
        else:
            state = "applied"
        report.append({
            "version": migration.version,
            "filename": migration.path.name,
            "status": state,
            "applied_at": entry["applied_at"] if entry else None,
        })
    return report


def apply(
    version: str | None = None,
    dry_run: bool = False,
    migrations_dir: Path | None = None,
) -> list[str]:
    """Run pending migrations (or only ``version``). Returns the versions run."""
    with get_connection() as conn:
        ledger = _ledger(conn)
        pending = [
            m for m in discover(migrations_dir)
            if m.version not in ledger and version in (None, m.version)
        ]
        if not pending:
            print("Nothing to apply.")
            return []

        for migration in pending:
            if dry_run:
                print(f"[dry-run] would apply {migration.path.name}")
                continue
            cur = conn.cursor()
            cur.execute(migration.path.read_text())
            cur.execute(
                "INSERT INTO schema_migrations (version, filename, checksum) VALUES (%s, %s, %s)",
                (migration.version, migration.path.name, migration.checksum),
            )
            conn.commit()
            logger.info("Applied migration %s", migration.path.name)
            print(f"Applied {migration.path.name}")

    return [m.version for m in pending]


def print_status(report: list[dict]) -> None:
    if not report:
        print("No migration files found.")
        return
    for row in report:
        applied = row["applied_at"].strftime("%Y-%m-%d %H:%M") if row["applied_at"] else "-"
        print(f"{row['version']}  {row['status']:<8} {applied:<16}  {row['filename']}")
