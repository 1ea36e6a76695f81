"""
Shared fixtures for the onboarding vault test suite.

The service is exercised against in-memory fakes of its three collaborators
(identity provider, response store, audit sink) and a real FieldCipher, so
every property of the crypto path is covered without a database.
"""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from onboarding_vault.api.app import create_app
from onboarding_vault.audit.logger import ACTIONS, AuditLogger
from onboarding_vault.auth.gate import AccessGate
from onboarding_vault.auth.provider import IdentityProvider
from onboarding_vault.config import Config
from onboarding_vault.errors import AuthError, ConflictError, NotFoundError
from onboarding_vault.responses.models import StoredResponse
from onboarding_vault.service import FieldService
from onboarding_vault.vault.crypto import FieldCipher, KeyDeriver

ADMIN = "Bearer admin-token"
OWNER = "Bearer owner-token"
OTHER = "Bearer other-token"
SECRET = "test-onboarding-secret"


class FakeIdentityProvider(IdentityProvider):
    def __init__(self, tokens: dict, roles: dict, clients: dict) -> None:
        self.tokens = tokens
        self.roles = roles
        self.clients = clients

    async def verify_token(self, token: str) -> str:
        if token not in self.tokens:
            raise AuthError("Invalid token")
        return self.tokens[token]

    async def resolve_roles(self, user_id: str) -> set[str]:
        return set(self.roles.get(user_id, set()))

    async def client_for_user(self, user_id: str) -> str | None:
        return self.clients.get(user_id)


class InMemoryResponseStore:
    """Same contract as ResponseStore, backed by dicts."""

    def __init__(self, instances: dict[str, str]) -> None:
        self.instances = instances
        self.rows: dict[tuple[str, str], StoredResponse] = {}

    def upsert(self, instance_id, field_key, section, value, is_sensitive):
        existing = self.rows.get((instance_id, field_key))
        if existing and existing.is_sensitive and not is_sensitive:
            raise ConflictError("Field is sensitive and must be written encrypted")
        self.rows[(instance_id, field_key)] = StoredResponse(
            instance_id=instance_id,
            field_key=field_key,
            section=section,
            value=value,
            is_sensitive=is_sensitive,
            updated_at=datetime.now(UTC),
        )

    def fetch(self, instance_id, field_key):
        row = self.rows.get((instance_id, field_key))
        if row is None:
            raise NotFoundError("Field not found")
        return row

    def list_for_instance(self, instance_id):
        rows = [r for (i, _), r in self.rows.items() if i == instance_id]
        return sorted(rows, key=lambda r: (r.section, r.field_key))

    def get_instance_owner(self, instance_id):
        if instance_id not in self.instances:
            raise NotFoundError("Onboarding not found")
        return self.instances[instance_id]

    def ping(self):
        return True


class RecordingAuditLogger(AuditLogger):
    """AuditLogger that appends to a list instead of a table."""

    def __init__(self) -> None:
        super().__init__(connection_factory=None)
        self.entries: list[dict] = []

    def record(self, instance_id, field_key, action, user_id):
        assert action in ACTIONS
        entry = {
            "id": len(self.entries) + 1,
            "onboarding_instance_id": instance_id,
            "field_key": field_key,
            "action": action,
            "user_id": user_id,
            "timestamp": datetime.now(UTC).isoformat(),
        }
        self.entries.append(entry)
        return {"id": entry["id"], "timestamp": entry["timestamp"]}

    def query(self, instance_id, limit=20):
        rows = [e for e in self.entries if e["onboarding_instance_id"] == instance_id]
        return list(reversed(rows))[:limit]


@pytest.fixture
def provider():
    return FakeIdentityProvider(
        tokens={"admin-token": "u-admin", "owner-token": "u-owner", "other-token": "u-other"},
        roles={"u-admin": {"Admin"}, "u-owner": {"Client"}, "u-other": {"Client"}},
        clients={"u-owner": "client-1", "u-other": "client-2"},
    )


@pytest.fixture
def store():
    return InMemoryResponseStore(instances={"inst-1": "client-1", "inst-2": "client-2"})


@pytest.fixture
def audit():
    return RecordingAuditLogger()


@pytest.fixture
def cipher():
    """Real cipher wrapped in a mock so calls can be asserted."""
    return MagicMock(wraps=FieldCipher(KeyDeriver(SECRET)))


@pytest.fixture
def service(provider, store, audit, cipher):
    return FieldService(
        gate=AccessGate(provider),
        cipher=cipher,
        store=store,
        audit=audit,
    )


@pytest.fixture
def app(service):
    application = create_app(Config(encryption_secret=SECRET))
    application.state.service = service
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """Async HTTP client wrapping the vault FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
