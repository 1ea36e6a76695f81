"""Tests for the vault HTTP API."""

from unittest.mock import AsyncMock

import httpx
import pytest
from httpx import ASGITransport

from onboarding_vault.api.app import build_service
from onboarding_vault.config import Config
from onboarding_vault.errors import ConfigurationError

ADMIN = {"Authorization": "Bearer admin-token"}
OWNER = {"Authorization": "Bearer owner-token"}
OTHER = {"Authorization": "Bearer other-token"}

CPF = {
    "onboarding_instance_id": "inst-1",
    "field_key": "cpf",
    "section": "Dados Pessoais",
    "value": "123.456.789-00",
}


class TestEncryptEndpoint:
    @pytest.mark.asyncio
    async def test_encrypt(self, test_client):
        r = await test_client.post("/api/onboarding/encrypt", json=CPF, headers=OWNER)
        assert r.status_code == 200
        assert r.json() == {"success": True, "encrypted": True}

    @pytest.mark.asyncio
    async def test_missing_fields(self, test_client):
        r = await test_client.post(
            "/api/onboarding/encrypt",
            json={"onboarding_instance_id": "inst-1"},
            headers=OWNER,
        )
        assert r.status_code == 400
        assert "Required fields" in r.json()["error"]

    @pytest.mark.asyncio
    async def test_no_auth_header(self, test_client):
        r = await test_client.post("/api/onboarding/encrypt", json=CPF)
        assert r.status_code == 401
        assert r.json() == {"error": "Missing authorization"}

    @pytest.mark.asyncio
    async def test_bad_token(self, test_client):
        r = await test_client.post(
            "/api/onboarding/encrypt", json=CPF, headers={"Authorization": "Bearer forged"}
        )
        assert r.status_code == 401
        assert r.json() == {"error": "Invalid token"}

    @pytest.mark.asyncio
    async def test_not_owner(self, test_client):
        r = await test_client.post("/api/onboarding/encrypt", json=CPF, headers=OTHER)
        assert r.status_code == 403
        assert r.json() == {"error": "No permission for this onboarding"}

    @pytest.mark.asyncio
    async def test_unknown_instance(self, test_client):
        r = await test_client.post(
            "/api/onboarding/encrypt",
            json={**CPF, "onboarding_instance_id": "missing"},
            headers=ADMIN,
        )
        assert r.status_code == 404
        assert r.json() == {"error": "Onboarding not found"}

    @pytest.mark.asyncio
    async def test_non_json_body(self, test_client):
        r = await test_client.post(
            "/api/onboarding/encrypt",
            content=b"not json",
            headers={**OWNER, "Content-Type": "application/json"},
        )
        assert r.status_code == 400
        assert "error" in r.json()


class TestDecryptEndpoint:
    @pytest.mark.asyncio
    async def test_admin_reads_back(self, test_client):
        await test_client.post("/api/onboarding/encrypt", json=CPF, headers=OWNER)
        r = await test_client.post(
            "/api/onboarding/decrypt",
            json={"onboarding_instance_id": "inst-1", "field_key": "cpf"},
            headers=ADMIN,
        )
        assert r.status_code == 200
        assert r.json() == {"value": "123.456.789-00", "encrypted": True}

    @pytest.mark.asyncio
    async def test_client_refused(self, test_client):
        await test_client.post("/api/onboarding/encrypt", json=CPF, headers=OWNER)
        r = await test_client.post(
            "/api/onboarding/decrypt",
            json={"onboarding_instance_id": "inst-1", "field_key": "cpf"},
            headers=OWNER,
        )
        assert r.status_code == 403
        assert r.json() == {"error": "Only administrators can view sensitive data"}

    @pytest.mark.asyncio
    async def test_missing_field(self, test_client):
        r = await test_client.post(
            "/api/onboarding/decrypt",
            json={"onboarding_instance_id": "inst-1", "field_key": "nope"},
            headers=ADMIN,
        )
        assert r.status_code == 404
        assert r.json() == {"error": "Field not found"}

    @pytest.mark.asyncio
    async def test_corrupted_ciphertext(self, test_client, store):
        store.upsert("inst-1", "cpf", "Dados Pessoais", "QUFBQUFBQUFBQUFBQUFBQUFBQUFBQUFBQUFB", is_sensitive=True)
        r = await test_client.post(
            "/api/onboarding/decrypt",
            json={"onboarding_instance_id": "inst-1", "field_key": "cpf"},
            headers=ADMIN,
        )
        assert r.status_code == 500
        assert r.json() == {"error": "Failed to decrypt value"}


class TestSaveAndList:
    @pytest.mark.asyncio
    async def test_save_then_list_masks_sensitive(self, test_client):
        r = await test_client.post(
            "/api/onboarding/responses",
            json={"onboarding_instance_id": "inst-1", "field_key": "empresa", "section": "Empresa", "value": "ACME"},
            headers=OWNER,
        )
        assert r.status_code == 200
        assert r.json() == {"success": True, "encrypted": False}
        await test_client.post("/api/onboarding/encrypt", json=CPF, headers=OWNER)

        r = await test_client.get("/api/onboarding/inst-1/responses", headers=OWNER)
        assert r.status_code == 200
        body = r.json()
        assert body["count"] == 2
        values = {row["field_key"]: row["value"] for row in body["responses"]}
        assert values == {"cpf": None, "empresa": "ACME"}

    @pytest.mark.asyncio
    async def test_plain_over_sensitive_conflicts(self, test_client):
        await test_client.post("/api/onboarding/encrypt", json=CPF, headers=OWNER)
        r = await test_client.post("/api/onboarding/responses", json=CPF, headers=OWNER)
        assert r.status_code == 409
        assert "error" in r.json()


class TestAuditEndpoint:
    @pytest.mark.asyncio
    async def test_admin_reads_trail(self, test_client):
        await test_client.post("/api/onboarding/encrypt", json=CPF, headers=OWNER)
        await test_client.post(
            "/api/onboarding/decrypt",
            json={"onboarding_instance_id": "inst-1", "field_key": "cpf"},
            headers=ADMIN,
        )
        r = await test_client.get("/api/onboarding/inst-1/audit", headers=ADMIN)
        assert r.status_code == 200
        body = r.json()
        assert body["count"] == 2
        assert body["events"][0]["action"] == "decrypt"
        assert "123.456.789-00" not in r.text

    @pytest.mark.asyncio
    async def test_client_refused(self, test_client):
        r = await test_client.get("/api/onboarding/inst-1/audit", headers=OWNER)
        assert r.status_code == 403

    @pytest.mark.asyncio
    async def test_bad_limit(self, test_client):
        r = await test_client.get("/api/onboarding/inst-1/audit?limit=500", headers=ADMIN)
        assert r.status_code == 400

    @pytest.mark.asyncio
    async def test_non_numeric_limit(self, test_client):
        r = await test_client.get("/api/onboarding/inst-1/audit?limit=abc", headers=ADMIN)
        assert r.status_code == 400


class TestCrossCutting:
    @pytest.mark.asyncio
    async def test_correlation_id_generated(self, test_client):
        r = await test_client.get("/health")
        assert r.headers.get("x-correlation-id")

    @pytest.mark.asyncio
    async def test_correlation_id_echoed(self, test_client):
        r = await test_client.get("/health", headers={"X-Correlation-Id": "abc123"})
        assert r.headers["x-correlation-id"] == "abc123"

    @pytest.mark.asyncio
    async def test_unhandled_error_is_generic(self, test_client, service):
        service.decrypt_field = AsyncMock(side_effect=RuntimeError("secret internals"))
        r = await test_client.post(
            "/api/onboarding/decrypt",
            json={"onboarding_instance_id": "inst-1", "field_key": "cpf"},
            headers=ADMIN,
        )
        assert r.status_code == 500
        assert r.json() == {"error": "Internal error"}
        assert "secret internals" not in r.text

    @pytest.mark.asyncio
    async def test_unhandled_error_keeps_correlation_and_cors(self, app, service):
        service.decrypt_field = AsyncMock(side_effect=RuntimeError("boom"))
        transport = ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.post(
                "/api/onboarding/decrypt",
                json={"onboarding_instance_id": "inst-1", "field_key": "cpf"},
                headers={**ADMIN, "Origin": "https://portal.example.com", "X-Correlation-Id": "req-42"},
            )
        assert r.status_code == 500
        assert r.headers["x-correlation-id"] == "req-42"
        assert r.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_cors_headers_on_success(self, test_client):
        r = await test_client.get("/health", headers={"Origin": "https://portal.example.com"})
        assert r.headers["access-control-allow-origin"] == "*"


class TestHealth:
    @pytest.mark.asyncio
    async def test_ok(self, test_client):
        r = await test_client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok", "services": {"database": "ok", "identity": "ok"}}

    @pytest.mark.asyncio
    async def test_degraded_database(self, test_client, store, monkeypatch):
        def down():
            raise ConnectionError("db down")

        monkeypatch.setattr(store, "ping", down)
        r = await test_client.get("/health")
        assert r.status_code == 503
        body = r.json()
        assert body["status"] == "degraded"
        assert body["services"]["database"] == "error"
        assert body["services"]["identity"] == "ok"

    @pytest.mark.asyncio
    async def test_not_started(self, app, test_client):
        app.state.service = None
        r = await test_client.get("/health")
        assert r.status_code == 503


class TestStartup:
    def test_missing_secret_refuses_to_build(self):
        with pytest.raises(ConfigurationError):
            build_service(Config(encryption_secret=""), AsyncMock(spec=httpx.AsyncClient))

    def test_builds_with_secret(self):
        service = build_service(Config(encryption_secret="s3cret"), AsyncMock(spec=httpx.AsyncClient))
        assert service.gate.admin_roles == frozenset({"Owner", "Admin"})
