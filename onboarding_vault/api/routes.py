"""Onboarding vault routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from onboarding_vault.api.models import DecryptFieldRequest, EncryptFieldRequest, SaveFieldRequest
from onboarding_vault.service import DEFAULT_AUDIT_LIMIT, FieldService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["onboarding"])


def get_service(request: Request) -> FieldService:
    return request.app.state.service


@router.post("/api/onboarding/encrypt")
async def api_encrypt_field(
    body: EncryptFieldRequest,
    authorization: str | None = Header(None),
    service: FieldService = Depends(get_service),
):
    return await service.encrypt_field(
        authorization,
        body.onboarding_instance_id,
        body.field_key,
        body.section,
        body.value,
    )


@router.post("/api/onboarding/decrypt")
async def api_decrypt_field(
    body: DecryptFieldRequest,
    authorization: str | None = Header(None),
    service: FieldService = Depends(get_service),
):
    return await service.decrypt_field(authorization, body.onboarding_instance_id, body.field_key)


@router.post("/api/onboarding/responses")
async def api_save_field(
    body: SaveFieldRequest,
    authorization: str | None = Header(None),
    service: FieldService = Depends(get_service),
):
    return await service.save_field(
        authorization,
        body.onboarding_instance_id,
        body.field_key,
        body.section,
        body.value,
    )


@router.get("/api/onboarding/{instance_id}/responses")
async def api_list_responses(
    instance_id: str,
    authorization: str | None = Header(None),
    service: FieldService = Depends(get_service),
):
    responses = await service.list_responses(authorization, instance_id)
    return {"responses": responses, "count": len(responses)}


@router.get("/api/onboarding/{instance_id}/audit")
async def api_audit_trail(
    instance_id: str,
    limit: int = Query(DEFAULT_AUDIT_LIMIT),
    authorization: str | None = Header(None),
    service: FieldService = Depends(get_service),
):
    events = await service.audit_trail(authorization, instance_id, limit=limit)
    return {"events": events, "count": len(events)}


@router.get("/health")
async def health(request: Request):
    """Check connectivity to the database and the identity provider."""
    service: FieldService | None = getattr(request.app.state, "service", None)
    if service is None:
        return JSONResponse({"status": "unavailable", "services": {}}, status_code=503)

    services = {}
    try:
        services["database"] = "ok" if service.store.ping() else "error"
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        services["database"] = "error"

    try:
        services["identity"] = "ok" if await service.gate.provider.ping() else "error"
    except Exception as e:
        logger.warning("Identity provider health check failed: %s", e)
        services["identity"] = "error"

    all_ok = all(v == "ok" for v in services.values())
    return JSONResponse(
        {"status": "ok" if all_ok else "degraded", "services": services},
        status_code=200 if all_ok else 503,
    )
