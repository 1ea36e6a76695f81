"""
Onboarding Vault API — field-level encryption with role-gated decryption.

Start:
  onboarding-vault serve
  # or
  uvicorn onboarding_vault.api.app:app --host 0.0.0.0 --port 9300

The encryption secret is checked during startup: a missing
ONBOARDING_ENCRYPTION_KEY aborts boot instead of failing the first request.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from onboarding_vault.api.middleware import CorrelationMiddleware
from onboarding_vault.api.routes import router
from onboarding_vault.audit.logger import AuditLogger
from onboarding_vault.auth.gate import AccessGate
from onboarding_vault.auth.provider import SupabaseIdentityProvider
from onboarding_vault.config import Config, get_config
from onboarding_vault.db.connection import close_pool
from onboarding_vault.errors import VaultError
from onboarding_vault.responses.store import ResponseStore
from onboarding_vault.service import FieldService
from onboarding_vault.vault.crypto import FieldCipher, KeyDeriver

logger = logging.getLogger(__name__)


def build_service(cfg: Config, http_client: httpx.AsyncClient) -> FieldService:
    """Wire the production service. Raises ConfigurationError without a secret."""
    cipher = FieldCipher(KeyDeriver(cfg.encryption_secret))
    provider = SupabaseIdentityProvider(cfg.identity, http_client)
    return FieldService(
        gate=AccessGate(provider, cfg.identity.admin_roles),
        cipher=cipher,
        store=ResponseStore(),
        audit=AuditLogger(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = get_config()
    http_client = httpx.AsyncClient(timeout=cfg.identity.timeout)
    try:
        app.state.service = build_service(cfg, http_client)
    except VaultError:
        await http_client.aclose()
        logger.critical("Refusing to start: ONBOARDING_ENCRYPTION_KEY not configured")
        raise
    logger.info("Onboarding vault ready (admin roles: %s)", ", ".join(sorted(cfg.identity.admin_roles)))
    yield
    app.state.service = None
    await http_client.aclose()
    close_pool()


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(VaultError)
    async def vault_error_handler(request: Request, exc: VaultError):
        if exc.status_code >= 500:
            logger.error(
                "%s on %s %s (correlation %s)",
                type(exc).__name__,
                request.method,
                request.url.path,
                getattr(request.state, "correlation_id", "-"),
            )
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": "Invalid request body"}, status_code=400)


def create_app(cfg: Config | None = None) -> FastAPI:
    cfg = cfg or get_config()
    app = FastAPI(
        title="Onboarding Vault",
        description="Field-level envelope encryption for sensitive onboarding answers.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.service = None

    # Last added runs outermost: CORS wraps the correlation layer's 500s too
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "content-type", "x-client-info", "apikey", "x-correlation-id"],
        expose_headers=["x-correlation-id"],
    )
    register_error_handlers(app)
    app.include_router(router)
    return app


app = create_app()
