"""
Centralized configuration for the onboarding vault.

All configuration is loaded from environment variables with sensible defaults.
The encryption secret is read exactly once, here, and handed to the key
deriver at startup; nothing else looks it up.

Usage:
    from onboarding_vault.config import get_config
    cfg = get_config()
    print(cfg.db.dict)           # {"dbname": "onboarding", "port": 5432, ...}
    print(cfg.identity.admin_roles)  # frozenset({"Owner", "Admin"})
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_ADMIN_ROLES = frozenset({"Owner", "Admin"})


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection parameters."""

    host: str = ""  # empty = Unix socket (peer auth); set to 127.0.0.1 for TCP
    port: int = 5432
    name: str = "onboarding"
    user: str = "onboarding"
    password: str = ""

    @property
    def dict(self) -> dict[str, str | int]:
        """Return a psycopg2.connect() kwargs dict."""
        d: dict[str, str | int] = {
            "dbname": self.name,
            "port": self.port,
        }
        if self.host:
            d["host"] = self.host
        if self.user:
            d["user"] = self.user
        if self.password:
            d["password"] = self.password
        return d


@dataclass(frozen=True)
class IdentityConfig:
    """Identity provider (Supabase-compatible auth + REST) parameters."""

    url: str = "http://127.0.0.1:54321"
    service_key: str = ""
    admin_roles: frozenset[str] = DEFAULT_ADMIN_ROLES
    timeout: float = 10.0

    @property
    def auth_url(self) -> str:
        return f"{self.url.rstrip('/')}/auth/v1"

    @property
    def rest_url(self) -> str:
        return f"{self.url.rstrip('/')}/rest/v1"


@dataclass(frozen=True)
class Config:
    """Top-level onboarding vault configuration."""

    # Never logged, never persisted; only the key deriver sees it
    encryption_secret: str = field(default="", repr=False)

    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)

    port: int = 9300
    cors_origins: tuple[str, ...] = ("*",)


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    db = DatabaseConfig(
        host=os.environ.get("ONBOARDING_DB_HOST", ""),
        port=int(os.environ.get("ONBOARDING_DB_PORT", "5432")),
        name=os.environ.get("ONBOARDING_DB_NAME", "onboarding"),
        user=os.environ.get("ONBOARDING_DB_USER", os.environ.get("USER", "onboarding")),
        password=os.environ.get("ONBOARDING_DB_PASSWORD", ""),
    )

    admin_roles = _split_list(os.environ.get("ONBOARDING_ADMIN_ROLES", ""))
    identity = IdentityConfig(
        url=os.environ.get("ONBOARDING_AUTH_URL", "http://127.0.0.1:54321"),
        service_key=os.environ.get("ONBOARDING_AUTH_SERVICE_KEY", ""),
        admin_roles=frozenset(admin_roles) if admin_roles else DEFAULT_ADMIN_ROLES,
        timeout=float(os.environ.get("ONBOARDING_AUTH_TIMEOUT", "10")),
    )

    cors = _split_list(os.environ.get("ONBOARDING_CORS_ORIGINS", "*"))

    return Config(
        encryption_secret=os.environ.get("ONBOARDING_ENCRYPTION_KEY", ""),
        db=db,
        identity=identity,
        port=int(os.environ.get("ONBOARDING_PORT", "9300")),
        cors_origins=tuple(cors) or ("*",),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
