"""
Root-level shared test fixtures.

Inherited by the package-level suites (onboarding_vault/*/tests) and the
top-level tests/ directory.
"""

from __future__ import annotations

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove ONBOARDING_* env vars that leak between tests."""
    for key in [
        "ONBOARDING_DB_HOST",
        "ONBOARDING_DB_PORT",
        "ONBOARDING_DB_NAME",
        "ONBOARDING_DB_USER",
        "ONBOARDING_DB_PASSWORD",
        "ONBOARDING_AUTH_URL",
        "ONBOARDING_AUTH_SERVICE_KEY",
        "ONBOARDING_AUTH_TIMEOUT",
        "ONBOARDING_ADMIN_ROLES",
        "ONBOARDING_CORS_ORIGINS",
        "ONBOARDING_ENCRYPTION_KEY",
        "ONBOARDING_PORT",
    ]:
        monkeypatch.delenv(key, raising=False)
