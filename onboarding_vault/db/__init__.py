"""Database connection management for the onboarding vault."""

from onboarding_vault.db.connection import close_pool, get_connection, get_pool

__all__ = ["close_pool", "get_connection", "get_pool"]
