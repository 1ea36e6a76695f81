"""
Onboarding Vault CLI — entry point for all operations.

Usage:
    onboarding-vault serve            # Start the API server
    onboarding-vault migrate status   # Show applied vs pending migrations
    onboarding-vault migrate apply    # Apply pending migrations
    onboarding-vault check-config     # Verify the encryption secret is set
    onboarding-vault version          # Show version
"""

from __future__ import annotations

import argparse
import logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="onboarding-vault",
        description="Onboarding Vault — field-level encryption for sensitive onboarding answers.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: ONBOARDING_PORT or 9300)")

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Run database migrations")
    migrate_parser.add_argument("action", nargs="?", choices=["status", "apply"], default="status")
    migrate_parser.add_argument("target", nargs="?", default=None, help="Apply only this version")
    migrate_parser.add_argument("--dry-run", action="store_true", help="List what would be applied")

    # check-config
    subparsers.add_parser("check-config", help="Fail if the encryption secret is missing")

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from onboarding_vault import __version__

        print(f"onboarding-vault {__version__}")
        return 0

    if args.command == "serve":
        return _cmd_serve(args)
    elif args.command == "migrate":
        return _cmd_migrate(args)
    elif args.command == "check-config":
        return _cmd_check_config()
    else:
        parser.print_help()
        return 0


def _cmd_check_config() -> int:
    from onboarding_vault.config import get_config
    from onboarding_vault.errors import ConfigurationError
    from onboarding_vault.vault.crypto import KeyDeriver

    cfg = get_config()
    try:
        KeyDeriver(cfg.encryption_secret)
    except ConfigurationError as e:
        print(f"Error: {e.message}")
        return 1
    print("Encryption secret: configured")
    print(f"Database: {cfg.db.user}@{cfg.db.host or 'socket'}:{cfg.db.port}/{cfg.db.name}")
    print(f"Identity provider: {cfg.identity.url}")
    print(f"Admin roles: {', '.join(sorted(cfg.identity.admin_roles))}")
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    import psycopg2

    from onboarding_vault.db import migrate

    try:
        if args.action == "apply":
            migrate.apply(version=args.target, dry_run=args.dry_run)
        else:
            migrate.print_status(migrate.status())
    except (ConnectionError, psycopg2.Error) as e:
        print(f"Error: {e}")
        return 1
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from onboarding_vault.config import get_config

    if _cmd_check_config() != 0:
        return 1

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    port = args.port or get_config().port
    print(f"Starting Onboarding Vault on {args.host}:{port}...")
    uvicorn.run("onboarding_vault.api.app:app", host=args.host, port=port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
