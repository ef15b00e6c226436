#!/usr/bin/env python3
"""
AuthGate -- user registration, password login and session token lifecycle.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py serve --reload
  python main.py migrate

Environment variables (see core/config.py for the full list):
  ACCESS_TOKEN_SECRET    Signing secret for access tokens (>= 32 chars).
  REFRESH_TOKEN_SECRET   Signing secret for refresh tokens (>= 32 chars, distinct).
  DATABASE_URL           SQLAlchemy URL. Default: sqlite:///./authgate.db
  DEBUG                  true to auto-generate secrets for local development.
"""

import argparse
import logging
import sys

from core.config import get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def _migrate(args: argparse.Namespace) -> int:
    from auth.store import UserStore

    settings = get_settings()
    store = UserStore(db_url=args.database_url or settings.database_url)
    try:
        print(f"  Schema is at version {store.schema_version()}.")
    finally:
        store.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="AuthGate -- account registration and session token service.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting).")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only).")
    serve.set_defaults(func=_serve)

    migrate = sub.add_parser("migrate", help="Create or upgrade the database schema, then exit.")
    migrate.add_argument("--database-url", default=None, help="Override DATABASE_URL.")
    migrate.set_defaults(func=_migrate)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s %(message)s")
    try:
        return args.func(args)
    except ValueError as exc:
        # Settings validation failures (missing or weak secrets).
        print(f"  [!] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
