#!/usr/bin/env python3
"""
Auth Service -- user registration, password sign-in and refresh-token rotation.

Usage:
  python main.py serve
  python main.py serve --port 8080
  python main.py serve --host 0.0.0.0 --reload

Environment variables (or .env):
  SECRET_KEY    Signing key for access/refresh tokens (>= 32 chars). Required
                unless DEBUG=true, in which case a throwaway key is generated.
  PORT          Listening port (default 3000).
  DATABASE_URL  SQLAlchemy URL for the user/token store (default: sqlite file).
"""

import argparse
import sys

import uvicorn

from core.config import get_settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authservice",
        description="Credential-based authentication service.",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API under uvicorn.")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting).")
    serve.add_argument("--port", type=int, default=None, help="Listening port (default: PORT setting).")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only).")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command != "serve":
        parser.print_help()
        return 1

    try:
        settings = get_settings()
    except ValueError as e:
        print(f"  [!] Configuration error: {e}")
        return 2

    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
