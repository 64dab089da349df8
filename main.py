#!/usr/bin/env python3
"""
Session auth -- account signup, password signin and revocable bearer sessions.

Operator commands for the service. The HTTP API itself lives in api/main.py.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py init-db
  python main.py sweep
  python main.py deactivate alice@example.com

Environment variables (see core/config.py for the full list):
  SECRET_KEY     Required unless DEBUG=true. At least 32 characters.
  DATABASE_URL   SQLAlchemy URL. Defaults to a SQLite file next to this script.
  DEBUG          true to auto-generate a throwaway SECRET_KEY.
"""

import argparse
import sys

from auth.db import create_db_engine
from auth.sessions import SessionRegistry
from auth.store import CredentialStore
from core.config import get_settings


def _engine():
    settings = get_settings()
    return create_db_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        pool_timeout=settings.db_pool_timeout,
    )


def cmd_init_db(args: argparse.Namespace) -> int:
    """Create the users and sessions tables if they do not exist."""
    engine = _engine()
    engine.dispose()
    print(f"  Database ready: {engine.url.render_as_string(hide_password=True)}")
    return 0


def cmd_sweep(args: argparse.Namespace) -> int:
    """Delete expired and revoked session rows once, outside the server."""
    engine = _engine()
    try:
        removed = SessionRegistry(engine, get_settings().secret_key).sweep()
    finally:
        engine.dispose()
    print(f"  Removed {removed} stale session(s).")
    return 0


def cmd_deactivate(args: argparse.Namespace) -> int:
    """Soft-delete an account so it can no longer sign in."""
    engine = _engine()
    try:
        store = CredentialStore(engine, bcrypt_rounds=get_settings().bcrypt_rounds)
        user = store.get_by_email(args.email)
        if user is None:
            print(f"  [!] No account registered for '{args.email}'.")
            return 1
        store.deactivate(user.id)
    finally:
        engine.dispose()
    print(f"  Deactivated {user.email} ({user.id}).")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the API under uvicorn."""
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sessionauth",
        description="Account signup, password signin and revocable bearer sessions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 3000
  DEBUG=true python main.py serve --reload
  python main.py init-db
  python main.py sweep
  python main.py deactivate alice@example.com
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=cmd_serve)

    init_db = sub.add_parser("init-db", help="Create database tables")
    init_db.set_defaults(func=cmd_init_db)

    sweep = sub.add_parser("sweep", help="Delete expired and revoked sessions now")
    sweep.set_defaults(func=cmd_sweep)

    deactivate = sub.add_parser("deactivate", help="Deactivate an account by email")
    deactivate.add_argument("email", metavar="EMAIL", help="Email address of the account")
    deactivate.set_defaults(func=cmd_deactivate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
