"""CLI entrypoint for serving the API and database utilities."""

from __future__ import annotations

import argparse
import asyncio

import uvicorn

from ..application import bootstrap
from ..config import AppConfig
from ..services.auth_tokens import issue_token


async def _run_migrations() -> None:
    """Upgrade the database schema to the latest revision."""
    app = bootstrap()
    await app.migrate()


def _serve(host: str | None, port: int | None) -> None:
    """Run the HTTP API until interrupted."""
    config = AppConfig.load()
    uvicorn.run(
        "cardforge.api:create_api",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        log_config=None,
    )


def _issue_token(user_id: str, ttl_seconds: int | None) -> None:
    """Print a bearer token for the given owner id."""
    config = AppConfig.load()
    token = issue_token(
        user_id,
        config.auth_token_secret,
        ttl_seconds or config.auth_token_ttl_seconds,
    )
    print(token)


def main() -> None:
    """Dispatch CLI subcommands."""
    parser = argparse.ArgumentParser(description="Cardforge flashcard service utilities.")
    subcommands = parser.add_subparsers(dest="command")

    serve = subcommands.add_parser("serve", help="start the HTTP API (default)")
    serve.add_argument("--host", default=None, help="bind address, defaults to API_HOST")
    serve.add_argument("--port", type=int, default=None, help="bind port, defaults to API_PORT")

    subcommands.add_parser("migrate", help="upgrade database schema")

    token = subcommands.add_parser("issue-token", help="print a signed bearer token")
    token.add_argument("user_id", help="owner id to embed in the token")
    token.add_argument("--ttl", type=int, default=None, help="lifetime in seconds")

    args = parser.parse_args()

    if args.command == "migrate":
        asyncio.run(_run_migrations())
    elif args.command == "issue-token":
        _issue_token(args.user_id, args.ttl)
    else:
        _serve(getattr(args, "host", None), getattr(args, "port", None))


if __name__ == "__main__":
    main()
