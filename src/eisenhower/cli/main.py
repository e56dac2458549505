"""Eisenhower CLI — run the server and manage accounts from a shell.

Usage:
    eisenhower serve                      # Run the app with uvicorn
    eisenhower init-db                    # Create every table (dev / sqlite)
    eisenhower token alice@example.com    # Mint a bearer token for an account
    eisenhower promote alice@example.com  # Make an account an administrator
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from typing import Optional

import click

from eisenhower import __version__

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="eisenhower")
def main():
    """Eisenhower — tasks on an urgent/important priority grid."""


# ---------------------------------------------------------------------------
# eisenhower serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: EISENHOWER_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: EISENHOWER_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the web application."""
    import uvicorn

    from eisenhower.config import settings

    uvicorn.run(
        "eisenhower.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# eisenhower init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
def init_db():
    """Create all tables directly from the models.

    Production databases should be migrated with `alembic upgrade head`.
    """
    _run(_init_db_impl())
    click.secho("Database tables created.", fg="green")


async def _init_db_impl():
    from eisenhower.db.engine import engine
    from eisenhower.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ---------------------------------------------------------------------------
# eisenhower token
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.option("--minutes", "-m", type=int, default=None, help="Lifetime in minutes")
def token(email: str, minutes: Optional[int]):
    """Mint a bearer token for the account with EMAIL."""
    from eisenhower.auth.jwt import create_access_token

    user = _run(_find_user(email))
    if user is None:
        _fail(f"No account exists for {email}")
    click.echo(create_access_token(user.email, expires_minutes=minutes))


async def _find_user(email: str):
    from eisenhower.auth.session import find_user_by_email
    from eisenhower.db.engine import async_session_factory

    async with async_session_factory() as db:
        return await find_user_by_email(db, email)


# ---------------------------------------------------------------------------
# eisenhower promote
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.option("--revoke", is_flag=True, help="Remove administrator rights instead")
def promote(email: str, revoke: bool):
    """Grant (or revoke) administrator rights for EMAIL."""
    found = _run(_promote_impl(email, not revoke))
    if not found:
        _fail(f"No account exists for {email}")
    verb = "revoked from" if revoke else "granted to"
    click.secho(f"Administrator rights {verb} {email.lower()}", fg="green")


async def _promote_impl(email: str, is_admin: bool) -> bool:
    from eisenhower.auth.session import find_user_by_email
    from eisenhower.db.engine import async_session_factory

    async with async_session_factory() as db:
        user = await find_user_by_email(db, email)
        if user is None:
            return False
        user.is_admin = is_admin
        await db.commit()
        return True


if __name__ == "__main__":
    main()
