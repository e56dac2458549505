"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to resolve the
session and apply the coarse guards. FastAPI caches a dependency per
request, so the session resolves (and lastLogin is written) once no
matter how many handlers and routers ask for it.

Three levels:
1. get_session_context — may be anonymous (account creation, whoami)
2. get_current_user    — 401 unless a verified identity with an account
3. get_admin_user      — additionally 403 unless administrator
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from eisenhower.auth.guards import require_administrator, require_user
from eisenhower.auth.session import SessionContext, resolve_session
from eisenhower.db.engine import get_db


async def get_session_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """Resolve the request's identity (soft — anonymous is fine)."""
    return await resolve_session(request, db)


async def get_current_user(
    ctx: SessionContext = Depends(get_session_context),
) -> SessionContext:
    """Resolve the request's identity (hard — 401 without an account)."""
    return require_user(ctx)


async def get_admin_user(
    ctx: SessionContext = Depends(get_current_user),
) -> SessionContext:
    """Resolve an administrator's identity (403 for everyone else)."""
    require_administrator(ctx)
    return ctx
