"""Access-control guards.

Learn: Guards are pure functions of a resolved SessionContext. They
either return nothing or raise, so route handlers compose them in
sequence and the first failure short-circuits, always before any
persistence call.

Error kinds matter here:
- Unauthorized (401): no proven identity, OR a non-administrator tried
  to set the administrator flag (an auth-method failure, not ownership)
- Forbidden (403): identity proven but not allowed on this resource

Administrator bypass of ownership is a per-call parameter: some reads
(listing a topic's tasks, a user's own topics/tasks) deliberately keep
even administrators out.
"""

from typing import Iterable

from eisenhower.auth.session import SessionContext
from eisenhower.errors import Forbidden, Unauthorized

ADMIN_FIELD = "is_admin"


def require_authenticated(ctx: SessionContext) -> SessionContext:
    """Fail unless some identity was proven. Does not look at the account."""
    if not ctx.email:
        raise Unauthorized()
    return ctx


def require_user(ctx: SessionContext) -> SessionContext:
    """Fail unless the proven identity has an account."""
    require_authenticated(ctx)
    if ctx.user is None:
        raise Unauthorized(
            "No account exists for this identity. Please finish account creation."
        )
    return ctx


def require_administrator(ctx: SessionContext) -> None:
    """Fail unless the resolved user is an administrator. Run after require_user."""
    if not ctx.is_admin:
        raise Forbidden()


def authorize_ownership(
    ctx: SessionContext,
    owner_id: int,
    *,
    allow_admin: bool,
) -> None:
    """Fail unless ctx owns the resource (or is an admin, when allowed)."""
    if ctx.user_id is not None and ctx.user_id == owner_id:
        return
    if allow_admin and ctx.is_admin:
        return
    raise Forbidden()


def guard_role_escalation(ctx: SessionContext, requested_fields: Iterable[str]) -> None:
    """Fail when a non-administrator's payload names the administrator flag."""
    if ADMIN_FIELD in set(requested_fields) and not ctx.is_admin:
        raise Unauthorized("Only administrators may change administrator status.")
