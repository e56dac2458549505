"""Request-scoped session identity.

Learn: Every request resolves exactly once into a SessionContext, an
immutable value threaded through dependencies, never a global. The
resolution is a tiny state machine:

    Unresolved ──(bearer token valid?)──────────┐
        │                                       ├─► Resolved(user)
        └──(cookie session holds an email?)─────┤
                                                └─► Anonymous

Sources are tried in priority order: a bearer token (access_token query
parameter, X-Access-Token header, Authorization: Bearer) first, then the
email an assertion login stored in the signed cookie session. A bad
token is logged and skipped and never fails the request. An email with
no matching account still yields a context (user=None) so anonymous-
capable routes like account creation can tell "never logged in" from
"logged in, no account yet".

Database errors are never retried. A failed lastLogin write is an
InternalError because it means the data layer is broken.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from eisenhower.auth.jwt import TokenError, verify_token
from eisenhower.db.models import User, utcnow
from eisenhower.errors import InternalError

logger = structlog.get_logger()

SOURCE_TOKEN = "token"
SOURCE_SESSION = "session"
SOURCE_ANONYMOUS = "anonymous"

SESSION_EMAIL_KEY = "email"


@dataclass(frozen=True)
class SessionContext:
    """Who is making this request, as far as we could prove."""

    email: Optional[str] = None
    user: Optional[User] = None
    source: str = SOURCE_ANONYMOUS

    @classmethod
    def anonymous(cls) -> "SessionContext":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        """A verified identity with an account behind it."""
        return self.email is not None and self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and bool(self.user.is_admin)

    @property
    def user_id(self) -> Optional[int]:
        return self.user.id if self.user is not None else None


def bearer_token(request: Request) -> Optional[str]:
    """Find a bearer token on the request, if any."""
    token = request.query_params.get("access_token") or request.headers.get(
        "x-access-token"
    )
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


def session_email(request: Request) -> Optional[str]:
    """The verified email stored by an assertion login, if any."""
    if "session" not in request.scope:
        return None
    email = request.session.get(SESSION_EMAIL_KEY)
    return email.lower() if isinstance(email, str) and email else None


async def find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(func.lower(User.email) == email.lower())
    )
    return result.scalars().first()


async def resolve_session(request: Request, db: AsyncSession) -> SessionContext:
    """Turn the request's proof of identity into a SessionContext."""
    email: Optional[str] = None
    source = SOURCE_ANONYMOUS

    token = bearer_token(request)
    if token:
        try:
            email = verify_token(token)
            source = SOURCE_TOKEN
        except TokenError as e:
            # Fall through to the cookie session.
            logger.warning("auth.token_rejected", error=str(e))

    if email is None:
        email = session_email(request)
        if email is not None:
            source = SOURCE_SESSION

    if email is None:
        return SessionContext.anonymous()

    user = await find_user_by_email(db, email)
    if user is None:
        logger.info("auth.no_account", email=email, source=source)
        return SessionContext(email=email, user=None, source=source)

    user_id = user.id
    user.last_login = utcnow()
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("auth.last_login_failed", user_id=user_id, error=str(e))
        raise InternalError() from e

    logger.debug("auth.session_resolved", user_id=user_id, source=source)
    return SessionContext(email=email, user=user, source=source)
