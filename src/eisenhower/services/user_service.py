"""User service — account CRUD behind the access-control guards.

Learn: Order matters in every method: guards first, then lookups, then
writes. A rejected request never touches the database beyond the
session resolution that already happened.

Update rules:
- a non-administrator naming isAdmin is Unauthorized (even for self)
- a user updating themself may change every field
- an administrator updating someone else may change email and isAdmin only
- anyone else is Forbidden
The guard and ownership checks run BEFORE the target is looked up, so
a forbidden caller cannot probe which user ids exist.
"""

from typing import Iterable

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eisenhower.auth.guards import authorize_ownership, guard_role_escalation
from eisenhower.auth.session import SessionContext, find_user_by_email
from eisenhower.db.models import Task, Topic, User
from eisenhower.db.repository import Repository, WriteObserver
from eisenhower.errors import Conflict, Forbidden, NotFound
from eisenhower.schemas.user import UserCreate, UserUpdate

logger = structlog.get_logger()

# What an administrator may change on somebody else's account.
ADMIN_EDITABLE_FIELDS = frozenset({"email", "is_admin"})

_DUPLICATE = "User account already exists."


class UserService:
    """Business logic for user accounts and their owned collections."""

    def __init__(self, db: AsyncSession, observers: Iterable[WriteObserver] = ()):
        self.db = db
        observers = list(observers)
        self.users = Repository(db, User, observers)
        self.topics = Repository(db, Topic, observers)
        self.tasks = Repository(db, Task, observers)

    # ─── Create ──────────────────────────────────────────

    async def create_user(self, ctx: SessionContext, body: UserCreate) -> User:
        """Create an account. Anyone may, but only admins may grant isAdmin."""
        guard_role_escalation(ctx, body.model_fields_set)

        if await find_user_by_email(self.db, body.email):
            raise Conflict(_DUPLICATE)

        try:
            user = await self.users.create(**body.model_dump())
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email.
            await self.db.rollback()
            raise Conflict(_DUPLICATE)

        logger.info("user.created", user_id=user.id, by=ctx.user_id)
        return user

    # ─── Read ────────────────────────────────────────────

    async def list_users(self) -> list[User]:
        return await self.users.find_all()

    async def get_user(self, ctx: SessionContext, user_id: int) -> User:
        authorize_ownership(ctx, user_id, allow_admin=True)
        user = await self.users.find(user_id)
        if not user:
            raise NotFound("User not found")
        return user

    async def list_topics(
        self, ctx: SessionContext, user_id: int, *, trash: bool = False
    ) -> list[Topic]:
        """A user's own topics. Administrators get no bypass here."""
        authorize_ownership(ctx, user_id, allow_admin=False)
        return await self.topics.find_all(
            Topic.user_id == user_id, deleted="only" if trash else "exclude"
        )

    async def list_tasks(
        self, ctx: SessionContext, user_id: int, *, trash: bool = False
    ) -> list[Task]:
        """A user's own tasks. Administrators get no bypass here."""
        authorize_ownership(ctx, user_id, allow_admin=False)
        return await self.tasks.find_all(
            Task.user_id == user_id, deleted="only" if trash else "exclude"
        )

    # ─── Update ──────────────────────────────────────────

    async def update_user(
        self, ctx: SessionContext, user_id: int, body: UserUpdate
    ) -> User:
        guard_role_escalation(ctx, body.model_fields_set)

        if ctx.user_id == user_id:
            allowed = None
        elif ctx.is_admin:
            allowed = ADMIN_EDITABLE_FIELDS
        else:
            raise Forbidden()

        user = await self.users.find(user_id)
        if not user:
            raise NotFound("User not found")

        changes = body.changes()
        new_email = changes.get("email")
        if new_email and new_email != user.email:
            other = await find_user_by_email(self.db, new_email)
            if other and other.id != user.id:
                raise Conflict("Email address already in use.")

        try:
            user = await self.users.update_attributes(user, changes, allowed)
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("Email address already in use.")

        logger.info(
            "user.updated",
            user_id=user.id,
            by=ctx.user_id,
            fields=sorted(changes if allowed is None else set(changes) & allowed),
        )
        return user

    # ─── Delete ──────────────────────────────────────────

    async def delete_user(self, ctx: SessionContext, user_id: int) -> None:
        """Delete an account and everything it owns (hard delete)."""
        authorize_ownership(ctx, user_id, allow_admin=True)
        user = await self.users.find(user_id)
        if not user:
            raise NotFound("User not found")

        await self.db.execute(delete(Task).where(Task.user_id == user.id))
        await self.db.execute(delete(Topic).where(Topic.user_id == user.id))
        await self.users.destroy(user)
        logger.info("user.deleted", user_id=user_id, by=ctx.user_id)
