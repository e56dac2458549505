"""Generic persistence collaborator — find / create / update / destroy.

Learn: Services talk to the database through Repository instead of
building every query by hand. The contract is small:

- find(id) returns None for a missing (or tombstoned) row, never raises
- find_all(*criteria) filters tombstones out unless asked for the trash
- create / update_attributes / destroy / restore flush, notify write
  observers, then commit, one transaction per write
- update_attributes(..., allowed_fields) silently ignores fields outside
  the allow-list, so callers can pass a request body straight through

Write observers (e.g. research collection) run after the flush and
before the commit, so whatever they add lands in the same transaction.
Database errors are never caught here; they propagate to the caller.
"""

from typing import Any, Generic, Iterable, Literal, Optional, Protocol, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eisenhower.db.models import Base, utcnow

M = TypeVar("M", bound=Base)

CREATE = "create"
UPDATE = "update"
DESTROY = "destroy"
RESTORE = "restore"

Tombstones = Literal["exclude", "only", "include"]


class WriteObserver(Protocol):
    """Hook invoked after every repository write."""

    async def on_after_write(self, db: AsyncSession, record: Base, action: str) -> None:
        ...


class Repository(Generic[M]):
    """CRUD access to one model class."""

    def __init__(
        self,
        db: AsyncSession,
        model: type[M],
        observers: Iterable[WriteObserver] = (),
    ):
        self.db = db
        self.model = model
        self.observers = list(observers)

    @property
    def soft_deletes(self) -> bool:
        return hasattr(self.model, "deleted_at")

    # ─── Reads ───────────────────────────────────────────

    async def find(self, record_id: int, *, with_deleted: bool = False) -> Optional[M]:
        record = await self.db.get(self.model, record_id)
        if record is None:
            return None
        if not with_deleted and self.soft_deletes and record.deleted_at is not None:
            return None
        return record

    async def find_all(
        self,
        *criteria: Any,
        deleted: Tombstones = "exclude",
        order_by: Sequence[Any] = (),
    ) -> list[M]:
        q = select(self.model).where(*criteria)
        if self.soft_deletes:
            if deleted == "exclude":
                q = q.where(self.model.deleted_at.is_(None))
            elif deleted == "only":
                q = q.where(self.model.deleted_at.is_not(None))
        q = q.order_by(*(order_by or (self.model.id,)))
        result = await self.db.execute(q)
        return list(result.scalars().all())

    # ─── Writes ──────────────────────────────────────────

    async def create(self, **attrs: Any) -> M:
        record = self.model(**attrs)
        self.db.add(record)
        return await self._commit(record, CREATE)

    async def update_attributes(
        self,
        record: M,
        attrs: dict[str, Any],
        allowed_fields: Optional[Iterable[str]] = None,
    ) -> M:
        allowed = set(allowed_fields) if allowed_fields is not None else None
        for field, value in attrs.items():
            if allowed is not None and field not in allowed:
                continue
            setattr(record, field, value)
        return await self._commit(record, UPDATE)

    async def destroy(self, record: M) -> M:
        """Tombstone the row when the model supports it, else delete it."""
        if self.soft_deletes:
            record.deleted_at = utcnow()
            return await self._commit(record, DESTROY)
        await self.db.delete(record)
        return await self._commit(record, DESTROY)

    async def restore(self, record: M) -> M:
        record.deleted_at = None
        return await self._commit(record, RESTORE)

    async def _commit(self, record: M, action: str) -> M:
        await self.db.flush()
        for observer in self.observers:
            await observer.on_after_write(self.db, record, action)
        await self.db.commit()
        return record
