"""Topic and task services — ownership-checked CRUD with soft delete.

Learn: Every read or write follows the same linear sequence:

    find (404 if the row doesn't exist) → authorize (403 if not yours)
    → write → commit

so "exists, but not yours" is always a 403 and never a 404. Deletes are
soft: the row gets a tombstone (deleted_at) and disappears from default
reads, but stays readable through the trash view and can be restored.

Administrator bypass is decided per operation:
- single topic/task reads: owner or administrator
- listing a topic's tasks: owner only (per-user data isolation)
- every mutation: owner only
"""

from typing import Iterable, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from eisenhower.auth.guards import authorize_ownership
from eisenhower.auth.session import SessionContext
from eisenhower.db.models import Task, Topic, utcnow
from eisenhower.db.repository import Repository, WriteObserver
from eisenhower.errors import Conflict, NotFound
from eisenhower.schemas.task import TaskCreate, TaskUpdate, TopicCreate, TopicUpdate

logger = structlog.get_logger()


class TopicService:
    """Business logic for topics."""

    def __init__(self, db: AsyncSession, observers: Iterable[WriteObserver] = ()):
        self.db = db
        observers = list(observers)
        self.topics = Repository(db, Topic, observers)
        self.tasks = Repository(db, Task, observers)

    async def _owned(
        self, ctx: SessionContext, topic_id: int, *, with_deleted: bool = False
    ) -> Topic:
        topic = await self.topics.find(topic_id, with_deleted=with_deleted)
        if not topic:
            raise NotFound("Topic not found")
        authorize_ownership(ctx, topic.user_id, allow_admin=False)
        return topic

    # ─── Create / read ───────────────────────────────────

    async def create_topic(self, ctx: SessionContext, body: TopicCreate) -> Topic:
        topic = await self.topics.create(user_id=ctx.user_id, **body.model_dump())
        logger.info("topic.created", topic_id=topic.id, user_id=ctx.user_id)
        return topic

    async def get_topic(
        self, ctx: SessionContext, topic_id: int, *, trash: bool = False
    ) -> Topic:
        topic = await self.topics.find(topic_id, with_deleted=trash)
        if not topic:
            raise NotFound("Topic not found")
        authorize_ownership(ctx, topic.user_id, allow_admin=True)
        return topic

    async def list_topic_tasks(
        self, ctx: SessionContext, topic_id: int, *, trash: bool = False
    ) -> list[Task]:
        """Tasks in a topic (tombstoned ones only, for the trash view)."""
        await self._owned(ctx, topic_id, with_deleted=trash)
        return await self.tasks.find_all(
            Task.topic_id == topic_id, deleted="only" if trash else "exclude"
        )

    # ─── Update ──────────────────────────────────────────

    async def update_topic(
        self, ctx: SessionContext, topic_id: int, body: TopicUpdate
    ) -> Topic:
        topic = await self._owned(ctx, topic_id)
        return await self.topics.update_attributes(
            topic, body.model_dump(exclude_unset=True)
        )

    # ─── Delete / restore ────────────────────────────────

    async def delete_topic(self, ctx: SessionContext, topic_id: int) -> None:
        """Tombstone the topic and every live task in it."""
        topic = await self._owned(ctx, topic_id)
        await self.db.execute(
            update(Task)
            .where(Task.topic_id == topic.id, Task.deleted_at.is_(None))
            .values(deleted_at=utcnow())
        )
        await self.topics.destroy(topic)
        logger.info("topic.deleted", topic_id=topic_id, user_id=ctx.user_id)

    async def restore_topic(self, ctx: SessionContext, topic_id: int) -> Topic:
        """Bring a topic and its tombstoned tasks back out of the trash."""
        topic = await self._owned(ctx, topic_id, with_deleted=True)
        if not topic.is_deleted:
            return topic
        await self.db.execute(
            update(Task)
            .where(Task.topic_id == topic.id, Task.deleted_at.is_not(None))
            .values(deleted_at=None)
        )
        topic = await self.topics.restore(topic)
        logger.info("topic.restored", topic_id=topic_id, user_id=ctx.user_id)
        return topic


class TaskService:
    """Business logic for tasks."""

    def __init__(self, db: AsyncSession, observers: Iterable[WriteObserver] = ()):
        self.db = db
        observers = list(observers)
        self.tasks = Repository(db, Task, observers)
        self.topics = Repository(db, Topic, observers)

    async def _owned(
        self, ctx: SessionContext, task_id: int, *, with_deleted: bool = False
    ) -> Task:
        task = await self.tasks.find(task_id, with_deleted=with_deleted)
        if not task:
            raise NotFound("Task not found")
        authorize_ownership(ctx, task.user_id, allow_admin=False)
        return task

    async def _check_topic(self, ctx: SessionContext, topic_id: Optional[int]) -> None:
        """A task may only be filed under one of the caller's own topics."""
        if topic_id is None:
            return
        topic = await self.topics.find(topic_id)
        if not topic:
            raise NotFound("Topic not found")
        authorize_ownership(ctx, topic.user_id, allow_admin=False)

    # ─── Create / read ───────────────────────────────────

    async def create_task(self, ctx: SessionContext, body: TaskCreate) -> Task:
        """Create a task owned by the caller."""
        await self._check_topic(ctx, body.topic_id)
        task = await self.tasks.create(user_id=ctx.user_id, **body.model_dump())
        logger.info(
            "task.created", task_id=task.id, topic_id=task.topic_id, user_id=ctx.user_id
        )
        return task

    async def get_task(
        self, ctx: SessionContext, task_id: int, *, trash: bool = False
    ) -> Task:
        task = await self.tasks.find(task_id, with_deleted=trash)
        if not task:
            raise NotFound("Task not found")
        authorize_ownership(ctx, task.user_id, allow_admin=True)
        return task

    async def list_trash(
        self, ctx: SessionContext, topic_id: Optional[int] = None
    ) -> list[Task]:
        """The caller's tombstoned tasks, optionally within one topic."""
        criteria = [Task.user_id == ctx.user_id]
        if topic_id is not None:
            criteria.append(Task.topic_id == topic_id)
        return await self.tasks.find_all(*criteria, deleted="only")

    # ─── Update ──────────────────────────────────────────

    async def update_task(
        self, ctx: SessionContext, task_id: int, body: TaskUpdate
    ) -> Task:
        task = await self._owned(ctx, task_id)
        changes = body.model_dump(exclude_unset=True)
        if "topic_id" in changes:
            await self._check_topic(ctx, changes["topic_id"])
        return await self.tasks.update_attributes(task, changes)

    # ─── Delete / restore ────────────────────────────────

    async def delete_task(self, ctx: SessionContext, task_id: int) -> None:
        task = await self._owned(ctx, task_id)
        await self.tasks.destroy(task)
        logger.info("task.deleted", task_id=task_id, user_id=ctx.user_id)

    async def restore_task(self, ctx: SessionContext, task_id: int) -> Task:
        """Bring a task back. Its topic, if any, must already be live."""
        task = await self._owned(ctx, task_id, with_deleted=True)
        if not task.is_deleted:
            return task
        if task.topic_id is not None:
            topic = await self.topics.find(task.topic_id, with_deleted=True)
            if topic is not None and topic.is_deleted:
                raise Conflict("Topic is in the trash. Restore the topic first.")
        task = await self.tasks.restore(task)
        logger.info("task.restored", task_id=task_id, user_id=ctx.user_id)
        return task
