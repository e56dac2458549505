"""Topic API routes.

Learn: There is deliberately no way to list every topic. A user's
topics are reached through /users/{id}/topics, which is scoped to the
caller. GET /topics is kept as a route so it answers 403 instead of 405.
"""

from fastapi import APIRouter, Depends, Query, Response

from eisenhower.api.deps import topic_service
from eisenhower.auth.dependencies import get_current_user
from eisenhower.auth.session import SessionContext
from eisenhower.errors import Forbidden
from eisenhower.schemas.task import TaskRead, TopicCreate, TopicRead, TopicUpdate
from eisenhower.services.task_service import TopicService

router = APIRouter(prefix="/topics")


@router.get("")
async def list_topics():
    raise Forbidden()


@router.post("", response_model=TopicRead)
async def create_topic(
    body: TopicCreate,
    ctx: SessionContext = Depends(get_current_user),
    svc: TopicService = Depends(topic_service),
):
    """Create a topic owned by the caller."""
    return await svc.create_topic(ctx, body)


@router.get("/{topic_id}", response_model=TopicRead)
async def get_topic(
    topic_id: int,
    trash: bool = Query(False, description="Include a tombstoned topic"),
    ctx: SessionContext = Depends(get_current_user),
    svc: TopicService = Depends(topic_service),
):
    return await svc.get_topic(ctx, topic_id, trash=trash)


@router.get("/{topic_id}/tasks", response_model=list[TaskRead])
async def list_topic_tasks(
    topic_id: int,
    trash: bool = Query(False, description="List tombstoned tasks instead"),
    ctx: SessionContext = Depends(get_current_user),
    svc: TopicService = Depends(topic_service),
):
    return await svc.list_topic_tasks(ctx, topic_id, trash=trash)


@router.api_route("/{topic_id}", methods=["PUT", "PATCH"], response_model=TopicRead)
async def update_topic(
    topic_id: int,
    body: TopicUpdate,
    ctx: SessionContext = Depends(get_current_user),
    svc: TopicService = Depends(topic_service),
):
    return await svc.update_topic(ctx, topic_id, body)


@router.delete("/{topic_id}", status_code=204)
async def delete_topic(
    topic_id: int,
    ctx: SessionContext = Depends(get_current_user),
    svc: TopicService = Depends(topic_service),
):
    """Move a topic and its tasks to the trash."""
    await svc.delete_topic(ctx, topic_id)
    return Response(status_code=204)


@router.post("/{topic_id}/restore", response_model=TopicRead)
async def restore_topic(
    topic_id: int,
    ctx: SessionContext = Depends(get_current_user),
    svc: TopicService = Depends(topic_service),
):
    return await svc.restore_topic(ctx, topic_id)
