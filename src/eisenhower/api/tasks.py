"""Task API routes.

Learn: These routes are the HTTP side of the priority plane. The grid
posts here when a user confirms a new task or saves a dragged position;
coordinates outside [-100, 100] fail schema validation (400) before the
service is ever called.

Key patterns:
- POST for creation and restore
- PUT/PATCH are both partial updates
- ?trash=true reaches tombstoned rows
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from eisenhower.api.deps import task_service
from eisenhower.auth.dependencies import get_current_user
from eisenhower.auth.session import SessionContext
from eisenhower.errors import Forbidden
from eisenhower.schemas.task import TaskCreate, TaskRead, TaskUpdate
from eisenhower.services.task_service import TaskService

router = APIRouter(prefix="/tasks")


@router.get("")
async def list_tasks():
    """No cross-user listing; use /users/{id}/tasks."""
    raise Forbidden()


@router.post("", response_model=TaskRead)
async def create_task(
    body: TaskCreate,
    ctx: SessionContext = Depends(get_current_user),
    svc: TaskService = Depends(task_service),
):
    return await svc.create_task(ctx, body)


@router.get("/trash", response_model=list[TaskRead])
async def list_trash(
    topic_id: Optional[int] = Query(None, alias="topicId"),
    ctx: SessionContext = Depends(get_current_user),
    svc: TaskService = Depends(task_service),
):
    """The caller's tombstoned tasks."""
    return await svc.list_trash(ctx, topic_id)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: int,
    trash: bool = Query(False, description="Include a tombstoned task"),
    ctx: SessionContext = Depends(get_current_user),
    svc: TaskService = Depends(task_service),
):
    return await svc.get_task(ctx, task_id, trash=trash)


@router.api_route("/{task_id}", methods=["PUT", "PATCH"], response_model=TaskRead)
async def update_task(
    task_id: int,
    body: TaskUpdate,
    ctx: SessionContext = Depends(get_current_user),
    svc: TaskService = Depends(task_service),
):
    return await svc.update_task(ctx, task_id, body)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: int,
    ctx: SessionContext = Depends(get_current_user),
    svc: TaskService = Depends(task_service),
):
    await svc.delete_task(ctx, task_id)
    return Response(status_code=204)


@router.post("/{task_id}/restore", response_model=TaskRead)
async def restore_task(
    task_id: int,
    ctx: SessionContext = Depends(get_current_user),
    svc: TaskService = Depends(task_service),
):
    return await svc.restore_task(ctx, task_id)
