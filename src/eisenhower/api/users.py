"""User API routes.

Learn: Routes translate HTTP into UserService calls; every rule about
who may do what lives in the service and the auth guards. Account
creation is open to anonymous callers (the session may hold a verified
email that has no account yet), so it takes the soft session dependency.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response

from eisenhower.api.deps import user_service
from eisenhower.auth.dependencies import (
    get_admin_user,
    get_current_user,
    get_session_context,
)
from eisenhower.auth.session import SOURCE_SESSION, SessionContext
from eisenhower.schemas.task import TaskRead, TopicRead
from eisenhower.schemas.user import UserCreate, UserRead, UserUpdate
from eisenhower.services.mail import MailTransport, get_mail_transport, send_welcome
from eisenhower.services.user_service import UserService

router = APIRouter(prefix="/users")


# ═══════════════════════════════════════════════════════════
# Accounts
# ═══════════════════════════════════════════════════════════


@router.post("", response_model=UserRead)
async def create_user(
    body: UserCreate,
    background: BackgroundTasks,
    ctx: SessionContext = Depends(get_session_context),
    svc: UserService = Depends(user_service),
    transport: MailTransport = Depends(get_mail_transport),
):
    """Create an account. Only administrators may create administrators."""
    user = await svc.create_user(ctx, body)
    if user.send_notifications:
        background.add_task(send_welcome, user, transport)
    return user


@router.get("", response_model=list[UserRead])
async def list_users(
    ctx: SessionContext = Depends(get_admin_user),
    svc: UserService = Depends(user_service),
):
    return await svc.list_users()


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int,
    ctx: SessionContext = Depends(get_current_user),
    svc: UserService = Depends(user_service),
):
    return await svc.get_user(ctx, user_id)


@router.api_route("/{user_id}", methods=["PUT", "PATCH"], response_model=UserRead)
async def update_user(
    user_id: int,
    body: UserUpdate,
    ctx: SessionContext = Depends(get_current_user),
    svc: UserService = Depends(user_service),
):
    """Partial update; unsent fields are left alone for both verbs."""
    return await svc.update_user(ctx, user_id, body)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    request: Request,
    ctx: SessionContext = Depends(get_current_user),
    svc: UserService = Depends(user_service),
):
    await svc.delete_user(ctx, user_id)
    # Deleting yourself also signs you out.
    if ctx.user_id == user_id and ctx.source == SOURCE_SESSION:
        request.session.clear()
    return Response(status_code=204)


# ═══════════════════════════════════════════════════════════
# Owned collections
# ═══════════════════════════════════════════════════════════


@router.get("/{user_id}/topics", response_model=list[TopicRead])
async def list_user_topics(
    user_id: int,
    trash: bool = Query(False, description="List tombstoned topics instead"),
    ctx: SessionContext = Depends(get_current_user),
    svc: UserService = Depends(user_service),
):
    return await svc.list_topics(ctx, user_id, trash=trash)


@router.get("/{user_id}/tasks", response_model=list[TaskRead])
async def list_user_tasks(
    user_id: int,
    trash: bool = Query(False, description="List tombstoned tasks instead"),
    ctx: SessionContext = Depends(get_current_user),
    svc: UserService = Depends(user_service),
):
    return await svc.list_tasks(ctx, user_id, trash=trash)
