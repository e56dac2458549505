"""HTML pages — the same services and guards as the JSON API, rendered.

Learn: Each page builds a PlaneConfig exactly as the markup would
describe it, builds the Plane, applies the tasks the services return,
and renders Plane.view() to SVG. Errors raised here go through the same
handlers as the API; a browser's Accept header gets error.html.

    /                      landing page
    /topics                the caller's topics
    /topics/{id}           topic grid (browse, or ?mode=create)
    /tasks/create          new-task grid (edit-position) seeded from ?topic&x&y;
                           POST saves the form and redirects to the task
    /tasks/trash           tombstoned tasks (read-only), optionally ?topic=
    /tasks/{id}            one task highlighted (read-only)
    /users                 administrator listing
"""

from typing import Any, Iterable, Literal, Optional

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from eisenhower.api.deps import task_service, topic_service, user_service
from eisenhower.auth.dependencies import (
    get_admin_user,
    get_current_user,
    get_session_context,
)
from eisenhower.auth.session import SessionContext
from eisenhower.config import settings
from eisenhower.db.models import COORD_MAX, COORD_MIN, Task
from eisenhower.grid import PlaneConfig
from eisenhower.schemas.task import TaskCreate, TaskRead
from eisenhower.services.task_service import TaskService, TopicService
from eisenhower.services.user_service import UserService
from eisenhower.web.templating import templates

router = APIRouter()


def _task_json(tasks: Iterable[Task]) -> list[dict[str, Any]]:
    return [TaskRead.model_validate(t).model_dump(mode="json", by_alias=True) for t in tasks]


def _render(request: Request, name: str, ctx: SessionContext, **context):
    return templates.TemplateResponse(
        request, name, {"session": ctx, "settings": settings, **context}
    )
@router.get("/")
async def index(request: Request, ctx: SessionContext = Depends(get_session_context)):
    demo = PlaneConfig(readonly=True, size=settings.grid_size).build()
    demo.apply_tasks(
        [
            {"id": 1, "description": "Deadline today", "coordX": 70, "coordY": 75},
            {"id": 2, "description": "Plan next quarter", "coordX": -55, "coordY": 60},
            {"id": 3, "description": "Answer the phone", "coordX": 60, "coordY": -40},
            {"id": 4, "description": "Browse the web", "coordX": -65, "coordY": -70},
        ]
    )
    return _render(request, "index.html", ctx, plane=demo.view())


# ═══════════════════════════════════════════════════════════
# Topics
# ═══════════════════════════════════════════════════════════


@router.get("/topics")
async def topics_page(
    request: Request,
    ctx: SessionContext = Depends(get_current_user),
    svc: UserService = Depends(user_service),
):
    topics = await svc.list_topics(ctx, ctx.user_id)
    return _render(request, "topics.html", ctx, topics=topics)


@router.get("/topics/{topic_id}")
async def topic_page(
    topic_id: int,
    request: Request,
    mode: Literal["browse", "create"] = Query("browse"),
    ctx: SessionContext = Depends(get_current_user),
    svc: TopicService = Depends(topic_service),
):
    """Topic grid. In create mode a click on the grid starts a new task there."""
    topic = await svc.get_topic(ctx, topic_id)
    tasks = await svc.list_topic_tasks(ctx, topic_id)

    plane = PlaneConfig(
        topic_id=topic.id, create=mode == "create", size=settings.grid_size
    ).build()
    plane.apply_tasks(_task_json(tasks))
    return _render(
        request,
        "topic.html",
        ctx,
        topic=topic,
        tasks=tasks,
        plane=plane.view(),
        create_url=plane.create_url(0.0, 0.0),
    )


# ═══════════════════════════════════════════════════════════
# Tasks
# ═══════════════════════════════════════════════════════════


@router.get("/tasks/create")
async def create_task_page(
    request: Request,
    topic: Optional[int] = Query(None),
    x: float = Query(0.0, ge=COORD_MIN, le=COORD_MAX),
    y: float = Query(0.0, ge=COORD_MIN, le=COORD_MAX),
    ctx: SessionContext = Depends(get_current_user),
    svc: TopicService = Depends(topic_service),
):
    siblings = await svc.list_topic_tasks(ctx, topic) if topic is not None else []

    config = PlaneConfig(topic_id=topic, x=x, y=y, new_task=True, size=settings.grid_size)
    plane = config.build()
    plane.apply_tasks(_task_json(siblings))
    return _render(request, "task_form.html", ctx, topic_id=topic, plane=plane.view())


@router.post("/tasks/create")
async def create_task_submit(
    description: str = Form(""),
    coord_x: Optional[str] = Form(None, alias="coordX"),
    coord_y: Optional[str] = Form(None, alias="coordY"),
    due_date: Optional[str] = Form(None, alias="dueDate"),
    topic_id: Optional[str] = Form(None, alias="topicId"),
    ctx: SessionContext = Depends(get_current_user),
    svc: TaskService = Depends(task_service),
):
    """Save the new-task form, then show the task on its grid."""
    fields = {
        "description": description,
        "coordX": coord_x,
        "coordY": coord_y,
        "dueDate": due_date,
        "topicId": topic_id,
    }
    # Browsers send empty inputs as ""; an empty input means "not given".
    sent = {k: v for k, v in fields.items() if v not in (None, "")}
    try:
        body = TaskCreate.model_validate(sent)
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    task = await svc.create_task(ctx, body)
    return RedirectResponse(f"/tasks/{task.id}", status_code=303)


@router.get("/tasks/trash")
async def trash_page(
    request: Request,
    topic: Optional[int] = Query(None),
    ctx: SessionContext = Depends(get_current_user),
    svc: TaskService = Depends(task_service),
):
    tasks = await svc.list_trash(ctx, topic)

    if topic is not None:
        tasks_url = f"/api/tasks/trash?topicId={topic}"
    else:
        tasks_url = f"/api/users/{ctx.user_id}/tasks?trash=true"
    plane = PlaneConfig(
        trash_only=True, tasks_url=tasks_url, size=settings.grid_size
    ).build()
    plane.apply_tasks(_task_json(tasks))
    return _render(request, "trash.html", ctx, tasks=tasks, plane=plane.view())


@router.get("/tasks/{task_id}")
async def task_page(
    task_id: int,
    request: Request,
    ctx: SessionContext = Depends(get_current_user),
    tasks: TaskService = Depends(task_service),
    topics: TopicService = Depends(topic_service),
):
    task = await tasks.get_task(ctx, task_id)
    shown = [task]
    if task.topic_id is not None and task.user_id == ctx.user_id:
        shown = await topics.list_topic_tasks(ctx, task.topic_id)

    plane = PlaneConfig(
        readonly=True, highlight_task=task.id, size=settings.grid_size
    ).build()
    plane.apply_tasks(_task_json(shown))
    return _render(request, "task.html", ctx, task=task, plane=plane.view())


# ═══════════════════════════════════════════════════════════
# Administration
# ═══════════════════════════════════════════════════════════


@router.get("/users")
async def users_page(
    request: Request,
    ctx: SessionContext = Depends(get_admin_user),
    svc: UserService = Depends(user_service),
):
    users = await svc.list_users()
    return _render(request, "users.html", ctx, users=users)
