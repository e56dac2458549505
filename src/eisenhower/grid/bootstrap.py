"""Plane configuration from markup data-* attributes.

Learn: Every grid on a page is a <div class="eisenhower-graph"> whose
data-* attributes say what it shows and how it behaves. They are read
once, when the plane is created:

    data-topic-id          fetch /api/topics/<id>/tasks; seed create URLs
    data-tasks-url         fetch tasks from this URL too
    data-graph-readonly    read-only mode
    data-trash-only        read-only, and only tombstoned tasks are shown
    data-highlight-task    task id to emphasise
    data-x / data-y        seed a provisional marker at this domain point
    data-graph-new-task    edit-position; the seeded marker is editable
    data-graph-edit-task   edit-position; this task id's marker is editable
    data-graph-create      create mode
    data-graph-size        canvas side (default 500)

Mode precedence: readonly/trash-only → read-only, then new/edit task →
edit-position, then create, otherwise browse. The same config renders
back to attributes, so a server-rendered page and a live plane agree.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

import structlog

from eisenhower.grid.plane import Mode, Plane, Viewport
from eisenhower.grid.transform import DEFAULT_SIZE

logger = structlog.get_logger()

_FALSE = {"false", "0", "no", "off"}


def _key(name: str) -> str:
    return name if name.startswith("data-") else f"data-{name}"


def _flag(attrs: Mapping[str, str], name: str) -> bool:
    """HTML boolean attribute: present means true unless spelled false."""
    if _key(name) not in attrs:
        return False
    value = attrs[_key(name)]
    return value is None or str(value).strip().lower() not in _FALSE


def _int(attrs: Mapping[str, str], name: str) -> Optional[int]:
    value = attrs.get(_key(name))
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("grid.bad_attribute", attribute=_key(name), value=value)
        return None


def _float(attrs: Mapping[str, str], name: str) -> Optional[float]:
    value = attrs.get(_key(name))
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("grid.bad_attribute", attribute=_key(name), value=value)
        return None


@dataclass(frozen=True)
class PlaneConfig:
    topic_id: Optional[int] = None
    tasks_url: Optional[str] = None
    readonly: bool = False
    trash_only: bool = False
    highlight_task: Optional[int] = None
    x: Optional[float] = None
    y: Optional[float] = None
    new_task: bool = False
    edit_task: Optional[int] = None
    create: bool = False
    size: int = DEFAULT_SIZE

    @classmethod
    def from_data_attributes(cls, attrs: Mapping[str, str]) -> "PlaneConfig":
        """Read a grid element's attributes (keys with or without "data-")."""
        attrs = {_key(k): v for k, v in attrs.items()}
        return cls(
            topic_id=_int(attrs, "topic-id"),
            tasks_url=attrs.get("data-tasks-url") or None,
            readonly=_flag(attrs, "graph-readonly"),
            trash_only=_flag(attrs, "trash-only"),
            highlight_task=_int(attrs, "highlight-task"),
            x=_float(attrs, "x"),
            y=_float(attrs, "y"),
            new_task=_flag(attrs, "graph-new-task"),
            edit_task=_int(attrs, "graph-edit-task"),
            create=_flag(attrs, "graph-create"),
            size=_int(attrs, "graph-size") or DEFAULT_SIZE,
        )

    @property
    def mode(self) -> Mode:
        if self.readonly or self.trash_only:
            return Mode.READONLY
        if self.new_task or self.edit_task is not None:
            return Mode.EDIT_POSITION
        if self.create:
            return Mode.CREATE
        return Mode.BROWSE

    @property
    def sources(self) -> tuple[str, ...]:
        """URLs the plane's tasks are fetched from."""
        urls = []
        if self.topic_id is not None:
            urls.append(f"/api/topics/{self.topic_id}/tasks")
        if self.tasks_url:
            urls.append(self.tasks_url)
        return tuple(urls)

    def to_data_attributes(self) -> dict[str, str]:
        attrs = {"data-graph-size": str(self.size)}
        if self.topic_id is not None:
            attrs["data-topic-id"] = str(self.topic_id)
        if self.tasks_url:
            attrs["data-tasks-url"] = self.tasks_url
        if self.readonly:
            attrs["data-graph-readonly"] = "true"
        if self.trash_only:
            attrs["data-trash-only"] = "true"
        if self.highlight_task is not None:
            attrs["data-highlight-task"] = str(self.highlight_task)
        if self.x is not None and self.y is not None:
            attrs["data-x"] = str(self.x)
            attrs["data-y"] = str(self.y)
        if self.new_task:
            attrs["data-graph-new-task"] = "true"
        if self.edit_task is not None:
            attrs["data-graph-edit-task"] = str(self.edit_task)
        if self.create:
            attrs["data-graph-create"] = "true"
        return attrs

    def build(self, viewport: Optional[Viewport] = None, **callbacks) -> Plane:
        """Create the plane this config describes.

        `callbacks` are passed through to Plane (confirm, navigate).
        """
        plane = Plane(
            self.size,
            self.mode,
            topic_id=self.topic_id,
            trash_only=self.trash_only,
            edit_task_id=self.edit_task,
            sources=self.sources,
            viewport=viewport,
            attributes=self.to_data_attributes(),
            **callbacks,
        )
        if self.x is not None and self.y is not None and self.edit_task is None:
            plane.plot_provisional(self.x, self.y)
        if self.highlight_task is not None:
            plane.highlight(self.highlight_task)
        return plane
