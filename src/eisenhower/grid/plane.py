"""Plane — one interactive priority grid and everything plotted on it.

Learn: A Plane is a headless model of a rendered grid. The browser (or a
test) feeds it pointer events; it keeps the marker registry and the
interaction state, and calls back when something should happen outside
it (ask for confirmation, navigate, update a readout, cross-highlight).
The HTML surface renders Plane.view() to SVG.

Every piece of mutable state lives on the instance. Two planes on one
page never share markers, highlight, mode, or drag state.

Modes (exactly one at a time):

    read-only      clicks are ignored, nothing can be dragged
    create         clicking empty plane plots a provisional marker and asks
                   confirm(x, y); yes → navigate to /tasks/create?..., no →
                   the marker fades out and is removed
    edit-position  the editable marker can be dragged; each move notifies
                   readout listeners; only commit_position() saves; a plain
                   click on the plane moves the editable marker there
    browse         clicking a marker navigates to /tasks/<id>; hovering
                   notifies hover listeners with the task id

Drag state machine:

    Idle ──pointer_down(editable marker)──► Dragging
    Dragging ──pointer_move──► Dragging          (readout updated)
    Dragging ──pointer_up | touch_end──► Idle    (next click swallowed)

While dragging, the marker's own click flag is forced read-only and the
prior value is restored on release. The click a browser fires after the
release is swallowed, so a drag never doubles as a click.
"""

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional
from urllib.parse import urlencode

import structlog

from eisenhower.grid.transform import DEFAULT_SIZE, GridTransform

logger = structlog.get_logger()

HIGHLIGHT_SCALE = 1.5
DIMMED_OPACITY = 0.4

ConfirmCallback = Callable[[float, float], bool]
NavigateCallback = Callable[[str], None]
ReadoutListener = Callable[[float, float], None]
HoverListener = Callable[[Optional[int]], None]


class Mode(str, Enum):
    READONLY = "read-only"
    CREATE = "create"
    EDIT_POSITION = "edit-position"
    BROWSE = "browse"


class PlaneClosed(Exception):
    """The plane was torn down and no longer accepts interaction."""


# ═══════════════════════════════════════════════════════════
# Input
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class PointerEvent:
    """A mouse, pointer or touch event in client (page) coordinates.

    Touch events report their points in `touches`; the first one wins.
    """

    client_x: float = 0.0
    client_y: float = 0.0
    touches: tuple[tuple[float, float], ...] = ()

    @property
    def point(self) -> tuple[float, float]:
        if self.touches:
            return self.touches[0]
        return (self.client_x, self.client_y)


@dataclass(frozen=True)
class Viewport:
    """Where the canvas sits on the page and how large it is drawn.

    The SVG view-box is always `view_box` units wide, but CSS may render
    it at any width; ratio converts rendered pixels to view-box units.
    """

    left: float = 0.0
    top: float = 0.0
    width: float = DEFAULT_SIZE
    view_box: float = DEFAULT_SIZE

    @property
    def ratio(self) -> float:
        return self.view_box / self.width

    def to_display(self, client_x: float, client_y: float) -> tuple[float, float]:
        return ((client_x - self.left) * self.ratio, (client_y - self.top) * self.ratio)


# ═══════════════════════════════════════════════════════════
# Markers
# ═══════════════════════════════════════════════════════════


@dataclass
class Marker:
    """One plotted point. Provisional markers have no task behind them yet."""

    marker_id: int
    x: float
    y: float
    display_x: float
    display_y: float
    z: int
    task_id: Optional[int] = None
    state: Optional[str] = None
    description: str = ""
    provisional: bool = False
    scale: float = 1.0
    opacity: float = 1.0
    fading: bool = False
    removed: bool = False
    click_readonly: bool = False


@dataclass(frozen=True)
class MarkerView:
    marker_id: int
    task_id: Optional[int]
    state: Optional[str]
    description: str
    x: float
    y: float
    display_x: float
    display_y: float
    scale: float
    opacity: float
    provisional: bool
    editable: bool


@dataclass(frozen=True)
class PlaneView:
    """Immutable render snapshot; markers are in z-order (back to front)."""

    size: float
    mode: Mode
    markers: tuple[MarkerView, ...]
    highlight: Optional[int]
    readout: Optional[tuple[float, float]]
    attributes: Mapping[str, str] = field(default_factory=dict)


@dataclass
class _Drag:
    marker_id: int
    prior_click_readonly: bool


def _number(value: Any) -> float:
    """Coordinates the API left empty plot at the origin."""
    return float(value) if value is not None else 0.0


# ═══════════════════════════════════════════════════════════
# Plane
# ═══════════════════════════════════════════════════════════


class Plane:
    """A single priority grid with its own markers and interaction state."""

    def __init__(
        self,
        size: float = DEFAULT_SIZE,
        mode: Mode = Mode.BROWSE,
        *,
        topic_id: Optional[int] = None,
        trash_only: bool = False,
        edit_task_id: Optional[int] = None,
        sources: Iterable[str] = (),
        viewport: Optional[Viewport] = None,
        confirm: Optional[ConfirmCallback] = None,
        navigate: Optional[NavigateCallback] = None,
        attributes: Optional[Mapping[str, str]] = None,
    ):
        self.transform = GridTransform(size)
        self.viewport = viewport or Viewport(width=size, view_box=size)
        self.topic_id = topic_id
        self.trash_only = trash_only
        self.edit_task_id = edit_task_id
        self.sources = tuple(sources)
        self.attributes = dict(attributes or {})
        self.confirm: ConfirmCallback = confirm or (lambda x, y: False)
        self.navigate: NavigateCallback = navigate or (lambda url: None)
        self.readout_listeners: list[ReadoutListener] = []
        self.hover_listeners: list[HoverListener] = []

        self._mode = mode
        self._markers: dict[int, Marker] = {}
        self._by_task: dict[int, int] = {}
        self._ids = itertools.count(1)
        self._z = itertools.count(1)
        self._highlight: Optional[int] = None
        self._editable: Optional[int] = None
        self._drag: Optional[_Drag] = None
        self._swallow_click = False
        self.closed = False

    # ─── State ───────────────────────────────────────────

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def markers(self) -> list[Marker]:
        return sorted(self._markers.values(), key=lambda m: m.z)

    @property
    def dragging(self) -> bool:
        return self._drag is not None

    @property
    def highlighted(self) -> Optional[int]:
        return self._highlight

    @property
    def editable(self) -> Optional[Marker]:
        if self._editable is None:
            return None
        return self._markers.get(self._editable)

    def marker_for(self, task_id: int) -> Optional[Marker]:
        marker_id = self._by_task.get(task_id)
        return self._markers.get(marker_id) if marker_id is not None else None

    def _check_open(self) -> None:
        if self.closed:
            raise PlaneClosed()

    # ─── Plotting ────────────────────────────────────────

    def plot(self, task: Mapping[str, Any]) -> Marker:
        """Plot a task (API JSON, camelCase) or move its existing marker."""
        self._check_open()
        task_id = int(task["id"])
        x, y = _number(task.get("coordX")), _number(task.get("coordY"))

        marker = self.marker_for(task_id)
        if marker is None:
            marker = self._new_marker(x, y, task_id=task_id)
            self._by_task[task_id] = marker.marker_id
        elif marker.marker_id != self._editable:
            # The editable marker's local position wins until it is saved.
            self._move(marker, x, y)

        marker.state = task.get("state")
        marker.description = task.get("description") or ""

        if self._mode is Mode.EDIT_POSITION and task_id == self.edit_task_id:
            self._editable = marker.marker_id
        self._style(marker)
        return marker

    def plot_provisional(self, x: float, y: float) -> Marker:
        """A marker for a task that doesn't exist yet."""
        self._check_open()
        marker = self._new_marker(x, y, provisional=True)
        if self._mode is Mode.EDIT_POSITION and self.edit_task_id is None:
            self._editable = marker.marker_id
        return marker

    def _new_marker(
        self, x: float, y: float, *, task_id: Optional[int] = None, provisional: bool = False
    ) -> Marker:
        dx, dy = self.transform.to_display(x, y)
        marker = Marker(
            marker_id=next(self._ids),
            x=x,
            y=y,
            display_x=dx,
            display_y=dy,
            z=next(self._z),
            task_id=task_id,
            provisional=provisional,
        )
        self._markers[marker.marker_id] = marker
        return marker

    def _move(self, marker: Marker, x: float, y: float) -> None:
        marker.x, marker.y = x, y
        marker.display_x, marker.display_y = self.transform.to_display(x, y)

    def _remove(self, marker: Marker) -> None:
        marker.removed = True
        self._markers.pop(marker.marker_id, None)
        if marker.task_id is not None:
            self._by_task.pop(marker.task_id, None)
        if self._editable == marker.marker_id:
            self._editable = None

    def fade_out(self, marker: Marker) -> None:
        marker.fading = True
        marker.opacity = 0.0
        self._remove(marker)

    # ─── Coordinates ─────────────────────────────────────

    def pointer_to_domain(self, event: PointerEvent) -> tuple[float, float]:
        """Client point → domain coordinates. Never clamped."""
        display_x, display_y = self.viewport.to_display(*event.point)
        return self.transform.to_domain(display_x, display_y)

    # ─── Highlight ───────────────────────────────────────

    def highlight(self, task_id: Optional[int]) -> None:
        """Emphasise one task's marker and dim the rest; None clears."""
        self._check_open()
        self._highlight = task_id
        for marker in self._markers.values():
            self._style(marker)

    def _style(self, marker: Marker) -> None:
        if self._highlight is None or marker.provisional:
            marker.scale, marker.opacity = 1.0, 1.0
        elif marker.task_id == self._highlight:
            marker.scale, marker.opacity = HIGHLIGHT_SCALE, 1.0
            if marker.z != self._top_z():
                marker.z = next(self._z)
        else:
            marker.scale, marker.opacity = 1.0, DIMMED_OPACITY

    def _top_z(self) -> int:
        return max((m.z for m in self._markers.values()), default=0)

    # ─── Modes ───────────────────────────────────────────

    def set_mode(self, mode: Mode) -> None:
        self._check_open()
        if self._drag is not None:
            self._end_drag()
        self._swallow_click = False
        if mode is not Mode.EDIT_POSITION:
            self._editable = None
        elif self.edit_task_id is not None:
            marker = self.marker_for(self.edit_task_id)
            self._editable = marker.marker_id if marker else None
        self._mode = mode
        logger.debug("grid.mode_changed", mode=mode.value)

    # ─── Clicks ──────────────────────────────────────────

    def click(self, event: PointerEvent, marker: Optional[Marker] = None) -> None:
        """A click on the plane, or on `marker` when one was hit."""
        if self.closed:
            return
        if self._swallow_click:
            self._swallow_click = False
            return
        if self._drag is not None or self._mode is Mode.READONLY:
            return

        if marker is not None:
            self._marker_click(marker)
        elif self._mode is Mode.CREATE:
            self._create_at(event)
        elif self._mode is Mode.EDIT_POSITION:
            self._relocate_editable(event)

    def _marker_click(self, marker: Marker) -> None:
        if marker.click_readonly or marker.removed:
            return
        if self._mode is Mode.BROWSE and marker.task_id is not None:
            self.navigate(f"/tasks/{marker.task_id}")

    def create_url(self, x: float, y: float) -> str:
        params = {}
        if self.topic_id is not None:
            params["topic"] = self.topic_id
        params["x"], params["y"] = x, y
        return "/tasks/create?" + urlencode(params)

    def _create_at(self, event: PointerEvent) -> None:
        x, y = self.pointer_to_domain(event)
        marker = self.plot_provisional(x, y)
        if self.confirm(x, y):
            self.navigate(self.create_url(x, y))
        else:
            self.fade_out(marker)

    def _relocate_editable(self, event: PointerEvent) -> None:
        x, y = self.pointer_to_domain(event)
        marker = self.editable
        if marker is None:
            if self.edit_task_id is not None:
                return
            marker = self.plot_provisional(x, y)
        else:
            self._move(marker, x, y)
        self._notify_readout(marker)

    # ─── Drag ────────────────────────────────────────────

    def pointer_down(self, event: PointerEvent, marker: Optional[Marker] = None) -> bool:
        """Start dragging `marker` if it is the editable one."""
        if self.closed:
            return False
        # A stale swallow (release that produced no click) must not eat this one.
        self._swallow_click = False
        if (
            self._mode is not Mode.EDIT_POSITION
            or marker is None
            or marker.marker_id != self._editable
        ):
            return False
        self._drag = _Drag(marker.marker_id, marker.click_readonly)
        marker.click_readonly = True
        return True

    def pointer_move(self, event: PointerEvent) -> Optional[tuple[float, float]]:
        if self._drag is None:
            return None
        marker = self._markers.get(self._drag.marker_id)
        if marker is None:
            self._drag = None
            return None
        x, y = self.pointer_to_domain(event)
        self._move(marker, x, y)
        self._notify_readout(marker)
        return (x, y)

    def pointer_up(self, event: Optional[PointerEvent] = None) -> None:
        if self._drag is None:
            return
        self._end_drag()
        self._swallow_click = True

    touch_end = pointer_up

    def _end_drag(self) -> None:
        marker = self._markers.get(self._drag.marker_id)
        if marker is not None:
            marker.click_readonly = self._drag.prior_click_readonly
        self._drag = None

    def _notify_readout(self, marker: Marker) -> None:
        for listener in list(self.readout_listeners):
            listener(marker.x, marker.y)

    def commit_position(self, save: Callable[[float, float], Any]) -> Any:
        """Hand the editable marker's position to `save` (the only commit path)."""
        self._check_open()
        marker = self.editable
        if marker is None:
            raise ValueError("No editable marker on this plane")
        return save(marker.x, marker.y)

    # ─── Hover ───────────────────────────────────────────

    def hover_enter(self, marker: Marker) -> None:
        if self.closed or self._mode is not Mode.BROWSE:
            return
        for listener in list(self.hover_listeners):
            listener(marker.task_id)

    def hover_leave(self, marker: Marker) -> None:
        if self.closed or self._mode is not Mode.BROWSE:
            return
        for listener in list(self.hover_listeners):
            listener(None)

    # ─── Loading ─────────────────────────────────────────

    def apply_tasks(self, tasks: Iterable[Mapping[str, Any]]) -> list[Marker]:
        """Completion handler for a task fetch.

        Everything is read at apply-time: a closed plane ignores the
        result, the trash flag picks tombstoned or live tasks, and the
        current highlight is re-applied afterwards.
        """
        if self.closed:
            logger.debug("grid.stale_apply_ignored")
            return []
        plotted = []
        for task in tasks:
            in_trash = task.get("deletedAt") is not None
            if in_trash != self.trash_only:
                continue
            plotted.append(self.plot(task))
        self.highlight(self._highlight)
        return plotted

    def close(self) -> None:
        self.closed = True
        self._drag = None
        self._swallow_click = False
        self.readout_listeners.clear()
        self.hover_listeners.clear()

    # ─── Rendering ───────────────────────────────────────

    def view(self) -> PlaneView:
        editable = self.editable
        return PlaneView(
            size=self.transform.size,
            mode=self._mode,
            markers=tuple(
                MarkerView(
                    marker_id=m.marker_id,
                    task_id=m.task_id,
                    state=m.state,
                    description=m.description,
                    x=m.x,
                    y=m.y,
                    display_x=m.display_x,
                    display_y=m.display_y,
                    scale=m.scale,
                    opacity=m.opacity,
                    provisional=m.provisional,
                    editable=editable is not None and m.marker_id == editable.marker_id,
                )
                for m in self.markers
            ),
            highlight=self._highlight,
            readout=(editable.x, editable.y) if editable else None,
            attributes=dict(self.attributes),
        )
