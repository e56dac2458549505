"""Priority-grid interaction engine.

Learn: Headless and per-instance. GridTransform maps domain ⇄ display
coordinates, Plane holds one grid's markers and interaction state,
PlaneConfig reads a grid element's data-* attributes, and PlaneLoader
fetches tasks into a plane without blocking.
"""

from eisenhower.grid.bootstrap import PlaneConfig
from eisenhower.grid.loader import PlaneLoader
from eisenhower.grid.plane import Marker, Mode, Plane, PlaneView, PointerEvent, Viewport
from eisenhower.grid.transform import GridTransform, clamp, clamp_point

__all__ = [
    "GridTransform",
    "Marker",
    "Mode",
    "Plane",
    "PlaneConfig",
    "PlaneLoader",
    "PlaneView",
    "PointerEvent",
    "Viewport",
    "clamp",
    "clamp_point",
]
