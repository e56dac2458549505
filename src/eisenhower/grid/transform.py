"""Domain ⇄ display coordinate transform for the priority plane.

Learn: Two coordinate systems meet on the plane:

    domain   [-100, 100] per axis, origin at the centre, Y up
             (x = urgency, y = importance — what the API stores)
    display  [0, S] per axis, origin top-left, Y down
             (what the SVG canvas draws, S = canvas side, default 500)

    displayX = S/2 + (S/200) * domainX
    displayY = S/2 - (S/200) * domainY

Only Y flips. Domain output is rounded to 2 decimal places so a point
survives redisplay and query strings without drift. Nothing here clamps;
clamp() is a separate helper for callers that want it.
"""

from dataclasses import dataclass

DOMAIN_MIN = -100.0
DOMAIN_MAX = 100.0
DEFAULT_SIZE = 500
PRECISION = 2


@dataclass(frozen=True)
class GridTransform:
    """The one forward/inverse transform every plane and page shares."""

    size: float = DEFAULT_SIZE

    @property
    def half(self) -> float:
        return self.size / 2

    @property
    def scale(self) -> float:
        """Display units per domain unit."""
        return self.size / (DOMAIN_MAX - DOMAIN_MIN)

    def to_display(self, x: float, y: float) -> tuple[float, float]:
        return (self.half + self.scale * x, self.half - self.scale * y)

    def to_domain(self, display_x: float, display_y: float) -> tuple[float, float]:
        x = (display_x - self.half) / self.scale
        y = (self.half - display_y) / self.scale
        return (round(x, PRECISION) + 0.0, round(y, PRECISION) + 0.0)


def clamp(value: float, low: float = DOMAIN_MIN, high: float = DOMAIN_MAX) -> float:
    return max(low, min(high, value))


def clamp_point(x: float, y: float) -> tuple[float, float]:
    return (clamp(x), clamp(y))
