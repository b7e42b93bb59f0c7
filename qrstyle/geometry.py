"""Format-agnostic geometry primitives used in scenes.

Coordinates are canvas pixels (floats), y pointing down. Every primitive can
describe itself as SVG path data (for vector encoders) and as sampled
polygon outlines (for raster encoders).
"""

import math
from dataclasses import dataclass
from enum import Enum

# Corner order used everywhere: top-left, top-right, bottom-right, bottom-left
Radii = tuple[float, float, float, float]
NO_RADII: Radii = (0.0, 0.0, 0.0, 0.0)

Bounds = tuple[float, float, float, float]


def _fmt(v: float) -> str:
    """Compact, deterministic number formatting for path data."""
    r = round(v, 4)
    if r == int(r):
        return str(int(r))
    return repr(r)


def _arc_points(cx: float, cy: float, r: float, start: float, end: float, n: int) -> list[tuple[float, float]]:
    """Generate *n+1* points along a circular arc (angles in radians)."""
    pts = []
    for i in range(n + 1):
        t = start + (end - start) * i / n
        pts.append((cx + r * math.cos(t), cy + r * math.sin(t)))
    return pts


def _segments(r: float) -> int:
    # Roughly one point per 2px of arc length, at least 4 per quarter
    return max(4, int(math.ceil(r * math.pi / 4)))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle with individually rounded corners."""
    x: float
    y: float
    width: float
    height: float
    radii: Radii = NO_RADII

    @property
    def is_plain(self) -> bool:
        return not any(self.radii)

    def bounds(self) -> Bounds:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def path_data(self) -> str:
        x, y, w, h = self.x, self.y, self.width, self.height
        tl, tr, br, bl = self.radii
        f = _fmt
        d = [f"M {f(x + tl)} {f(y)}", f"H {f(x + w - tr)}"]
        if tr:
            d.append(f"A {f(tr)} {f(tr)} 0 0 1 {f(x + w)} {f(y + tr)}")
        d.append(f"V {f(y + h - br)}")
        if br:
            d.append(f"A {f(br)} {f(br)} 0 0 1 {f(x + w - br)} {f(y + h)}")
        d.append(f"H {f(x + bl)}")
        if bl:
            d.append(f"A {f(bl)} {f(bl)} 0 0 1 {f(x)} {f(y + h - bl)}")
        d.append(f"V {f(y + tl)}")
        if tl:
            d.append(f"A {f(tl)} {f(tl)} 0 0 1 {f(x + tl)} {f(y)}")
        d.append("Z")
        return " ".join(d)

    def outline(self) -> list[tuple[float, float]]:
        """Clockwise polygon approximation of the outline."""
        x, y, w, h = self.x, self.y, self.width, self.height
        tl, tr, br, bl = self.radii
        pi = math.pi
        pts: list[tuple[float, float]] = []
        corners = [
            (tl, x + tl, y + tl, pi, 1.5 * pi, (x, y)),
            (tr, x + w - tr, y + tr, 1.5 * pi, 2 * pi, (x + w, y)),
            (br, x + w - br, y + h - br, 0.0, 0.5 * pi, (x + w, y + h)),
            (bl, x + bl, y + h - bl, 0.5 * pi, pi, (x, y + h)),
        ]
        for r, cx, cy, start, end, sharp in corners:
            if r:
                pts.extend(_arc_points(cx, cy, r, start, end, _segments(r)))
            else:
                pts.append(sharp)
        return pts


@dataclass(frozen=True)
class Circle:
    cx: float
    cy: float
    r: float

    def bounds(self) -> Bounds:
        return (self.cx - self.r, self.cy - self.r, self.cx + self.r, self.cy + self.r)

    def path_data(self) -> str:
        f = _fmt
        left, right = f(self.cx - self.r), f(self.cx + self.r)
        r, cy = f(self.r), f(self.cy)
        return f"M {left} {cy} A {r} {r} 0 1 0 {right} {cy} A {r} {r} 0 1 0 {left} {cy} Z"

    def outline(self) -> list[tuple[float, float]]:
        pts = _arc_points(self.cx, self.cy, self.r, 0.0, 2 * math.pi, 4 * _segments(self.r))
        return pts[:-1]


@dataclass(frozen=True)
class Frame:
    """Hollow shape: ``outer`` minus ``inner`` (even-odd fill)."""
    outer: Rect | Circle
    inner: Rect | Circle

    def bounds(self) -> Bounds:
        return self.outer.bounds()

    def path_data(self) -> str:
        return f"{self.outer.path_data()} {self.inner.path_data()}"


Primitive = Rect | Circle | Frame


def union_bounds(boxes) -> Bounds | None:
    """Smallest box containing all *boxes*, or None for an empty input."""
    boxes = list(boxes)
    if not boxes:
        return None
    return (
        min(b[0] for b in boxes),
        min(b[1] for b in boxes),
        max(b[2] for b in boxes),
        max(b[3] for b in boxes),
    )


# ---------------------------------------------------------------------------
# Scene groups
# ---------------------------------------------------------------------------

class GroupRole(Enum):
    BACKGROUND = "background"
    DOT = "dot"
    CORNER_SQUARE = "corner-square"
    CORNER_DOT = "corner-dot"
    LOGO = "logo"


@dataclass(frozen=True)
class ShapeGroup:
    """Primitives painted together with one resolved paint.

    ``paint`` is None only for the logo placeholder, whose pixels come from
    the logo bitmap rather than a fill.
    """
    role: GroupRole
    geometry: tuple[Primitive, ...]
    paint: object = None

    def bounds(self) -> Bounds | None:
        return union_bounds(p.bounds() for p in self.geometry)
