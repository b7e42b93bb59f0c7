"""Paint model and gradient resolution.

A configured ``Paint`` (solid color or gradient) is resolved against the
bounding box of the region it fills, producing a concrete descriptor that
encoders can render without knowing anything about QR structure.
"""

import math
from dataclasses import dataclass
from enum import Enum

from PIL import ImageColor

from qrstyle.errors import ConfigIssue
from qrstyle.geometry import Bounds

TRANSPARENT = "#00000000"


def normalize_color(color: str) -> str:
    """Return *color* as ``#RRGGBB`` (or ``#RRGGBBAA`` when not opaque).

    Accepts anything Pillow's ``ImageColor`` understands (hex, ``rgb()``,
    named colors). Raises ``ValueError`` for unknown colors.
    """
    rgba = ImageColor.getrgb(color)
    if len(rgba) == 4 and rgba[3] != 255:
        return "#{:02X}{:02X}{:02X}{:02X}".format(*rgba)
    return "#{:02X}{:02X}{:02X}".format(*rgba[:3])


def color_to_rgba(color: str) -> tuple[int, int, int, int]:
    rgba = ImageColor.getrgb(color)
    if len(rgba) == 3:
        return (*rgba, 255)
    return tuple(rgba)


# ---------------------------------------------------------------------------
# Configured paint
# ---------------------------------------------------------------------------

class GradientKind(Enum):
    LINEAR = "linear"
    RADIAL = "radial"


@dataclass(frozen=True)
class ColorStop:
    offset: float
    color: str


@dataclass(frozen=True)
class SolidColor:
    color: str


@dataclass(frozen=True)
class Gradient:
    """Linear or radial gradient.

    ``rotation`` (radians) is the angle of a linear gradient from the
    horizontal; radial gradients ignore it.
    """
    kind: GradientKind
    stops: tuple[ColorStop, ...]
    rotation: float = 0.0

    @classmethod
    def linear(cls, *colors: str, rotation: float = 0.0) -> "Gradient":
        """Evenly spaced linear gradient through *colors*."""
        return cls(GradientKind.LINEAR, _even_stops(colors), rotation)

    @classmethod
    def radial(cls, *colors: str) -> "Gradient":
        return cls(GradientKind.RADIAL, _even_stops(colors))


Paint = SolidColor | Gradient


def _even_stops(colors) -> tuple[ColorStop, ...]:
    if len(colors) < 2:
        return tuple(ColorStop(0.0, c) for c in colors)
    last = len(colors) - 1
    return tuple(ColorStop(i / last, c) for i, c in enumerate(colors))


# ---------------------------------------------------------------------------
# Resolved paint
# ---------------------------------------------------------------------------

Stops = tuple[tuple[float, str], ...]


@dataclass(frozen=True)
class ResolvedSolid:
    color: str


@dataclass(frozen=True)
class ResolvedLinear:
    x1: float
    y1: float
    x2: float
    y2: float
    stops: Stops


@dataclass(frozen=True)
class ResolvedRadial:
    cx: float
    cy: float
    r: float
    stops: Stops


ResolvedPaint = ResolvedSolid | ResolvedLinear | ResolvedRadial


def _linear_endpoints(rotation: float, box: Bounds) -> tuple[float, float, float, float]:
    """Gradient line through the box center at *rotation* from the horizontal.

    The line is stretched so it reaches the box edge it meets first, which
    keeps the first/last stop colors at the box boundary for any angle.
    """
    x, y, x_end, y_end = box
    w, h = x_end - x, y_end - y
    cx, cy = x + w / 2, y + h / 2
    rot = rotation % (2 * math.pi)
    pi = math.pi

    if rot <= 0.25 * pi or rot > 1.75 * pi:
        dx, dy = w / 2, (h / 2) * math.tan(rot)
    elif rot <= 0.75 * pi:
        dx, dy = (w / 2) / math.tan(rot), h / 2
    elif rot <= 1.25 * pi:
        dx, dy = -w / 2, -(h / 2) * math.tan(rot)
    else:
        dx, dy = -(w / 2) / math.tan(rot), -h / 2

    return (
        round(cx - dx, 4),
        round(cy - dy, 4),
        round(cx + dx, 4),
        round(cy + dy, 4),
    )


def resolve_paint(paint: Paint | None, box: Bounds, extra_rotation: float = 0.0) -> ResolvedPaint:
    """Resolve *paint* for a region occupying *box*.

    Args:
        paint: Configured paint; None means fully transparent.
        box: (x0, y0, x1, y1) of the region the paint is applied to.
        extra_rotation: Added to a linear gradient's rotation (finder corners
            pass their own orientation so gradients mirror across corners).
    """
    if paint is None:
        return ResolvedSolid(TRANSPARENT)
    if isinstance(paint, SolidColor):
        return ResolvedSolid(normalize_color(paint.color))

    stops = tuple((float(s.offset), normalize_color(s.color)) for s in paint.stops)
    if paint.kind is GradientKind.RADIAL:
        x, y, x_end, y_end = box
        w, h = x_end - x, y_end - y
        return ResolvedRadial(x + w / 2, y + h / 2, max(w, h) / 2, stops)

    x1, y1, x2, y2 = _linear_endpoints(paint.rotation + extra_rotation, box)
    return ResolvedLinear(x1, y1, x2, y2, stops)


def validate_paint(paint: Paint | None, field: str) -> list:
    """Collect configuration issues for *paint* under *field*."""
    issues = []
    if paint is None:
        return issues
    if isinstance(paint, SolidColor):
        if not is_valid_color(paint.color):
            issues.append(ConfigIssue(f"{field}.color", f"unknown color {paint.color!r}"))
        return issues
    if not isinstance(paint, Gradient):
        issues.append(ConfigIssue(field, f"expected SolidColor or Gradient, got {type(paint).__name__}"))
        return issues

    if len(paint.stops) < 2:
        issues.append(ConfigIssue(f"{field}.stops", "a gradient needs at least 2 color stops"))
    previous = None
    for i, stop in enumerate(paint.stops):
        if not 0.0 <= stop.offset <= 1.0:
            issues.append(ConfigIssue(f"{field}.stops[{i}].offset", f"{stop.offset} is outside [0, 1]"))
        if previous is not None and stop.offset <= previous:
            issues.append(ConfigIssue(
                f"{field}.stops[{i}].offset",
                f"offsets must be strictly ascending ({stop.offset} after {previous})",
            ))
        previous = stop.offset
        if not is_valid_color(stop.color):
            issues.append(ConfigIssue(f"{field}.stops[{i}].color", f"unknown color {stop.color!r}"))
    if not math.isfinite(paint.rotation):
        issues.append(ConfigIssue(f"{field}.rotation", "rotation must be finite"))
    return issues


def is_valid_color(color) -> bool:
    if not isinstance(color, str):
        return False
    try:
        ImageColor.getrgb(color)
    except ValueError:
        return False
    return True
