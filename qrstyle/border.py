"""Border ring and text labels composited around a finished render.

Works on an ``Artifact`` (not on the scene): the artifact's canvas grows by
``thickness`` on every side, a ring is stroked around the original content,
and each configured label is anchored on the ring. Optional inner and outer
rings are stroked on top of the main one, and a label may be an image
instead of text. Layout is computed here and format-independent; the
encoder registered for the artifact's format does the actual compositing.

Label style strings (``"font-size: 14px; fill: #333"``) are opaque at this
level and handed to the backend verbatim.
"""

import math
from dataclasses import dataclass, field
from enum import Enum

from qrstyle.encoders import Artifact, get_encoder
from qrstyle.errors import ConfigError, ConfigIssue
from qrstyle.geometry import Rect
from qrstyle.logging import audit, get_logger, trace
from qrstyle.paint import is_valid_color

log = get_logger("border")

DEFAULT_LABEL_STYLE = "font-size: 14px; font-family: Arial, sans-serif;"

# Text-on-path kicks in once the ring is closer to a circle than a square
ARC_ROUNDNESS = 0.5


class Position(Enum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Label:
    """Text, or an image when ``image`` is set (raw bytes, a data URI or a URL)."""
    text: str
    style: str | None = None
    image: bytes | str | None = None

    @classmethod
    def from_image(cls, src: bytes | str, style: str | None = None) -> "Label":
        return cls("", style, src)


@dataclass(frozen=True)
class RingOptions:
    """An extra ring drawn inside or outside the main one."""
    thickness: float = 5.0
    color: str = "#000000"
    dasharray: str | None = None


@dataclass(frozen=True)
class BorderOptions:
    """Border ring configuration.

    Attributes:
        thickness: Ring width in pixels; 0 leaves the artifact untouched.
        color: Ring stroke color.
        roundness: 0 = rectangular ring, 1 = fully circular. Shared by the
            extra rings.
        labels: Position -> Label.
        dasharray: SVG stroke-dasharray (e.g. "5,5"); vector output only.
        inner: Extra ring hugging the content edge of the main ring.
        outer: Extra ring along the outside edge of the canvas.
    """
    thickness: float = 10.0
    color: str = "#000000"
    roundness: float = 0.0
    labels: dict = field(default_factory=dict)
    dasharray: str | None = None
    inner: RingOptions | None = None
    outer: RingOptions | None = None

    def validate(self) -> "BorderOptions":
        issues = []
        if not _is_finite(self.thickness) or self.thickness < 0:
            issues.append(ConfigIssue("border.thickness", f"must be >= 0, got {self.thickness!r}"))
        if not _is_finite(self.roundness) or not 0 <= self.roundness <= 1:
            issues.append(ConfigIssue("border.roundness", f"must be in [0, 1], got {self.roundness!r}"))
        if not is_valid_color(self.color):
            issues.append(ConfigIssue("border.color", f"unknown color {self.color!r}"))
        for name, ring in (("inner", self.inner), ("outer", self.outer)):
            if ring is None:
                continue
            if not isinstance(ring, RingOptions):
                issues.append(ConfigIssue(f"border.{name}", "expected RingOptions(thickness, color)"))
                continue
            issues.extend(_ring_issues(f"border.{name}", ring.thickness, ring.color))
        for key, label in self.labels.items():
            if not isinstance(key, Position):
                issues.append(ConfigIssue("border.labels", f"unknown position {key!r}"))
            if not isinstance(label, Label):
                issues.append(ConfigIssue(f"border.labels.{getattr(key, 'value', key)}",
                                          "expected a Label(text, style)"))
            elif label.image is not None and (
                    not isinstance(label.image, (bytes, bytearray, str)) or not label.image):
                issues.append(ConfigIssue(f"border.labels.{getattr(key, 'value', key)}.image",
                                          "expected image bytes, a data URI or a URL"))
        if issues:
            raise ConfigError(issues)
        return self


def _is_finite(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _ring_issues(prefix: str, thickness, color) -> list[ConfigIssue]:
    issues = []
    if not _is_finite(thickness) or thickness < 0:
        issues.append(ConfigIssue(f"{prefix}.thickness", f"must be >= 0, got {thickness!r}"))
    if not is_valid_color(color):
        issues.append(ConfigIssue(f"{prefix}.color", f"unknown color {color!r}"))
    return issues


@dataclass(frozen=True)
class LabelPlacement:
    """Where one label goes on the enlarged canvas.

    ``(x, y)`` is the label's center, ``rotation`` is in degrees (clockwise,
    as in SVG). ``arc`` is path data for text-on-path rendering on round
    rings; backends that cannot follow a path use the straight placement.
    Image labels are fitted, unrotated, into a ``size`` square.
    """
    position: Position
    text: str
    style: str
    x: float
    y: float
    rotation: float
    arc: str | None = None
    arc_id: str | None = None
    image: bytes | str | None = None
    size: float = 0.0


@dataclass(frozen=True)
class RingLayout:
    """One stroke-centered ring."""
    rect: Rect
    thickness: float
    color: str
    dasharray: str | None = None

    @property
    def corner_radius(self) -> float:
        return self.rect.radii[0]


@dataclass(frozen=True)
class BorderLayout:
    """Format-agnostic description of the bordered canvas."""
    width: float
    height: float
    offset: tuple[float, float]
    ring: Rect
    thickness: float
    color: str
    dasharray: str | None
    labels: tuple[LabelPlacement, ...]
    inner: RingLayout | None = None
    outer: RingLayout | None = None

    @property
    def corner_radius(self) -> float:
        return self.ring.radii[0]

    @property
    def rings(self) -> tuple[RingLayout, ...]:
        """Rings in paint order: main, inner, outer."""
        main = RingLayout(self.ring, self.thickness, self.color, self.dasharray)
        return tuple(r for r in (main, self.inner, self.outer) if r is not None)


def _fmt(v: float) -> str:
    v = round(v, 4)
    return str(int(v)) if v == int(v) else repr(v)


def _label_arc(position: Position, cx: float, cy: float, r: float) -> str:
    # Top/Bottom run left to right, Left/Right top to bottom
    f = _fmt
    if position is Position.TOP:
        return f"M {f(cx - r)},{f(cy)} A {f(r)},{f(r)} 0 0 1 {f(cx + r)},{f(cy)}"
    if position is Position.BOTTOM:
        return f"M {f(cx - r)},{f(cy)} A {f(r)},{f(r)} 0 0 0 {f(cx + r)},{f(cy)}"
    if position is Position.LEFT:
        return f"M {f(cx)},{f(cy - r)} A {f(r)},{f(r)} 0 0 0 {f(cx)},{f(cy + r)}"
    return f"M {f(cx)},{f(cy - r)} A {f(r)},{f(r)} 0 0 1 {f(cx)},{f(cy + r)}"


def _ring_rect(width: float, height: float, thickness: float, roundness: float) -> Rect:
    """Stroke-centered square ring of the given thickness, flush with the canvas edge."""
    side = min(width, height)
    rx = max(0.0, (side / 2) * roundness - thickness / 2)
    return Rect((width - side + thickness) / 2, (height - side + thickness) / 2,
                side - thickness, side - thickness, (rx, rx, rx, rx))


def _inner_ring_rect(width: float, height: float, ring: RingOptions, main_thickness: float,
                     roundness: float) -> Rect:
    # Pulled in so its stroke ends where the main ring's stroke ends
    base = _ring_rect(width, height, ring.thickness, roundness)
    shift = ring.thickness - main_thickness
    rx = max(0.0, base.radii[0] + shift)
    return Rect(base.x - shift, base.y - shift, base.width + 2 * shift, base.height + 2 * shift,
                (rx, rx, rx, rx))


def border_layout(width: float, height: float, options: BorderOptions) -> BorderLayout:
    """Lay out the rings and labels for a ``width`` x ``height`` artifact.

    The canvas grows to (W + 2t, H + 2t) with the original content at
    (t, t). The main ring is stroke-centered: its stroke fills the band
    between the canvas edge and the content. An outer ring sits flush with
    the canvas edge; an inner ring ends where the main band meets the
    content.
    """
    t = float(options.thickness)
    w, h = width + 2 * t, height + 2 * t
    side = min(w, h)
    ring = _ring_rect(w, h, t, options.roundness)

    inner = outer = None
    if options.inner is not None:
        inner = RingLayout(_inner_ring_rect(w, h, options.inner, t, options.roundness),
                           float(options.inner.thickness), options.inner.color, options.inner.dasharray)
    if options.outer is not None:
        outer = RingLayout(_ring_rect(w, h, options.outer.thickness, options.roundness),
                           float(options.outer.thickness), options.outer.color, options.outer.dasharray)

    cx, cy = w / 2, h / 2
    radius = (side - t) / 2
    anchors = {
        Position.TOP: (cx, cy - radius, 0.0),
        Position.BOTTOM: (cx, cy + radius, 0.0),
        Position.LEFT: (cx - radius, cy, -90.0),
        Position.RIGHT: (cx + radius, cy, 90.0),
    }

    placements = []
    # Fixed order keeps output deterministic whatever the dict order
    for position in Position:
        label = options.labels.get(position)
        if label is None:
            continue
        x, y, rotation = anchors[position]
        if label.image is not None:
            placements.append(LabelPlacement(
                position=position, text=label.text, style=label.style or "",
                x=x, y=y, rotation=0.0, image=label.image, size=t,
            ))
            continue
        arc = arc_id = None
        if options.roundness >= ARC_ROUNDNESS:
            arc = _label_arc(position, cx, cy, radius)
            arc_id = f"{position.value}-text-path"
        placements.append(LabelPlacement(
            position=position,
            text=label.text,
            style=label.style or DEFAULT_LABEL_STYLE,
            x=x, y=y, rotation=rotation,
            arc=arc, arc_id=arc_id,
        ))

    return BorderLayout(
        width=w, height=h,
        offset=(t, t),
        ring=ring,
        thickness=t,
        color=options.color,
        dasharray=options.dasharray,
        labels=tuple(placements),
        inner=inner,
        outer=outer,
    )


@trace
def apply_border(artifact: Artifact, options: BorderOptions) -> Artifact:
    """Return a new artifact with the border rings and labels drawn around it.

    Raises:
        ConfigError: negative thickness, roundness outside [0, 1], bad color.
        UnsupportedFormatError: no encoder is registered for the artifact.
    """
    options.validate()
    if options.thickness == 0:
        log.debug("Zero-thickness border, artifact returned unchanged")
        return artifact

    layout = border_layout(artifact.width, artifact.height, options)
    result = get_encoder(artifact.format).compose_border(artifact, layout)

    audit("border.applied", logger=log,
          format=artifact.format,
          size=f"{artifact.width}x{artifact.height}",
          bordered=f"{result.width}x{result.height}",
          thickness=options.thickness, roundness=options.roundness,
          rings=len(layout.rings),
          labels=[p.position.value for p in layout.labels])
    return result
