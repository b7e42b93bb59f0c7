"""Styling configuration: plain dataclasses with documented defaults.

There is no builder. Construct the dataclasses directly (or from JSON-like
data with ``StylingOptions.from_dict``) and call ``validate()``, which checks
every field in one pass and raises a single ``ConfigError`` listing all
problems.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from qrstyle.corners import CornerDotType, CornerSquareType
from qrstyle.dots import DotType
from qrstyle.errors import ConfigError, ConfigIssue
from qrstyle.paint import ColorStop, Gradient, GradientKind, Paint, SolidColor, validate_paint
from qrstyle.shape import ShapeType

MIN_CANVAS = 21


def _black() -> SolidColor:
    return SolidColor("#000000")


@dataclass(frozen=True)
class DotsOptions:
    """Data modules. Defaults: square dots, black, whole-pixel module size."""
    type: DotType = DotType.SQUARE
    paint: Paint = field(default_factory=_black)
    round_size: bool = True


@dataclass(frozen=True)
class CornersSquareOptions:
    """Outer 7x7 finder frames. Defaults: square frame, black."""
    type: CornerSquareType = CornerSquareType.SQUARE
    paint: Paint = field(default_factory=_black)


@dataclass(frozen=True)
class CornersDotOptions:
    """Inner 3x3 finder dots. Defaults: round dot, black."""
    type: CornerDotType = CornerDotType.DOT
    paint: Paint = field(default_factory=_black)


@dataclass(frozen=True)
class BackgroundOptions:
    """Canvas background. ``paint=None`` is transparent; ``round`` (0..1)
    rounds the corners of a square background."""
    paint: Paint | None = field(default_factory=lambda: SolidColor("#FFFFFF"))
    round: float = 0.0


@dataclass(frozen=True)
class ImageOptions:
    """Logo reservation.

    Attributes:
        size_ratio: Logo side as a fraction of the matrix side, in (0, 1].
        margin_modules: Extra clearance around the logo, in modules.
        hide_background_dots: Drop data dots under the logo footprint.
    """
    size_ratio: float = 0.4
    margin_modules: float = 0
    hide_background_dots: bool = True


@dataclass(frozen=True)
class StylingOptions:
    """Everything the scene builder needs besides the module matrix.

    Attributes:
        size: Side of the square extent (matrix + quiet zone), in pixels.
        margin: Quiet zone, in modules.
        shape: Canvas/background shape; never affects module geometry.
        image: Logo bytes, or None for no logo placeholder.
        canvas_diameter: Circle diameter in modules (CIRCLE only);
            defaults to the square's diagonal.
        data: Payload, opaque to styling (kept for callers' bookkeeping).
    """
    size: int = 300
    margin: int = 0
    shape: ShapeType = ShapeType.SQUARE
    image: bytes | None = None
    image_options: ImageOptions = field(default_factory=ImageOptions)
    dots: DotsOptions = field(default_factory=DotsOptions)
    corners_square: CornersSquareOptions = field(default_factory=CornersSquareOptions)
    corners_dot: CornersDotOptions = field(default_factory=CornersDotOptions)
    background: BackgroundOptions = field(default_factory=BackgroundOptions)
    canvas_diameter: float | None = None
    data: str = ""

    def validate(self) -> "StylingOptions":
        """Check every field; raise one ConfigError listing all issues."""
        issues = self.issues()
        if issues:
            raise ConfigError(issues)
        return self

    def issues(self) -> list[ConfigIssue]:
        issues: list[ConfigIssue] = []

        if not _is_number(self.size) or self.size < MIN_CANVAS:
            issues.append(ConfigIssue("size", f"must be a number >= {MIN_CANVAS}, got {self.size!r}"))
        if not isinstance(self.margin, int) or isinstance(self.margin, bool) or self.margin < 0:
            issues.append(ConfigIssue("margin", f"must be a non-negative integer, got {self.margin!r}"))
        if not isinstance(self.shape, ShapeType):
            issues.append(ConfigIssue("shape", f"unknown shape {self.shape!r}"))
        if self.canvas_diameter is not None and (
                not _is_number(self.canvas_diameter) or self.canvas_diameter <= 0):
            issues.append(ConfigIssue("canvas_diameter", f"must be positive, got {self.canvas_diameter!r}"))
        if self.image is not None and not isinstance(self.image, (bytes, bytearray)):
            issues.append(ConfigIssue("image", "must be raw image bytes"))

        img = self.image_options
        if not _is_number(img.size_ratio) or not 0 < img.size_ratio <= 1:
            issues.append(ConfigIssue("image_options.size_ratio", f"must be in (0, 1], got {img.size_ratio!r}"))
        if not _is_number(img.margin_modules) or img.margin_modules < 0:
            issues.append(ConfigIssue("image_options.margin_modules",
                                      f"must be non-negative, got {img.margin_modules!r}"))

        for name, value, enum in (
            ("dots.type", self.dots.type, DotType),
            ("corners_square.type", self.corners_square.type, CornerSquareType),
            ("corners_dot.type", self.corners_dot.type, CornerDotType),
        ):
            if not isinstance(value, enum):
                issues.append(ConfigIssue(name, f"unknown style {value!r}"))

        for name, paint in (
            ("dots.paint", self.dots.paint),
            ("corners_square.paint", self.corners_square.paint),
            ("corners_dot.paint", self.corners_dot.paint),
            ("background.paint", self.background.paint),
        ):
            if paint is None and name != "background.paint":
                issues.append(ConfigIssue(name, "a paint is required"))
                continue
            issues.extend(validate_paint(paint, name))

        if not _is_number(self.background.round) or not 0 <= self.background.round <= 1:
            issues.append(ConfigIssue("background.round", f"must be in [0, 1], got {self.background.round!r}"))
        return issues

    @classmethod
    def from_dict(cls, raw: dict[str, Any], image: bytes | None = None) -> "StylingOptions":
        """Build options from JSON-like data, e.g.::

            {"size": 400, "shape": "circle",
             "dots": {"type": "extra-rounded",
                      "gradient": {"type": "linear", "rotation": 0.5,
                                   "stops": [[0, "#ff0080"], [1, "#7928ca"]]}},
             "image_options": {"size_ratio": 0.3}}

        Parse problems (including sections that are not mappings) are
        collected together with ``validate()`` issues.
        """
        parser = _Parser()
        if not parser.section(raw, "options"):
            raise ConfigError(parser.issues)
        kwargs: dict[str, Any] = {}
        for key, value in raw.items():
            if key in ("size", "margin", "canvas_diameter", "data"):
                kwargs[key] = value
            elif key == "shape":
                kwargs[key] = parser.enum(ShapeType, value, key)
            elif key not in _SECTIONS:
                parser.issues.append(ConfigIssue(key, "unknown option"))
            elif parser.section(value, key):
                kwargs[key] = _SECTIONS[key](parser, value)

        options = cls(image=image, **kwargs)
        issues = parser.issues + options.issues()
        if issues:
            raise ConfigError(issues)
        return options


def _dots_section(parser: "_Parser", value: dict) -> DotsOptions:
    return DotsOptions(
        type=parser.enum(DotType, value.get("type", "square"), "dots.type"),
        paint=parser.paint(value, "dots", default=_black()),
        round_size=bool(value.get("round_size", True)),
    )


def _corners_square_section(parser: "_Parser", value: dict) -> CornersSquareOptions:
    return CornersSquareOptions(
        type=parser.enum(CornerSquareType, value.get("type", "square"), "corners_square.type"),
        paint=parser.paint(value, "corners_square", default=_black()),
    )


def _corners_dot_section(parser: "_Parser", value: dict) -> CornersDotOptions:
    return CornersDotOptions(
        type=parser.enum(CornerDotType, value.get("type", "dot"), "corners_dot.type"),
        paint=parser.paint(value, "corners_dot", default=_black()),
    )


def _background_section(parser: "_Parser", value: dict) -> BackgroundOptions:
    # An explicit null color means no background at all
    transparent = "color" in value and value["color"] is None
    return BackgroundOptions(
        paint=None if transparent else parser.paint(value, "background", default=SolidColor("#FFFFFF")),
        round=value.get("round", 0.0),
    )


def _image_options_section(parser: "_Parser", value: dict) -> ImageOptions:
    return ImageOptions(
        size_ratio=value.get("size_ratio", 0.4),
        margin_modules=value.get("margin_modules", 0),
        hide_background_dots=bool(value.get("hide_background_dots", True)),
    )


_SECTIONS = {
    "dots": _dots_section,
    "corners_square": _corners_square_section,
    "corners_dot": _corners_dot_section,
    "background": _background_section,
    "image_options": _image_options_section,
}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class _Parser:
    """Collects issues while turning plain values into option types."""

    def __init__(self):
        self.issues: list[ConfigIssue] = []

    def section(self, value, name: str) -> bool:
        if isinstance(value, dict):
            return True
        self.issues.append(ConfigIssue(name, f"expected a mapping, got {type(value).__name__}"))
        return False

    def enum(self, enum_cls: type[Enum], value, name: str):
        if isinstance(value, enum_cls):
            return value
        text = str(value).strip().lower().replace("_", "-")
        for member in enum_cls:
            if member.value == text:
                return member
        self.issues.append(ConfigIssue(
            name, f"unknown value {value!r} (expected one of: {', '.join(m.value for m in enum_cls)})"))
        return next(iter(enum_cls))

    def paint(self, raw: dict, name: str, default: Paint) -> Paint:
        grad = raw.get("gradient")
        if grad is None:
            return SolidColor(raw["color"]) if "color" in raw else default
        if not self.section(grad, f"{name}.gradient"):
            return default
        kind = self.enum(GradientKind, grad.get("type", "linear"), f"{name}.gradient.type")

        raw_stops = grad.get("stops", [])
        if not isinstance(raw_stops, (list, tuple)):
            self.issues.append(ConfigIssue(f"{name}.gradient.stops", "expected a list of [offset, color] pairs"))
            raw_stops = []
        stops = []
        for i, stop in enumerate(raw_stops):
            try:
                offset, color = stop
                stops.append(ColorStop(float(offset), color))
            except (TypeError, ValueError):
                self.issues.append(ConfigIssue(f"{name}.gradient.stops[{i}]",
                                               "expected an [offset, color] pair"))

        rotation = grad.get("rotation", 0.0)
        try:
            rotation = float(rotation)
        except (TypeError, ValueError):
            self.issues.append(ConfigIssue(f"{name}.gradient.rotation", f"expected a number, got {rotation!r}"))
            rotation = 0.0
        return Gradient(kind, tuple(stops), rotation)
