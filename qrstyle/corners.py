"""Finder-pattern geometry: the three 7x7 corner squares and their 3x3 dots.

Finder regions are styled independently of the data grid; no neighbor
merging applies. Each corner carries its orientation so that paint (a
rotated linear gradient, typically) mirrors from one corner to the next.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from qrstyle.geometry import Bounds, Circle, Frame, GroupRole, Rect, ShapeGroup
from qrstyle.logging import audit, get_logger, trace
from qrstyle.matrix import FINDER_SIZE, ModuleMatrix, finder_origins

log = get_logger("corners")

DOT_SIZE = 3
DOT_OFFSET = 2

# Orientation per finder: top-left, top-right, bottom-left
CORNER_ROTATIONS = (0.0, math.pi / 2, -math.pi / 2)
CORNER_NAMES = ("top-left", "top-right", "bottom-left")


class CornerSquareType(Enum):
    SQUARE = "square"
    DOT = "dot"
    EXTRA_ROUNDED = "extra-rounded"

    def primitive(self, x: float, y: float, size: float) -> Frame:
        """Hollow 7x7 frame at (x, y); the wall is one module (size / 7)."""
        m = size / FINDER_SIZE
        if self is CornerSquareType.DOT:
            half = size / 2
            return Frame(Circle(x + half, y + half, half), Circle(x + half, y + half, half - m))
        inner_side = size - 2 * m
        if self is CornerSquareType.EXTRA_ROUNDED:
            outer_r, inner_r = 2.5 * m, 1.5 * m
        else:
            outer_r = inner_r = 0.0
        return Frame(
            Rect(x, y, size, size, (outer_r,) * 4),
            Rect(x + m, y + m, inner_side, inner_side, (inner_r,) * 4),
        )


class CornerDotType(Enum):
    DOT = "dot"
    SQUARE = "square"

    def primitive(self, x: float, y: float, size: float) -> Circle | Rect:
        if self is CornerDotType.DOT:
            half = size / 2
            return Circle(x + half, y + half, half)
        return Rect(x, y, size, size)


@dataclass(frozen=True)
class CornerShape:
    """One finder corner resolved to geometry."""
    name: str
    rotation: float
    square: Frame
    square_box: Bounds
    dot: Circle | Rect
    dot_box: Bounds


@trace
def build_corner_geometry(
    matrix: ModuleMatrix,
    square_type: CornerSquareType,
    dot_type: CornerDotType,
    module_size: float,
    origin: tuple[float, float],
) -> list[CornerShape]:
    """Geometry for the three finder patterns, ordered TL, TR, BL."""
    ox, oy = origin
    square_side = FINDER_SIZE * module_size
    dot_side = DOT_SIZE * module_size

    corners = []
    for name, rotation, (row, col) in zip(CORNER_NAMES, CORNER_ROTATIONS, finder_origins(matrix.size)):
        x = ox + col * module_size
        y = oy + row * module_size
        dx = x + DOT_OFFSET * module_size
        dy = y + DOT_OFFSET * module_size
        corners.append(CornerShape(
            name=name,
            rotation=rotation,
            square=square_type.primitive(x, y, square_side),
            square_box=(x, y, x + square_side, y + square_side),
            dot=dot_type.primitive(dx, dy, dot_side),
            dot_box=(dx, dy, dx + dot_side, dy + dot_side),
        ))

    audit("corners.built", logger=log, square=square_type.value, dot=dot_type.value,
          module_size=round(module_size, 3))
    return corners


def build_corner_groups(
    matrix: ModuleMatrix,
    square_type: CornerSquareType,
    dot_type: CornerDotType,
    module_size: float,
    origin: tuple[float, float],
    square_paint_for: Callable[[CornerShape], object],
    dot_paint_for: Callable[[CornerShape], object],
) -> list[ShapeGroup]:
    """Six groups: the three corner squares, then the three corner dots.

    The paint callbacks receive each ``CornerShape`` so they can resolve a
    gradient against that corner's box and rotation.
    """
    corners = build_corner_geometry(matrix, square_type, dot_type, module_size, origin)
    squares = [ShapeGroup(GroupRole.CORNER_SQUARE, (c.square,), square_paint_for(c)) for c in corners]
    dots = [ShapeGroup(GroupRole.CORNER_DOT, (c.dot,), dot_paint_for(c)) for c in corners]
    return squares + dots
