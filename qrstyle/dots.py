"""Data-module geometry: one primitive per dark data module.

Every dot style is a ``DotType`` member carrying its own corner policy: given
the module's neighbor mask it decides which corners of the cell are rounded
and by how much. Merging between neighbors falls out of those radii: two
touching modules whose shared corners stay square read as one continuous
shape.
"""

from enum import Enum
from typing import NamedTuple

import numpy as np

from qrstyle.geometry import Circle, GroupRole, Rect, ShapeGroup
from qrstyle.logging import audit, get_logger, trace
from qrstyle.matrix import ModuleMatrix, ModuleRole

log = get_logger("dots")

# Roles a dot can visually connect to
_SOLID_ROLES = (ModuleRole.DATA, ModuleRole.FINDER_OUTER, ModuleRole.FINDER_INNER)


class Neighbors(NamedTuple):
    """Which of the eight surrounding modules are dark and solid."""
    left: bool = False
    right: bool = False
    top: bool = False
    bottom: bool = False
    top_left: bool = False
    top_right: bool = False
    bottom_left: bool = False
    bottom_right: bool = False

    @property
    def orthogonal(self) -> int:
        return self.left + self.right + self.top + self.bottom


# ---------------------------------------------------------------------------
# Corner policies
# ---------------------------------------------------------------------------

def _open_corners(n: Neighbors) -> tuple[bool, bool, bool, bool]:
    """Corners (tl, tr, br, bl) whose two orthogonal neighbors are both off."""
    return (
        not (n.top or n.left),
        not (n.top or n.right),
        not (n.bottom or n.right),
        not (n.bottom or n.left),
    )


def _square(x, y, size, n):
    return Rect(x, y, size, size)


def _dots(x, y, size, n):
    half = size / 2
    return Circle(x + half, y + half, half)


def _rounded(x, y, size, n):
    r = size / 2
    return Rect(x, y, size, size, tuple(r if c else 0.0 for c in _open_corners(n)))


def _extra_rounded(x, y, size, n):
    # An L-shaped joint (two perpendicular neighbors) gets a full quarter circle
    r = size if n.orthogonal == 2 else size / 2
    return Rect(x, y, size, size, tuple(r if c else 0.0 for c in _open_corners(n)))


def _classy_corners(n: Neighbors) -> tuple[bool, bool]:
    tl = not (n.top or n.left or n.top_left)
    br = not (n.bottom or n.right or n.bottom_right)
    return tl, br


def _classy(x, y, size, n):
    tl, br = _classy_corners(n)
    r = size / 2
    return Rect(x, y, size, size, (r if tl else 0.0, 0.0, r if br else 0.0, 0.0))


def _classy_rounded(x, y, size, n):
    tl, br = _classy_corners(n)
    r = size / 2 if n.orthogonal == 0 else size
    return Rect(x, y, size, size, (r if tl else 0.0, 0.0, r if br else 0.0, 0.0))


class DotType(Enum):
    SQUARE = "square"
    DOTS = "dots"
    ROUNDED = "rounded"
    EXTRA_ROUNDED = "extra-rounded"
    CLASSY = "classy"
    CLASSY_ROUNDED = "classy-rounded"

    def primitive(self, x: float, y: float, size: float, neighbors: Neighbors = Neighbors()) -> Rect | Circle:
        """Geometry for one module cell at (x, y) with side *size*."""
        return _POLICIES[self](x, y, size, neighbors)

    @property
    def uses_neighbors(self) -> bool:
        return self not in (DotType.SQUARE, DotType.DOTS)


_POLICIES = {
    DotType.SQUARE: _square,
    DotType.DOTS: _dots,
    DotType.ROUNDED: _rounded,
    DotType.EXTRA_ROUNDED: _extra_rounded,
    DotType.CLASSY: _classy,
    DotType.CLASSY_ROUNDED: _classy_rounded,
}


# ---------------------------------------------------------------------------
# Grid walk
# ---------------------------------------------------------------------------

def solid_mask(matrix: ModuleMatrix) -> np.ndarray:
    """Dark modules that dots may connect to (hidden ones excluded)."""
    return matrix.active & np.isin(matrix.roles, [int(r) for r in _SOLID_ROLES])


def neighbor_mask(solid: np.ndarray, row: int, col: int) -> Neighbors:
    """Neighbor lookup on a boolean grid; out-of-bounds reads as off."""
    size = solid.shape[0]

    def on(dr: int, dc: int) -> bool:
        r, c = row + dr, col + dc
        return 0 <= r < size and 0 <= c < size and bool(solid[r, c])

    return Neighbors(
        left=on(0, -1), right=on(0, 1), top=on(-1, 0), bottom=on(1, 0),
        top_left=on(-1, -1), top_right=on(-1, 1),
        bottom_left=on(1, -1), bottom_right=on(1, 1),
    )


@trace
def build_dot_geometry(
    matrix: ModuleMatrix,
    dot_type: DotType,
    module_size: float,
    origin: tuple[float, float],
) -> list[Rect | Circle]:
    """Emit one primitive per dark DATA module, in row-major order.

    Args:
        matrix: Classified matrix (HIDDEN modules are skipped).
        dot_type: Style policy to apply.
        module_size: Side of one module in canvas pixels.
        origin: Canvas position of the matrix's top-left cell.
    """
    ox, oy = origin
    solid = solid_mask(matrix)
    drawable = matrix.active & (matrix.roles == ModuleRole.DATA)
    empty = Neighbors()

    shapes = []
    for row, col in zip(*np.nonzero(drawable)):
        row, col = int(row), int(col)
        n = neighbor_mask(solid, row, col) if dot_type.uses_neighbors else empty
        shapes.append(dot_type.primitive(ox + col * module_size, oy + row * module_size, module_size, n))

    audit("dots.built", logger=log, style=dot_type.value, count=len(shapes),
          module_size=round(module_size, 3))
    return shapes


def build_dot_groups(
    matrix: ModuleMatrix,
    dot_type: DotType,
    module_size: float,
    origin: tuple[float, float],
    paint,
) -> list[ShapeGroup]:
    """One ``ShapeGroup`` per visible data dot, all sharing *paint*.

    *paint* is already resolved (see ``qrstyle.paint.resolve_paint``).
    """
    return [ShapeGroup(GroupRole.DOT, (shape,), paint)
            for shape in build_dot_geometry(matrix, dot_type, module_size, origin)]
