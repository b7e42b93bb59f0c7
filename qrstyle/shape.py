"""Canvas geometry: module scale, matrix placement and background shape.

Module geometry is laid out on the same grid whatever the shape type: the
matrix plus its quiet zone always spans ``size`` scene units. A circular
canvas grows around that square (its diameter spans the square's diagonal
by default), so the scene bounds extend past the square on every side and
encoders fit those bounds to the requested output size.
"""

import math
from dataclasses import dataclass
from enum import Enum

from qrstyle.geometry import Bounds, Circle, Rect
from qrstyle.logging import audit, get_logger

log = get_logger("shape")


class ShapeType(Enum):
    SQUARE = "square"
    CIRCLE = "circle"


@dataclass(frozen=True)
class CanvasGeometry:
    module_size: float
    origin: tuple[float, float]
    bounds: Bounds
    background: Rect | Circle

    @property
    def width(self) -> float:
        return self.bounds[2] - self.bounds[0]

    @property
    def height(self) -> float:
        return self.bounds[3] - self.bounds[1]


def canvas_geometry(
    module_count: int,
    margin: int,
    size: float,
    shape: ShapeType = ShapeType.SQUARE,
    diameter: float | None = None,
    round_size: bool = True,
    background_round: float = 0.0,
) -> CanvasGeometry:
    """Lay an N x N matrix with its quiet zone out on a ``size`` square.

    Args:
        module_count: Matrix side N.
        margin: Quiet zone in modules on every side.
        size: Side of the square extent (matrix + quiet zone) in scene units.
        shape: SQUARE keeps the canvas equal to that square; CIRCLE makes the
            canvas and background a circle centered on the matrix.
        diameter: Circle diameter in modules (CIRCLE only). Defaults to the
            square's diagonal; smaller values are raised to the square side.
        round_size: Floor the module size to whole units for crisp edges
            (ignored when that would drop below 1).
        background_round: Corner rounding of a square background, 0..1.
    """
    extent = module_count + 2 * margin
    module_size = size / extent
    if round_size and module_size >= 1:
        module_size = math.floor(module_size)
        # Leftover pixels from flooring are split evenly around the matrix
        offset = math.floor((size - module_count * module_size) / 2)
    else:
        offset = margin * module_size

    if shape is ShapeType.CIRCLE:
        diameter_modules = max(diameter, extent) if diameter else extent * math.sqrt(2)
        half = size / 2
        r = diameter_modules * (size / extent) / 2
        background = Circle(half, half, r)
        bounds = background.bounds()
    else:
        r = (size / 2) * background_round
        background = Rect(0.0, 0.0, size, size, (r, r, r, r))
        bounds = (0.0, 0.0, float(size), float(size))

    audit("canvas.laid_out", logger=log, shape=shape.value, size=size,
          module_size=round(module_size, 3),
          bounds=tuple(round(v, 2) for v in bounds))
    return CanvasGeometry(
        module_size=module_size,
        origin=(offset, offset),
        bounds=bounds,
        background=background,
    )
