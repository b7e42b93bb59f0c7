"""Scene assembly: classified matrix + styling options -> paint-ordered scene.

The scene is the format-agnostic hand-off to encoders. Groups are painted
back to front in a fixed order: background, data dots, corner squares,
corner dots, logo placeholder.
"""

from dataclasses import dataclass

from qrstyle.corners import CornerShape, build_corner_groups
from qrstyle.dots import build_dot_groups
from qrstyle.geometry import Bounds, GroupRole, Rect, ShapeGroup, union_bounds
from qrstyle.logging import audit, get_logger, trace
from qrstyle.logo import LogoReservation, reserve_logo
from qrstyle.matrix import ModuleMatrix, classify_matrix
from qrstyle.options import StylingOptions
from qrstyle.paint import resolve_paint
from qrstyle.shape import canvas_geometry

log = get_logger("scene")


@dataclass(frozen=True)
class Scene:
    """Immutable, paint-ordered scene.

    Attributes:
        width, height: Size of ``bounds`` in scene units.
        bounds: Box (x0, y0, x1, y1) encoders map onto the output; may start
            below zero for a circular canvas.
        groups: Shape groups in paint order.
        size: Requested output side in pixels.
        logo: Logo bytes for encoders to draw into the LOGO group, if any.
    """
    width: float
    height: float
    bounds: Bounds
    groups: tuple[ShapeGroup, ...]
    size: float
    logo: bytes | None = None

    def groups_for(self, role: GroupRole) -> list[ShapeGroup]:
        return [g for g in self.groups if g.role is role]


@trace
def assemble_scene(matrix: ModuleMatrix, options: StylingOptions) -> Scene:
    """Build the scene for a classified *matrix*.

    Raises:
        ConfigError: *options* fail validation (nothing is built).
    """
    options.validate()
    n = matrix.size

    canvas = canvas_geometry(
        n, options.margin, options.size,
        shape=options.shape,
        diameter=options.canvas_diameter,
        round_size=options.dots.round_size,
        background_round=options.background.round,
    )
    ms = canvas.module_size
    ox, oy = canvas.origin

    reservation: LogoReservation | None = None
    if options.image is not None:
        reservation = reserve_logo(matrix, options.image_options, options.margin)
        matrix = reservation.matrix

    # ------------------------------------------------------------------
    # Background
    # ------------------------------------------------------------------
    groups = [ShapeGroup(
        GroupRole.BACKGROUND,
        (canvas.background,),
        resolve_paint(options.background.paint, canvas.bounds),
    )]

    # ------------------------------------------------------------------
    # Data dots: one gradient spans the whole square extent
    # ------------------------------------------------------------------
    extent_box = (0.0, 0.0, float(options.size), float(options.size))
    groups += build_dot_groups(matrix, options.dots.type, ms, canvas.origin,
                               resolve_paint(options.dots.paint, extent_box))

    # ------------------------------------------------------------------
    # Finder corners: paint resolved per corner box and orientation
    # ------------------------------------------------------------------
    def square_paint(corner: CornerShape):
        return resolve_paint(options.corners_square.paint, corner.square_box, corner.rotation)

    def dot_paint(corner: CornerShape):
        return resolve_paint(options.corners_dot.paint, corner.dot_box, corner.rotation)

    groups += build_corner_groups(matrix, options.corners_square.type, options.corners_dot.type,
                                  ms, canvas.origin, square_paint, dot_paint)

    # ------------------------------------------------------------------
    # Logo placeholder
    # ------------------------------------------------------------------
    if reservation is not None:
        x0, y0, x1, y1 = reservation.logo_box
        placeholder = Rect(ox + x0 * ms, oy + y0 * ms, (x1 - x0) * ms, (y1 - y0) * ms)
        groups.append(ShapeGroup(GroupRole.LOGO, (placeholder,), None))

    bounds = union_bounds([canvas.bounds] + [g.bounds() for g in groups])
    scene = Scene(
        width=bounds[2] - bounds[0],
        height=bounds[3] - bounds[1],
        bounds=bounds,
        groups=tuple(groups),
        size=options.size,
        logo=bytes(options.image) if options.image is not None else None,
    )

    audit("scene.assembled", logger=log,
          groups=len(scene.groups),
          dots=len(scene.groups_for(GroupRole.DOT)),
          hidden=reservation.hidden if reservation else 0,
          shape=options.shape.value,
          bounds=tuple(round(v, 2) for v in bounds))
    return scene


def render_scene(modules, options: StylingOptions | None = None) -> Scene:
    """Classify a raw boolean grid and assemble its scene."""
    options = options or StylingOptions()
    return assemble_scene(classify_matrix(modules), options)
