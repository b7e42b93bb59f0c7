"""Logo reservation: the centered exclusion box and background-dot hiding.

Logo pixels are never rendered by the scene builder; it only reserves the
footprint. Encoders use ``open_logo`` / ``logo_mime_type`` to draw the
actual bitmap into that footprint.
"""

import base64
import binascii
import io
from dataclasses import dataclass

import numpy as np
from PIL import Image

from qrstyle.logging import audit, get_logger, trace
from qrstyle.matrix import ModuleMatrix, ModuleRole

log = get_logger("logo")

Box = tuple[float, float, float, float]


@dataclass(frozen=True, eq=False)
class LogoReservation:
    """Result of reserving the logo area.

    Attributes:
        box: Exclusion region (x0, y0, x1, y1) in module coordinates,
             including the ``margin_modules`` padding.
        logo_box: Where the logo itself goes (box without the padding).
        matrix: Matrix with overlapped data modules reassigned to HIDDEN
                (identical to the input when dots are kept).
        covered: Data modules whose centers fall inside ``box``.
        hidden: How many of those were reassigned to HIDDEN.
    """
    box: Box
    logo_box: Box
    matrix: ModuleMatrix
    covered: int
    hidden: int


def exclusion_boxes(module_count: int, size_ratio: float, margin_modules: float,
                    margin: int = 0) -> tuple[Box, Box]:
    """Centered (exclusion box, logo box) in module coordinates.

    The logo side is ``size_ratio`` of the overall extent less the quiet
    zone on both sides, i.e. of the matrix side itself.
    """
    extent = module_count + 2 * margin
    side = size_ratio * (extent - 2 * margin)
    lo = (module_count - side) / 2
    hi = (module_count + side) / 2
    logo_box = (lo, lo, hi, hi)
    box = (lo - margin_modules, lo - margin_modules, hi + margin_modules, hi + margin_modules)
    return box, logo_box


def covered_cells(module_count: int, box: Box) -> np.ndarray:
    """Boolean N x N grid: cell center lies inside *box* (edges inclusive)."""
    centers = np.arange(module_count) + 0.5
    x0, y0, x1, y1 = box
    cols = (centers >= x0) & (centers <= x1)
    rows = (centers >= y0) & (centers <= y1)
    return rows[:, None] & cols[None, :]


@trace
def reserve_logo(matrix: ModuleMatrix, image_options, margin: int = 0) -> LogoReservation:
    """Compute the logo exclusion region and hide data dots under it.

    Args:
        matrix: Classified matrix; not modified.
        image_options: ``ImageOptions`` (size_ratio, margin_modules,
            hide_background_dots), validated upstream.
        margin: Quiet zone width in modules.

    Finder and separator roles are never touched, whatever the geometry.
    """
    n = matrix.size
    box, logo_box = exclusion_boxes(n, image_options.size_ratio, image_options.margin_modules, margin)

    inside = covered_cells(n, box) & (matrix.roles == ModuleRole.DATA)
    covered = int(np.count_nonzero(inside))

    result_matrix = matrix
    hidden = 0
    if image_options.hide_background_dots and covered:
        roles = np.array(matrix.roles)
        roles[inside] = ModuleRole.HIDDEN
        result_matrix = matrix.with_roles(roles)
        hidden = covered

    audit("logo.reserved", logger=log,
          box=tuple(round(v, 3) for v in box),
          covered=covered, hidden=hidden,
          hide_background_dots=image_options.hide_background_dots)
    return LogoReservation(box=box, logo_box=logo_box, matrix=result_matrix,
                           covered=covered, hidden=hidden)


# ---------------------------------------------------------------------------
# Logo bitmap helpers (used by encoders)
# ---------------------------------------------------------------------------

def logo_mime_type(data: bytes) -> str:
    """Sniff the image MIME type from magic bytes (PNG when unknown)."""
    if data.startswith(b"\x89PNG"):
        return "image/png"
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if data.startswith(b"RIFF") and data[8:12] == b"WEBP":
        return "image/webp"
    if data.startswith(b"GIF8"):
        return "image/gif"
    if data.lstrip().startswith((b"<svg", b"<?xml")):
        return "image/svg+xml"
    return "image/png"


def image_href(src: bytes | str) -> str:
    """Raw bytes become a base64 data URI; strings (URLs, data URIs) pass through."""
    if isinstance(src, (bytes, bytearray)):
        return f"data:{logo_mime_type(bytes(src))};base64,{base64.b64encode(src).decode('ascii')}"
    return src


def image_bytes(src: bytes | str) -> bytes | None:
    """Decoded image data, or None for remote references that need fetching."""
    if isinstance(src, (bytes, bytearray)):
        return bytes(src)
    header, sep, payload = src.partition(",")
    if not (src.startswith("data:") and sep and header.endswith(";base64")):
        return None
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error:
        return None


def open_logo(data: bytes) -> Image.Image:
    """Decode logo bytes into an RGBA image."""
    img = Image.open(io.BytesIO(data))
    img.load()
    return img.convert("RGBA")


def fit_logo(logo: Image.Image, width: int, height: int) -> tuple[Image.Image, tuple[int, int]]:
    """Scale *logo* to fit a width x height box, keeping its aspect ratio.

    Returns the resized image and its offset inside the box.
    """
    lw, lh = logo.size
    scale = min(width / lw, height / lh)
    new_w = max(1, int(lw * scale))
    new_h = max(1, int(lh * scale))
    resized = logo.resize((new_w, new_h), Image.LANCZOS)
    return resized, ((width - new_w) // 2, (height - new_h) // 2)
