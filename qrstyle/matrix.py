"""Module matrix classification: label every QR cell by functional role.

The boolean matrix is produced elsewhere (``matrix_from_data`` wraps the
``qrcode`` library for the CLI); this module never changes which modules are
dark, it only decides what each cell *is*.
"""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np
import qrcode
import qrcode.constants
from qrcode.exceptions import DataOverflowError

from qrstyle.errors import ConfigError, ConfigIssue, InvalidMatrixError
from qrstyle.logging import audit, get_logger, trace

log = get_logger("matrix")

MIN_SIZE = 21
FINDER_SIZE = 7

ECC_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,  # 7%
    "M": qrcode.constants.ERROR_CORRECT_M,  # 15%
    "Q": qrcode.constants.ERROR_CORRECT_Q,  # 25%
    "H": qrcode.constants.ERROR_CORRECT_H,  # 30%
}


class ModuleRole(IntEnum):
    DATA = 0
    FINDER_OUTER = 1
    FINDER_INNER = 2
    SEPARATOR = 3
    HIDDEN = 4


FINDER_ROLES = (ModuleRole.FINDER_OUTER, ModuleRole.FINDER_INNER, ModuleRole.SEPARATOR)


@dataclass(frozen=True, eq=False)
class ModuleMatrix:
    """Classified module grid.

    ``active`` and ``roles`` are read-only N x N numpy arrays; role changes
    produce a new matrix via ``with_roles``.
    """
    active: np.ndarray
    roles: np.ndarray

    @property
    def size(self) -> int:
        return self.active.shape[0]

    def is_dark(self, row: int, col: int) -> bool:
        """Out-of-bounds cells count as light."""
        if 0 <= row < self.size and 0 <= col < self.size:
            return bool(self.active[row, col])
        return False

    def role(self, row: int, col: int) -> ModuleRole:
        return ModuleRole(int(self.roles[row, col]))

    def count(self, role: ModuleRole, active: bool | None = None) -> int:
        mask = self.roles == role
        if active is not None:
            mask &= self.active == active
        return int(np.count_nonzero(mask))

    def with_roles(self, roles: np.ndarray) -> "ModuleMatrix":
        roles = np.array(roles, dtype=np.int8)
        roles.setflags(write=False)
        return ModuleMatrix(self.active, roles)


def finder_origins(size: int) -> list[tuple[int, int]]:
    """(row, col) of the top-left cell of each finder: TL, TR, BL."""
    return [(0, 0), (0, size - FINDER_SIZE), (size - FINDER_SIZE, 0)]


def _as_bool_grid(modules) -> np.ndarray:
    try:
        grid = np.array(modules, dtype=bool)
    except (TypeError, ValueError) as exc:
        raise InvalidMatrixError(f"module matrix is not a rectangular grid: {exc}") from exc
    if grid.ndim != 2:
        raise InvalidMatrixError(f"module matrix must be 2-dimensional, got {grid.ndim} dimension(s)")
    rows, cols = grid.shape
    if rows != cols:
        raise InvalidMatrixError(f"module matrix must be square, got {rows}x{cols}")
    if rows < MIN_SIZE:
        raise InvalidMatrixError(f"module matrix side {rows} is below the minimum of {MIN_SIZE}")
    if rows % 2 == 0:
        raise InvalidMatrixError(f"module matrix side must be odd, got {rows}")
    return grid


@trace
def classify_matrix(modules) -> ModuleMatrix:
    """Assign a ``ModuleRole`` to every cell of a square boolean grid.

    Args:
        modules: N x N nested sequence or array of truthy values
                 (True = dark), N odd and >= 21.

    Returns:
        ModuleMatrix with finder footprints, separators and data labelled.

    Raises:
        InvalidMatrixError: non-square, too small, or even-sided grid.
    """
    active = _as_bool_grid(modules)
    size = active.shape[0]
    roles = np.full((size, size), ModuleRole.DATA, dtype=np.int8)

    for r0, c0 in finder_origins(size):
        # Separator strip first, then the 7x7 footprint on top of it
        sr0, sc0 = max(r0 - 1, 0), max(c0 - 1, 0)
        sr1, sc1 = min(r0 + FINDER_SIZE + 1, size), min(c0 + FINDER_SIZE + 1, size)
        roles[sr0:sr1, sc0:sc1] = ModuleRole.SEPARATOR
        roles[r0:r0 + FINDER_SIZE, c0:c0 + FINDER_SIZE] = ModuleRole.FINDER_OUTER
        roles[r0 + 2:r0 + 5, c0 + 2:c0 + 5] = ModuleRole.FINDER_INNER

    active.setflags(write=False)
    roles.setflags(write=False)
    matrix = ModuleMatrix(active, roles)

    audit("matrix.classified", logger=log,
          size=f"{size}x{size}",
          data=matrix.count(ModuleRole.DATA),
          data_dark=matrix.count(ModuleRole.DATA, active=True),
          finder_outer=matrix.count(ModuleRole.FINDER_OUTER),
          finder_inner=matrix.count(ModuleRole.FINDER_INNER),
          separator=matrix.count(ModuleRole.SEPARATOR))
    return matrix


@trace
def matrix_from_data(
    data: str,
    ecc: str = "Q",
    version: int | None = None,
    mask: int | None = None,
) -> list[list[bool]]:
    """Encode *data* with the ``qrcode`` library and return the raw modules.

    Args:
        data: Payload to encode.
        ecc: Error correction level L/M/Q/H.
        version: QR version 1-40 (None = smallest that fits).
        mask: Mask pattern 0-7 (None = library's choice).
    """
    qr = qrcode.QRCode(
        version=version,
        error_correction=ECC_LEVELS[ecc.upper()],
        box_size=1,
        border=0,
        mask_pattern=mask,
    )
    qr.add_data(data)
    try:
        qr.make(fit=(version is None))
    except DataOverflowError as exc:
        raise ConfigError([ConfigIssue(
            "version", f"{len(data.encode('utf-8'))} bytes do not fit version {version}-{ecc.upper()}")]) from exc
    audit("matrix.encoded", logger=log, data=data[:80], version=qr.version, ecc=ecc.upper())
    return qr.modules
