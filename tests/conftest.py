import io
import logging

import numpy as np
import pytest
from PIL import Image

from qrstyle.logging import ROOT
from qrstyle.matrix import classify_matrix, finder_origins, matrix_from_data


def make_modules(size: int = 21, dark=()) -> np.ndarray:
    """Boolean grid with real finder patterns and the given dark cells."""
    grid = np.zeros((size, size), dtype=bool)
    for r0, c0 in finder_origins(size):
        grid[r0:r0 + 7, c0:c0 + 7] = True
        grid[r0 + 1:r0 + 6, c0 + 1:c0 + 6] = False
        grid[r0 + 2:r0 + 5, c0 + 2:c0 + 5] = True
    for row, col in dark:
        grid[row, col] = True
    return grid


def png_bytes(size=(40, 40), color=(255, 0, 0, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def modules21():
    return make_modules(21)


@pytest.fixture
def qr_modules():
    """Real version-2 (25x25) matrix from the qrcode library."""
    return matrix_from_data("qrstyle.io/x", ecc="Q", version=2)


@pytest.fixture
def qr_matrix(qr_modules):
    return classify_matrix(qr_modules)


@pytest.fixture
def full_matrix29():
    """29x29 matrix with every module dark."""
    return classify_matrix(np.ones((29, 29), dtype=bool))


@pytest.fixture
def logo_png():
    return png_bytes()


@pytest.fixture(autouse=True)
def _reset_logging():
    """The CLI reconfigures the qrstyle logger; restore it after each test."""
    root = logging.getLogger(ROOT)
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
