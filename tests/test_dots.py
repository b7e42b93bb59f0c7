import numpy as np
import pytest

from conftest import make_modules
from qrstyle.dots import DotType, Neighbors, build_dot_geometry, build_dot_groups, neighbor_mask
from qrstyle.geometry import Circle, GroupRole, Rect
from qrstyle.matrix import ModuleRole, classify_matrix
from qrstyle.paint import ResolvedSolid

S = 10.0
H = S / 2


# ---------------------------------------------------------------------------
# Per-style corner policies
# ---------------------------------------------------------------------------

def test_square_ignores_neighbors():
    assert DotType.SQUARE.primitive(0, 0, S, Neighbors(left=True)) == Rect(0, 0, S, S)
    assert DotType.SQUARE.primitive(0, 0, S) == Rect(0, 0, S, S)


def test_dots_are_inscribed_circles():
    assert DotType.DOTS.primitive(20, 30, S, Neighbors(right=True, top=True)) == Circle(25, 35, H)


@pytest.mark.parametrize("neighbors, radii", [
    (Neighbors(), (H, H, H, H)),
    (Neighbors(right=True), (H, 0, 0, H)),
    (Neighbors(left=True), (0, H, H, 0)),
    (Neighbors(top=True, bottom=True), (0, 0, 0, 0)),
    (Neighbors(top_left=True, bottom_right=True), (H, H, H, H)),
])
def test_rounded_squares_shared_corners(neighbors, radii):
    assert DotType.ROUNDED.primitive(0, 0, S, neighbors).radii == radii


@pytest.mark.parametrize("neighbors, radii", [
    (Neighbors(), (H, H, H, H)),
    (Neighbors(right=True), (H, 0, 0, H)),
    # L-joint: the only open corner gets a full quarter circle
    (Neighbors(right=True, bottom=True), (S, 0, 0, 0)),
    (Neighbors(left=True, right=True), (0, 0, 0, 0)),
])
def test_extra_rounded(neighbors, radii):
    assert DotType.EXTRA_ROUNDED.primitive(0, 0, S, neighbors).radii == radii


@pytest.mark.parametrize("neighbors, radii", [
    (Neighbors(), (H, 0, H, 0)),
    (Neighbors(top_left=True), (0, 0, H, 0)),
    (Neighbors(bottom_right=True), (H, 0, 0, 0)),
    (Neighbors(top_right=True, bottom_left=True), (H, 0, H, 0)),
    (Neighbors(left=True), (0, 0, H, 0)),
])
def test_classy_checks_quadrant_diagonal(neighbors, radii):
    assert DotType.CLASSY.primitive(0, 0, S, neighbors).radii == radii


@pytest.mark.parametrize("neighbors, radii", [
    (Neighbors(), (H, 0, H, 0)),
    (Neighbors(right=True), (S, 0, 0, 0)),
    (Neighbors(top=True), (0, 0, S, 0)),
    (Neighbors(top=True, left=True, bottom_right=True), (0, 0, 0, 0)),
])
def test_classy_rounded(neighbors, radii):
    assert DotType.CLASSY_ROUNDED.primitive(0, 0, S, neighbors).radii == radii


def test_style_values_are_kebab_case():
    assert DotType("extra-rounded") is DotType.EXTRA_ROUNDED
    assert DotType("classy-rounded") is DotType.CLASSY_ROUNDED


# ---------------------------------------------------------------------------
# Neighbor lookup
# ---------------------------------------------------------------------------

def test_out_of_bounds_neighbors_are_off():
    solid = np.ones((21, 21), dtype=bool)
    n = neighbor_mask(solid, 0, 0)
    assert n == Neighbors(right=True, bottom=True, bottom_right=True)
    n = neighbor_mask(solid, 20, 20)
    assert n == Neighbors(left=True, top=True, top_left=True)


def test_hidden_modules_are_not_neighbors():
    matrix = classify_matrix(make_modules(21, dark=[(10, 10), (10, 11)]))
    roles = np.array(matrix.roles)
    roles[10, 11] = ModuleRole.HIDDEN
    shapes = build_dot_geometry(matrix.with_roles(roles), DotType.ROUNDED, S, (0, 0))
    assert shapes == [Rect(100, 100, S, S, (H, H, H, H))]


# ---------------------------------------------------------------------------
# Grid walk
# ---------------------------------------------------------------------------

def test_adjacent_rounded_modules_merge():
    matrix = classify_matrix(make_modules(21, dark=[(10, 10), (10, 11)]))
    left, right = build_dot_geometry(matrix, DotType.ROUNDED, S, (0, 0))
    assert left == Rect(100, 100, S, S, (H, 0, 0, H))
    assert right == Rect(110, 100, S, S, (0, H, H, 0))


def test_one_circle_per_active_data_module(qr_matrix):
    shapes = build_dot_geometry(qr_matrix, DotType.DOTS, S, (0, 0))
    assert len(shapes) == qr_matrix.count(ModuleRole.DATA, active=True)
    assert all(isinstance(s, Circle) for s in shapes)
    assert all(s.r == H for s in shapes)


def test_finder_modules_never_emit_dots(modules21):
    assert build_dot_geometry(classify_matrix(modules21), DotType.SQUARE, S, (0, 0)) == []


def test_row_major_order_and_origin():
    matrix = classify_matrix(make_modules(21, dark=[(12, 9), (9, 12)]))
    first, second = build_dot_geometry(matrix, DotType.SQUARE, S, (3, 5))
    assert (first.x, first.y) == (3 + 12 * S, 5 + 9 * S)
    assert (second.x, second.y) == (3 + 9 * S, 5 + 12 * S)


@pytest.mark.parametrize("dot_type", list(DotType))
def test_geometry_is_deterministic(qr_matrix, dot_type):
    assert build_dot_geometry(qr_matrix, dot_type, 7.5, (1, 1)) == \
        build_dot_geometry(qr_matrix, dot_type, 7.5, (1, 1))


def test_dot_groups_carry_paint(qr_matrix):
    paint = ResolvedSolid("#112233")
    groups = build_dot_groups(qr_matrix, DotType.CLASSY, S, (0, 0), paint)
    assert len(groups) == qr_matrix.count(ModuleRole.DATA, active=True)
    assert all(g.role is GroupRole.DOT and g.paint == paint and len(g.geometry) == 1 for g in groups)
