import numpy as np
import pytest

from conftest import make_modules
from qrstyle.errors import ConfigError, InvalidMatrixError
from qrstyle.matrix import ModuleRole, classify_matrix, matrix_from_data


def test_role_counts_on_smallest_matrix(modules21):
    m = classify_matrix(modules21)
    assert m.size == 21
    assert m.count(ModuleRole.FINDER_OUTER) == 3 * 40
    assert m.count(ModuleRole.FINDER_INNER) == 3 * 9
    assert m.count(ModuleRole.SEPARATOR) == 3 * 15
    assert m.count(ModuleRole.DATA) == 441 - 120 - 27 - 45
    assert m.count(ModuleRole.HIDDEN) == 0


@pytest.mark.parametrize("cell, role", [
    ((0, 0), ModuleRole.FINDER_OUTER),
    ((3, 3), ModuleRole.FINDER_INNER),
    ((2, 16), ModuleRole.FINDER_INNER),
    ((18, 4), ModuleRole.FINDER_INNER),
    ((1, 1), ModuleRole.FINDER_OUTER),
    ((7, 7), ModuleRole.SEPARATOR),
    ((0, 13), ModuleRole.SEPARATOR),
    ((13, 0), ModuleRole.SEPARATOR),
    ((8, 8), ModuleRole.DATA),
    ((20, 20), ModuleRole.DATA),
])
def test_roles_by_position(modules21, cell, role):
    assert classify_matrix(modules21).role(*cell) is role


def test_version_2_fixture_is_25_modules(qr_modules, qr_matrix):
    assert np.asarray(qr_modules).shape == (25, 25)
    assert qr_matrix.size == 25
    assert qr_matrix.count(ModuleRole.DATA, active=True) > 0


def test_version_overflow_is_a_config_error():
    # 27 bytes, version 2-Q holds 20
    with pytest.raises(ConfigError) as exc:
        matrix_from_data("https://example.com/qrstyle", ecc="Q", version=2)
    assert exc.value.fields == ["version"]
    assert len(matrix_from_data("https://example.com/qrstyle", ecc="Q")) > 25


def test_finder_cells_are_dark_in_real_matrix(qr_matrix):
    finder = np.isin(qr_matrix.roles, [ModuleRole.FINDER_INNER])
    assert qr_matrix.active[finder].all()


def test_activation_is_preserved(qr_modules):
    m = classify_matrix(qr_modules)
    assert np.array_equal(m.active, np.array(qr_modules, dtype=bool))


def test_input_is_not_mutated_and_result_is_read_only(modules21):
    before = modules21.copy()
    m = classify_matrix(modules21)
    assert np.array_equal(modules21, before)
    assert modules21.flags.writeable
    with pytest.raises(ValueError):
        m.roles[10, 10] = ModuleRole.HIDDEN
    with pytest.raises(ValueError):
        m.active[10, 10] = True


def test_is_dark_out_of_bounds_is_light(modules21):
    m = classify_matrix(modules21)
    assert m.is_dark(0, 0)
    assert not m.is_dark(-1, 0)
    assert not m.is_dark(0, 21)


@pytest.mark.parametrize("grid", [
    np.zeros((20, 20), dtype=bool),
    np.zeros((19, 19), dtype=bool),
    np.zeros((22, 22), dtype=bool),
    np.zeros((21, 23), dtype=bool),
    np.zeros(21, dtype=bool),
    [[True] * 21] * 20 + [[True] * 5],
])
def test_invalid_matrices(grid):
    with pytest.raises(InvalidMatrixError):
        classify_matrix(grid)


def test_nested_lists_are_accepted():
    grid = make_modules(25).tolist()
    assert classify_matrix(grid).size == 25


def test_matrix_from_data_sizes():
    assert len(matrix_from_data("hi", version=1)) == 21
    modules = matrix_from_data("hello world", ecc="h", version=3)
    assert len(modules) == 29
    assert all(len(row) == 29 for row in modules)
