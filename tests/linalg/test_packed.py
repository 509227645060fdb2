# tests/linalg/test_packed.py
import numpy as np
import pytest
from numpy.testing import assert_array_equal

from likely.exceptions import InvalidIndex, InvalidSize, SizeMismatch
from likely.linalg.packed import (
    symmetric_matrix_index,
    packed_size,
    symmetric_matrix_size,
    diagonal_offsets,
    packed_to_dense,
    packed_lower_to_dense,
    dense_to_packed
)


def test_index_layout_size_three():
    # upper triangle stored row by row
    expected = {(0, 0): 0, (0, 1): 1, (0, 2): 2, (1, 1): 3, (1, 2): 4, (2, 2): 5}
    for (row, col), offset in expected.items():
        assert symmetric_matrix_index(row, col, 3) == offset
        assert symmetric_matrix_index(col, row, 3) == offset


@pytest.mark.parametrize("size", [1, 2, 5, 8])
def test_index_is_symmetric_and_covers_packed_array(size):
    offsets = set()
    for row in range(size):
        for col in range(size):
            offset = symmetric_matrix_index(row, col, size)
            assert offset == symmetric_matrix_index(col, row, size)
            offsets.add(offset)
    assert offsets == set(range(packed_size(size)))


@pytest.mark.parametrize("row,col", [(-1, 0), (0, -1), (3, 0), (0, 3), (5, 5)])
def test_index_out_of_range(row, col):
    with pytest.raises(InvalidIndex):
        symmetric_matrix_index(row, col, 3)
    # also catchable as a builtin IndexError
    with pytest.raises(IndexError):
        symmetric_matrix_index(row, col, 3)


def test_index_invalid_size():
    with pytest.raises(InvalidSize):
        symmetric_matrix_index(0, 0, 0)


def test_packed_size_and_inverse():
    for size in range(1, 30):
        assert packed_size(size) == size * (size + 1) // 2
        assert symmetric_matrix_size(packed_size(size)) == size


@pytest.mark.parametrize("nelem", [0, -3, 2, 4, 5, 7, 11])
def test_implied_size_rejects_non_triangular(nelem):
    with pytest.raises(InvalidSize):
        symmetric_matrix_size(nelem)


def test_packed_size_rejects_non_positive():
    with pytest.raises(InvalidSize):
        packed_size(0)


def test_diagonal_offsets():
    size = 6
    expected = [symmetric_matrix_index(i, i, size) for i in range(size)]
    assert_array_equal(diagonal_offsets(size), expected)


def test_dense_round_trip(spd_factory):
    A = spd_factory(5)
    packed = dense_to_packed(A)
    assert packed.shape == (15,)
    assert_array_equal(packed_to_dense(packed), A)
    assert_array_equal(packed_to_dense(packed, 5), A)


def test_packed_to_dense_uses_layout():
    packed = np.arange(6, dtype=float)
    dense = packed_to_dense(packed)
    for row in range(3):
        for col in range(3):
            assert dense[row, col] == packed[symmetric_matrix_index(row, col, 3)]


def test_packed_lower_to_dense():
    # column j of the lower triangle is contiguous
    packed = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    L = packed_lower_to_dense(packed)
    assert_array_equal(L, [[1.0, 0.0, 0.0],
                           [2.0, 4.0, 0.0],
                           [3.0, 5.0, 6.0]])


def test_packed_to_dense_size_mismatch():
    with pytest.raises(SizeMismatch):
        packed_to_dense(np.zeros(6), 4)
    with pytest.raises(InvalidSize):
        packed_to_dense(np.zeros(5))
