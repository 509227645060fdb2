# linalg/packed.py
"""
Index arithmetic for symmetric matrices stored in packed form.

Only the upper triangle of an N x N symmetric matrix is stored, row by row, in
a flat array of N*(N+1)/2 values:

    [ a b c ]
    [ . d e ]   =>  [a b c d e f]
    [ . . f ]

The element (row, col) with row <= col lives at

    col + row*(2N-row-1)/2

Read column-wise, the same array holds the lower triangle column by column,
which is the BLAS/LAPACK "packed lower" convention
(http://www.netlib.org/lapack/lug/node123.html). A packed Cholesky factor L
therefore stores L[i, j] (i >= j) at `symmetric_matrix_index(j, i, N)`.

Callers should never compute offsets themselves; go through
`symmetric_matrix_index` or the dense conversion helpers below.
"""

from __future__ import annotations

import math

import numpy as np

from ..custom_types import Array, ArrayLike
from ..exceptions import InvalidIndex, InvalidSize, SizeMismatch
from ..array_backend.utils import (
    _ensure_index,
    _ensure_vector,
    _ensure_square_matrix
)

__all__ = [
    "symmetric_matrix_index",
    "packed_size",
    "symmetric_matrix_size",
    "column_offset",
    "diagonal_offsets",
    "packed_to_dense",
    "packed_lower_to_dense",
    "dense_to_packed",
]


def symmetric_matrix_index(row: int, col: int, size: int) -> int:
    """Return the packed offset of element (row, col) of a size x size symmetric matrix.

    (row, col) and (col, row) map to the same offset.

    Raises:
        InvalidSize if size <= 0.
        InvalidIndex if row or col is outside [0, size-1].
    """
    size = _ensure_index(size)
    if size <= 0:
        raise InvalidSize(f"symmetric_matrix_index: invalid size {size}.")
    row = _ensure_index(row)
    col = _ensure_index(col)
    if not (0 <= row < size and 0 <= col < size):
        raise InvalidIndex(
            f"symmetric_matrix_index: ({row},{col}) is out of range for size {size}."
        )
    if row > col:
        row, col = col, row
    return col + (row * (2 * size - row - 1)) // 2


def packed_size(size: int) -> int:
    """Number of packed elements needed to store a size x size symmetric matrix."""
    size = _ensure_index(size)
    if size <= 0:
        raise InvalidSize(f"packed_size: invalid size {size}.")
    return (size * (size + 1)) // 2


def symmetric_matrix_size(nelem: int) -> int:
    """Return the matrix size implied by a packed array of nelem elements.

    Inverse of `packed_size`: nelem = size*(size+1)/2.

    Raises:
        InvalidSize if nelem is not a positive triangular number.
    """
    nelem = _ensure_index(nelem)
    if nelem <= 0:
        raise InvalidSize(f"symmetric_matrix_size: invalid number of elements {nelem}.")
    size = (math.isqrt(8 * nelem + 1) - 1) // 2
    if (size * (size + 1)) // 2 != nelem:
        raise InvalidSize(
            f"symmetric_matrix_size: {nelem} is not a triangular number of elements."
        )
    return size


def column_offset(col: int, size: int) -> int:
    """Offset such that lower-triangle column `col` occupies
    packed[column_offset(col, size) + col : column_offset(col, size) + size].

    No range checking; used by the numeric kernels on validated sizes.
    """
    return (col * (2 * size - col - 1)) // 2


def diagonal_offsets(size: int) -> Array:
    """Packed offsets of the diagonal elements (i, i), i = 0..size-1."""
    size = _ensure_index(size)
    if size <= 0:
        raise InvalidSize(f"diagonal_offsets: invalid size {size}.")
    i = np.arange(size, dtype=np.int64)
    return i + (i * (2 * size - i - 1)) // 2


def _resolve_size(packed: Array, size: int | None) -> int:
    if size is None or size <= 0:
        return symmetric_matrix_size(packed.size)
    if packed.size != packed_size(size):
        raise SizeMismatch(
            f"Packed array has {packed.size} elements, expected {packed_size(size)} for size {size}."
        )
    return size


def packed_to_dense(packed: ArrayLike, size: int | None = None) -> Array:
    """Expand a packed symmetric matrix into a dense (size, size) array."""
    p = _ensure_vector(packed, copy=False)
    n = _resolve_size(p, size)
    rows, cols = np.triu_indices(n)
    dense = np.zeros((n, n), dtype=np.float64)
    dense[rows, cols] = p
    dense[cols, rows] = p
    return dense


def packed_lower_to_dense(packed: ArrayLike, size: int | None = None) -> Array:
    """Expand a packed lower-triangular matrix (e.g. a Cholesky factor) into
    a dense (size, size) array with zeros above the diagonal."""
    p = _ensure_vector(packed, copy=False)
    n = _resolve_size(p, size)
    rows, cols = np.triu_indices(n)
    dense = np.zeros((n, n), dtype=np.float64)
    dense[cols, rows] = p
    return dense


def dense_to_packed(matrix: ArrayLike) -> Array:
    """Pack the upper triangle of a dense square matrix.

    The lower triangle is ignored; symmetry is the caller's responsibility.
    """
    A = _ensure_square_matrix(matrix, copy=False)
    if A.shape[0] == 0:
        raise InvalidSize("dense_to_packed: matrix is empty.")
    return A[np.triu_indices(A.shape[0])].copy()
