# linalg/kernels.py
"""
Numeric kernels operating directly on packed symmetric matrices.

All matrices use the packed layout of `likely.linalg.packed`. The kernels that
work in place require a writable, contiguous 1-D float64 numpy array; a
failure part way through leaves that array partially overwritten, so callers
that need to keep the input intact should pass a scratch copy.
"""

from __future__ import annotations

import math

import numpy as np
from scipy.linalg import solve_triangular

from ..custom_types import Array, ArrayLike, PackedArray
from ..exceptions import NotPositiveDefinite, SizeMismatch
from ..array_backend.utils import _ensure_vector
from .packed import (
    column_offset,
    packed_size,
    packed_lower_to_dense,
    symmetric_matrix_size
)

__all__ = [
    "cholesky_decompose",
    "invert_cholesky",
    "symmetric_matrix_multiply",
]


def _check_packed(matrix: PackedArray, size: int) -> int:
    """Validate an in-place packed argument and return its matrix size."""
    if not isinstance(matrix, np.ndarray) or matrix.ndim != 1:
        raise TypeError("Packed matrix must be a 1-D numpy array.")
    if matrix.dtype != np.float64:
        raise TypeError(f"Packed matrix must have dtype float64. Got {matrix.dtype}.")
    if size <= 0:
        return symmetric_matrix_size(matrix.size)
    if matrix.size != packed_size(size):
        raise SizeMismatch(
            f"Packed matrix has {matrix.size} elements, expected {packed_size(size)} for size {size}."
        )
    return size


def cholesky_decompose(matrix: PackedArray, size: int = 0) -> None:
    """Cholesky decompose a packed symmetric positive definite matrix in place.

    On return `matrix` holds the packed lower-triangular factor L such that
    L @ L.T equals the input. The factorization proceeds column by column, so
    each column of L is a contiguous slice of the packed array.

    Args:
        matrix: packed symmetric matrix, overwritten with its Cholesky factor.
        size: matrix size, or 0 to infer it from the array length.

    Raises:
        NotPositiveDefinite if a pivot is not strictly positive.
    """
    n = _check_packed(matrix, size)
    for j in range(n):
        oj = column_offset(j, n)
        col = matrix[oj + j: oj + n]
        for k in range(j):
            ok = column_offset(k, n)
            lk = matrix[ok + j: ok + n]
            col -= lk[0] * lk
        pivot = col[0]
        if not pivot > 0:
            raise NotPositiveDefinite(
                f"cholesky_decompose: matrix is not positive definite (pivot {pivot!r} in column {j})."
            )
        diag = math.sqrt(pivot)
        col[0] = diag
        col[1:] /= diag


def invert_cholesky(matrix: PackedArray, size: int = 0) -> None:
    """Invert a symmetric positive definite matrix given its packed Cholesky factor.

    The input must already hold the packed factor L (e.g. from
    `cholesky_decompose`); on return it holds the packed inverse of L @ L.T.
    The input is not checked for being a valid factor.
    """
    n = _check_packed(matrix, size)
    L = packed_lower_to_dense(matrix, n)
    L_inv = solve_triangular(L, np.eye(n), lower=True)
    inverse = L_inv.T @ L_inv
    matrix[:] = inverse[np.triu_indices(n)]


def symmetric_matrix_multiply(matrix: PackedArray, vector: ArrayLike, size: int = 0) -> Array:
    """Return the product of a packed symmetric matrix with a vector.

    Each stored off-diagonal element contributes to two entries of the result.

    Raises:
        SizeMismatch if len(vector) differs from the matrix size.
    """
    mat = _ensure_vector(matrix, copy=False)
    n = _check_packed(mat, size)
    vec = _ensure_vector(vector, copy=False)
    if vec.size != n:
        raise SizeMismatch(
            f"symmetric_matrix_multiply: vector has length {vec.size}, matrix has size {n}."
        )
    result = np.zeros(n, dtype=np.float64)
    for j in range(n):
        oj = column_offset(j, n)
        col = mat[oj + j: oj + n]
        result[j:] += col * vec[j]
        result[j] += col[1:] @ vec[j + 1:]
    return result
