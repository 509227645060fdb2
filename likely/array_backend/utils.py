# array_backend/utils.py
"""
Argument canonicalization used throughout likely.

Matrix storage is always float64, so the array helpers cast to float64 unless
told otherwise. With `copy=False` they return the input itself whenever no
conversion was needed, which the in-place operations rely on to write back
into the caller's buffer.
"""

from __future__ import annotations

import operator

import numpy as np
from typing import Any

from ..custom_types import Array, ArrayLike


def _as_array(x: Any, dtype: Any = None) -> Array:
    try:
        return np.asarray(x, dtype=dtype)
    except Exception as e:
        raise TypeError(
            f"Could not convert input to array.\n"
            f"Input type: {type(x).__name__}\n"
            f"Input value: {repr(x)}\n"
            f"Original error: {e}"
        ) from e


def _ensure_real_scalar(x: Any) -> float:
    """
    Return a Python float for inputs holding a single real number: Python and
    numpy scalars, and arrays with exactly one element.

    Raises:
      ValueError for strings, complex values and inputs with more than one element.
    """
    if isinstance(x, (str, bytes)):
        raise ValueError(f"_ensure_real_scalar: input is a string: {x!r}")
    arr = _as_array(x)
    if arr.size != 1:
        raise ValueError(f"_ensure_real_scalar: input must contain exactly one element; got shape={arr.shape}")
    if np.iscomplexobj(arr):
        raise ValueError(f"_ensure_real_scalar: input is complex-valued: {x!r}")
    try:
        return float(arr.reshape(()))
    except (TypeError, ValueError) as e:
        raise ValueError(f"_ensure_real_scalar: input is not a real number: {x!r}") from e


def _ensure_index(x: Any) -> int:
    """
    Return a Python int for integer-like inputs (int, numpy integer, 0-D integer array).

    Raises:
      TypeError for floats, bools and other non-integer inputs.
    """
    if isinstance(x, (bool, np.bool_)):
        raise TypeError(f"_ensure_index: boolean is not a valid index: {x!r}")
    if isinstance(x, np.ndarray) and x.ndim == 0:
        x = x.item()
    return operator.index(x)


def _ensure_vector(x: ArrayLike, *, length: int | None = None,
                   dtype: Any = np.float64, copy: bool = True) -> Array:
    """
    Return input as a 1-D vector of shape (n,).

    Scalars become length-1 vectors and 2-D inputs shaped (n,1) or (1,n) are
    flattened.

    Raises:
      ValueError for any other shape, or if `length` is given and differs.
    """
    arr = _as_array(x, dtype=dtype)

    if arr.ndim == 0:
        out = arr.reshape((1,))
    elif arr.ndim == 1:
        out = arr
    elif arr.ndim == 2 and 1 in arr.shape:
        out = arr.reshape((-1,))
    else:
        raise ValueError(f"_ensure_vector: input of shape {arr.shape} is not a vector.")

    if length is not None and out.size != length:
        raise ValueError(f"_ensure_vector: required length {length}. Got {out.size}.")

    return out.copy() if copy else out


def _ensure_square_matrix(x: ArrayLike, n: int | None = None, *,
                          dtype: Any = np.float64, copy: bool = True) -> Array:
    """Return input as a 2-D square matrix, optionally of dimension n."""
    matrix = _as_array(x, dtype=dtype)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"Array is not a square matrix. Shape {matrix.shape}")

    if n is not None and matrix.shape[0] != n:
        raise ValueError(f"Required matrix dimension {n}. Got {matrix.shape[0]}.")

    return matrix.copy() if copy else matrix
