# linalg/covariance.py
"""
A covariance matrix that can be specified through either its elements or the
elements of its inverse, and that keeps whichever representation is needed
in sync on demand.

Storage uses the packed symmetric layout of `likely.linalg.packed`. Up to
three packed arrays may be cached at once:

- the covariance C,
- the inverse covariance C^{-1},
- the Cholesky factor of C (never of C^{-1}).

The representation that was written most recently is authoritative; the other
one, when present, was derived from it by Cholesky decomposition and
inversion. Reading a stale representation recomputes it.

`compress()` swaps the packed arrays for a sparse encoding of the
authoritative representation (its diagonal plus the nonzero off-diagonal
entries) when that encoding is no larger than one packed array. Any later
operation other than the size, compression and memory queries decompresses
transparently. Because the derived representation is always recomputed from
the same authoritative values, a compress/decompress cycle reproduces both
representations exactly.
"""

from __future__ import annotations

import enum
import logging
import sys
from collections.abc import MutableSequence
from dataclasses import dataclass, replace

import numpy as np

from ..custom_types import Array, ArrayLike, Seed
from ..exceptions import (
    InvalidEncoding,
    InvalidSize,
    NotPositiveDefinite,
    SizeMismatch
)
from ..array_backend.utils import (
    _ensure_index,
    _ensure_real_scalar,
    _ensure_vector,
    _ensure_square_matrix
)
from .packed import (
    symmetric_matrix_index,
    packed_size,
    diagonal_offsets,
    packed_to_dense,
    packed_lower_to_dense,
    dense_to_packed
)
from .kernels import (
    cholesky_decompose,
    invert_cholesky,
    symmetric_matrix_multiply
)

__all__ = [
    "CacheState",
    "CovarianceMatrix",
]

logger = logging.getLogger(__name__)


class CacheState(enum.Enum):
    """Which dense representations are (or, when compressed, will be) in memory."""
    EMPTY = "empty"
    COVARIANCE = "covariance"
    INVERSE = "inverse"
    BOTH = "both"


@dataclass(frozen=True)
class _SparseEncoding:
    """Lossless sparse encoding of one packed representation.

    `offdiag_index` and `offdiag_value` are both None for a diagonal matrix.
    """
    inverse: bool
    diagonal: Array
    offdiag_index: Array | None
    offdiag_value: Array | None
    restore: CacheState

    @classmethod
    def encode(cls, values: Array, size: int, *, inverse: bool,
               restore: CacheState) -> _SparseEncoding | None:
        """Encode packed `values`, or return None if the encoding would need
        more doubles than the packed array itself."""
        diag_offsets = diagonal_offsets(size)
        offdiag = np.ones(values.size, dtype=bool)
        offdiag[diag_offsets] = False
        nonzero = np.flatnonzero(offdiag & (values != 0))
        if size + 2 * nonzero.size > values.size:
            return None
        if nonzero.size == 0:
            index = value = None
        else:
            index = nonzero.astype(np.int64)
            value = values[nonzero].copy()
        return cls(inverse=inverse, diagonal=values[diag_offsets].copy(),
                   offdiag_index=index, offdiag_value=value, restore=restore)

    def decode(self, size: int) -> Array:
        """Rebuild the packed array, validating the encoding first."""
        ncov = packed_size(size)
        if self.diagonal.shape != (size,):
            raise InvalidEncoding(
                f"Encoded diagonal has shape {self.diagonal.shape}, expected ({size},)."
            )
        if (self.offdiag_index is None) != (self.offdiag_value is None):
            raise InvalidEncoding("Off-diagonal indices and values must be stored together.")
        diag_offsets = diagonal_offsets(size)
        packed = np.zeros(ncov, dtype=np.float64)
        packed[diag_offsets] = self.diagonal
        if self.offdiag_index is not None:
            if self.offdiag_index.shape != self.offdiag_value.shape or self.offdiag_index.ndim != 1:
                raise InvalidEncoding("Off-diagonal indices and values have inconsistent shapes.")
            if self.offdiag_index.size and (self.offdiag_index.min() < 0 or self.offdiag_index.max() >= ncov):
                raise InvalidEncoding("Off-diagonal index out of range for the packed layout.")
            if np.isin(self.offdiag_index, diag_offsets).any():
                raise InvalidEncoding("Off-diagonal index refers to a diagonal element.")
            packed[self.offdiag_index] = self.offdiag_value
        return packed

    def arrays(self) -> tuple[Array | None, Array | None, Array | None]:
        return self.diagonal, self.offdiag_index, self.offdiag_value


class CovarianceMatrix:
    """Symmetric positive definite covariance matrix with lazily synchronized
    covariance and inverse covariance representations.

    A newly created matrix has all elements zero and is not usable for
    algebraic operations until enough elements have been set to make it
    positive definite.

    Args:
        size: fixed matrix dimension, must be positive.
        seed: optional entropy for the sampler. Each call to `sample()`
              consumes the next value of an internal counter, so repeated
              calls give independent draws, and two matrices built with the
              same seed generate the same sequence of samples.

    Raises:
        InvalidSize if size <= 0.
    """

    def __init__(self, size: int, *, seed: Seed = None) -> None:
        size = _ensure_index(size)
        if size <= 0:
            raise InvalidSize(f"CovarianceMatrix: invalid size {size}.")
        self._size = size
        self._ncov = packed_size(size)
        self._cov: Array | None = None
        self._icov: Array | None = None
        self._cholesky: Array | None = None
        self._inverse_authoritative = False
        # The encoding outlives decompression until the next write, so that
        # compressing an unchanged matrix again is cheap.
        self._encoding: _SparseEncoding | None = None
        self._compressed = False
        self._entropy = np.random.SeedSequence(seed).entropy
        self._next_seed = 0

    @classmethod
    def from_dense(cls, matrix: ArrayLike, *, inverse: bool = False,
                   seed: Seed = None) -> CovarianceMatrix:
        """Create a matrix from a dense symmetric array of covariance elements,
        or of inverse covariance elements if `inverse` is True."""
        A = _ensure_square_matrix(matrix, copy=False)
        if A.shape[0] == 0:
            raise InvalidSize("CovarianceMatrix.from_dense: matrix is empty.")
        if not np.array_equal(A, A.T):
            raise ValueError("CovarianceMatrix.from_dense: matrix is not symmetric.")
        out = cls(A.shape[0], seed=seed)
        if inverse:
            out._icov = dense_to_packed(A)
        else:
            out._cov = dense_to_packed(A)
        out._inverse_authoritative = inverse
        return out

    # ---- Size and state queries (never decompress) ----

    @property
    def size(self) -> int:
        return self._size

    @property
    def is_compressed(self) -> bool:
        return self._compressed

    @property
    def cache_state(self) -> CacheState:
        """Cached representations, or those that decompression will restore."""
        if self._compressed:
            return self._encoding.restore
        if self._cov is not None and self._icov is not None:
            return CacheState.BOTH
        if self._cov is not None:
            return CacheState.COVARIANCE
        if self._icov is not None:
            return CacheState.INVERSE
        return CacheState.EMPTY

    def memory_usage(self) -> int:
        """Bytes used by this object and all of its allocated arrays."""
        usage = sys.getsizeof(self)
        for arr in self._allocated():
            if arr is not None:
                usage += arr.nbytes
        return usage

    def memory_state(self) -> str:
        """Describe the internal allocation state as "[MICDZV] nnnn".

        Each letter is replaced by "-" when its array is not allocated:
        M = covariance, I = inverse covariance, C = Cholesky factor,
        D = encoded diagonal, Z = encoded off-diagonal indices,
        V = encoded off-diagonal values. The number is `memory_usage()`.

            [---...] nothing set yet
            [M--...] covariance changed most recently
            [-I-...] inverse covariance changed most recently
            [MI-...] both in memory and synchronized
            [M-C...] covariance and its Cholesky factor
            [...D--] diagonal matrix encoding
            [...DZV] non-diagonal matrix encoding
        """
        tags = "".join(
            symbol if arr is not None else "-"
            for symbol, arr in zip("MICDZV", self._allocated())
        )
        return f"[{tags}] {self.memory_usage()}"

    def _allocated(self) -> tuple[Array | None, ...]:
        encoded = self._encoding.arrays() if self._encoding is not None else (None, None, None)
        return (self._cov, self._icov, self._cholesky) + encoded

    # ---- Element access ----

    def get_covariance(self, row: int, col: int) -> float:
        """Return covariance element (row, col); (col, row) gives the same value."""
        index = symmetric_matrix_index(row, col, self._size)
        if not self._reads_covariance():
            return 0.0
        return float(self._cov[index])

    def get_inverse_covariance(self, row: int, col: int) -> float:
        """Return inverse covariance element (row, col)."""
        index = symmetric_matrix_index(row, col, self._size)
        if not self._reads_inverse():
            return 0.0
        return float(self._icov[index])

    def set_covariance(self, row: int, col: int, value: float) -> None:
        """Set covariance element (row, col) and its symmetric partner.

        Invalidates the inverse covariance and the Cholesky factor.
        """
        index = symmetric_matrix_index(row, col, self._size)
        value = _ensure_real_scalar(value)
        self._changes_covariance()
        self._cov[index] = value

    def set_inverse_covariance(self, row: int, col: int, value: float) -> None:
        """Set inverse covariance element (row, col) and its symmetric partner.

        Invalidates the covariance and the Cholesky factor.
        """
        index = symmetric_matrix_index(row, col, self._size)
        value = _ensure_real_scalar(value)
        self._changes_inverse()
        self._icov[index] = value

    def to_dense(self) -> Array:
        """Return a dense (size, size) copy of the covariance."""
        if not self._reads_covariance():
            return np.zeros((self._size, self._size))
        return packed_to_dense(self._cov, self._size)

    def to_dense_inverse(self) -> Array:
        """Return a dense (size, size) copy of the inverse covariance."""
        if not self._reads_inverse():
            return np.zeros((self._size, self._size))
        return packed_to_dense(self._icov, self._size)

    # ---- Algebra ----

    def multiply_by_inverse_covariance(self, vector: ArrayLike) -> ArrayLike:
        """Overwrite `vector` with C^{-1} @ vector and return it.

        `vector` must be a writable floating-point numpy array or a list, of
        length `size`.

        Raises:
            TypeError if `vector` cannot hold the result in place.
            SizeMismatch if len(vector) != size.
            NotPositiveDefinite if the inverse covariance cannot be computed.
        """
        if isinstance(vector, np.ndarray):
            if not np.issubdtype(vector.dtype, np.floating):
                raise TypeError(
                    f"multiply_by_inverse_covariance: vector must have a floating dtype, got {vector.dtype}."
                )
            if not vector.flags.writeable:
                raise TypeError("multiply_by_inverse_covariance: vector is read-only.")
        elif not isinstance(vector, MutableSequence):
            raise TypeError(
                f"multiply_by_inverse_covariance: cannot update a {type(vector).__name__} in place; "
                f"pass a float numpy array or a list."
            )
        if np.ndim(vector) != 1:
            raise ValueError(f"multiply_by_inverse_covariance: expected a 1-D vector, got ndim={np.ndim(vector)}.")
        values = _ensure_vector(vector, copy=False)
        if values.size != self._size:
            raise SizeMismatch(
                f"multiply_by_inverse_covariance: vector has length {values.size}, matrix has size {self._size}."
            )
        if not self._reads_inverse():
            raise NotPositiveDefinite("multiply_by_inverse_covariance: no matrix elements have been set.")
        vector[:] = symmetric_matrix_multiply(self._icov, values, self._size)
        return vector

    def chi_square(self, delta: ArrayLike) -> float:
        """Return the quadratic form delta . C^{-1} . delta.

        Raises:
            SizeMismatch if len(delta) != size.
        """
        d = _ensure_vector(delta)
        if d.size != self._size:
            raise SizeMismatch(
                f"chi_square: residuals vector has length {d.size}, matrix has size {self._size}."
            )
        return float(np.dot(d, self.multiply_by_inverse_covariance(d.copy())))

    def sample(self, nsample: int = 1) -> Array:
        """Draw residual vectors from the zero-mean Gaussian with this covariance.

        Returns:
            Array of shape (nsample, size), i.e. nsample*size values.

        Raises:
            InvalidSize if nsample <= 0.
            NotPositiveDefinite if the covariance has no Cholesky decomposition.
        """
        nsample = _ensure_index(nsample)
        if nsample <= 0:
            raise InvalidSize(f"sample: invalid number of samples {nsample}.")
        if not self._reads_covariance():
            raise NotPositiveDefinite("sample: no matrix elements have been set.")
        L = packed_lower_to_dense(self._cholesky_factor(), self._size)
        seq = np.random.SeedSequence(self._entropy, spawn_key=(self._next_seed,))
        logger.debug("Sampling %d residual vectors with seed counter %d.", nsample, self._next_seed)
        self._next_seed += 1
        z = np.random.default_rng(seq).standard_normal((nsample, self._size))
        return z @ L.T

    # ---- Compression ----

    def compress(self) -> bool:
        """Replace the packed arrays with a sparse encoding, if that is no larger.

        Returns True if the matrix was compressed by this call; False if it was
        already compressed, has no elements set, or is too dense to benefit.
        """
        if self._compressed:
            return False
        state = self.cache_state
        if state is CacheState.EMPTY:
            return False
        if self._encoding is None:
            values = self._icov if self._inverse_authoritative else self._cov
            encoding = _SparseEncoding.encode(values, self._size,
                                              inverse=self._inverse_authoritative,
                                              restore=state)
            if encoding is None:
                logger.debug("Matrix of size %d is too dense to compress.", self._size)
                return False
            self._encoding = encoding
        elif self._encoding.restore is not state:
            self._encoding = replace(self._encoding, restore=state)
        self._cov = None
        self._icov = None
        self._cholesky = None
        self._compressed = True
        logger.debug("Compressed matrix of size %d: %s", self._size, self.memory_state())
        return True

    def _uncompress(self) -> None:
        if not self._compressed:
            return
        encoding = self._encoding
        values = encoding.decode(self._size)
        if encoding.inverse:
            self._icov = values
        else:
            self._cov = values
        self._compressed = False
        logger.debug("Uncompressed matrix of size %d, restoring %s.", self._size, encoding.restore.name)
        if encoding.restore is CacheState.BOTH:
            if encoding.inverse:
                self._reads_covariance()
            else:
                self._reads_inverse()

    # ---- Cache synchronization ----

    def _inverse_of(self, packed: Array) -> Array:
        """Return the packed inverse of `packed`, leaving it untouched."""
        scratch = packed.copy()
        cholesky_decompose(scratch, self._size)
        invert_cholesky(scratch, self._size)
        return scratch

    def _cholesky_factor(self) -> Array:
        """Return the cached Cholesky factor of the covariance, computing it if needed."""
        if self._cholesky is None:
            scratch = self._cov.copy()
            cholesky_decompose(scratch, self._size)
            self._cholesky = scratch
        return self._cholesky

    def _reads_covariance(self) -> bool:
        """Prepare to read the covariance. Returns False if nothing has been set."""
        self._uncompress()
        if self._cov is None:
            if self._icov is None:
                return False
            logger.debug("Deriving covariance from inverse covariance (size %d).", self._size)
            self._cov = self._inverse_of(self._icov)
        return True

    def _reads_inverse(self) -> bool:
        """Prepare to read the inverse covariance. Returns False if nothing has been set."""
        self._uncompress()
        if self._icov is None:
            if self._cov is None:
                return False
            logger.debug("Deriving inverse covariance from covariance (size %d).", self._size)
            icov = self._cholesky_factor().copy()
            invert_cholesky(icov, self._size)
            self._icov = icov
        return True

    def _changes_covariance(self) -> None:
        self._uncompress()
        if self._cov is None:
            if self._icov is None:
                self._cov = np.zeros(self._ncov, dtype=np.float64)
            else:
                self._cov = self._inverse_of(self._icov)
        self._icov = None
        self._cholesky = None
        self._encoding = None
        self._inverse_authoritative = False

    def _changes_inverse(self) -> None:
        self._uncompress()
        if self._icov is None:
            if self._cov is None:
                self._icov = np.zeros(self._ncov, dtype=np.float64)
            else:
                self._icov = self._inverse_of(self._cov)
        self._cov = None
        self._cholesky = None
        self._encoding = None
        self._inverse_authoritative = True

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(size={self._size}, "
                f"state={self.cache_state.name}, compressed={self._compressed})")
