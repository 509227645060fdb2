from .packed import (
    symmetric_matrix_index,
    packed_size,
    symmetric_matrix_size,
    packed_to_dense,
    packed_lower_to_dense,
    dense_to_packed,
)
from .kernels import cholesky_decompose, invert_cholesky, symmetric_matrix_multiply
from .covariance import CacheState, CovarianceMatrix

__all__ = [
    "symmetric_matrix_index",
    "packed_size",
    "symmetric_matrix_size",
    "packed_to_dense",
    "packed_lower_to_dense",
    "dense_to_packed",
    "cholesky_decompose",
    "invert_cholesky",
    "symmetric_matrix_multiply",
    "CacheState",
    "CovarianceMatrix",
]
