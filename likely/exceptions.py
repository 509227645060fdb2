# exceptions.py
from __future__ import annotations

import numpy as np


class LikelyError(Exception):
    """Base exception for likely."""


class InvalidSize(LikelyError, ValueError):
    """Non-positive matrix size, or a packed length that is not triangular."""


class InvalidIndex(LikelyError, IndexError):
    """Row, column or bin index outside its valid range."""


class SizeMismatch(LikelyError, ValueError):
    """Input vector length does not match the matrix size."""


class NotPositiveDefinite(LikelyError, np.linalg.LinAlgError):
    """Cholesky decomposition met a non-positive pivot."""


class InvalidEncoding(LikelyError, RuntimeError):
    """Compressed covariance encoding is inconsistent with the matrix size."""


class ConfigurationError(LikelyError, ValueError):
    """Invalid fit parameter definition or configuration script."""


class UnknownParameter(LikelyError, LookupError):
    """Parameter name or index is not defined."""


class BinningError(LikelyError, ValueError):
    """Invalid binning definition or value outside the binned range."""
