"""
likely: covariance matrices and parameter bookkeeping for likelihood fits.
"""
import logging

from likely.exceptions import (
    LikelyError,
    InvalidSize,
    InvalidIndex,
    SizeMismatch,
    NotPositiveDefinite,
    InvalidEncoding,
    ConfigurationError,
    UnknownParameter,
    BinningError,
)
from likely.linalg.covariance import CacheState, CovarianceMatrix
from likely.binning import AbsBinning, UniformBinning, NonUniformBinning
from likely.binned_data import BinnedData
from likely.fit import (
    FitParameter,
    FitModel,
    FunctionMinimum,
    modify_fit_parameters,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "LikelyError",
    "InvalidSize",
    "InvalidIndex",
    "SizeMismatch",
    "NotPositiveDefinite",
    "InvalidEncoding",
    "ConfigurationError",
    "UnknownParameter",
    "BinningError",
    "CacheState",
    "CovarianceMatrix",
    "AbsBinning",
    "UniformBinning",
    "NonUniformBinning",
    "BinnedData",
    "FitParameter",
    "FitModel",
    "FunctionMinimum",
    "modify_fit_parameters",
]
