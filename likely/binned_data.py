# binned_data.py
"""
Data accumulated in the bins of a multi-dimensional grid, with an optional
covariance between bins.

Bins are addressed either by a tuple of per-axis bin indices or by a single
flat index. The flat index is a mixed-radix number whose least significant
digit belongs to the first axis supplied:

    index = i0 + n0*(i1 + n1*(i2 + ...))
"""
from __future__ import annotations

from typing import Sequence

import numpy as np

from .custom_types import Array, ArrayLike, Seed
from .exceptions import BinningError, InvalidIndex, SizeMismatch
from .binning import AbsBinning
from .linalg.covariance import CovarianceMatrix
from .array_backend.utils import (
    _ensure_index,
    _ensure_real_scalar,
    _ensure_vector
)

__all__ = ["BinnedData"]


class BinnedData:
    """Values stored on the bins of one or more binning axes.

    Args:
        *axes: one `AbsBinning` per dimension, in order of increasing
               significance of their flat-index digit.
        seed: forwarded to the `CovarianceMatrix` created on first use.
    """

    def __init__(self, *axes: AbsBinning, seed: Seed = None) -> None:
        if not axes:
            raise BinningError("BinnedData: no axes provided.")
        for axis in axes:
            if not isinstance(axis, AbsBinning):
                raise BinningError(f"BinnedData: axis {axis!r} is not an AbsBinning.")
        self._axes = tuple(axes)
        self._shape = tuple(axis.n_bins for axis in axes)
        self._n_bins_total = int(np.prod(self._shape))
        self._data = np.zeros(self._n_bins_total, dtype=np.float64)
        self._covariance: CovarianceMatrix | None = None
        self._seed = seed

    @property
    def axes(self) -> tuple[AbsBinning, ...]:
        return self._axes

    @property
    def n_dimensions(self) -> int:
        return len(self._axes)

    @property
    def n_bins_total(self) -> int:
        return self._n_bins_total

    # ---- Index arithmetic ----

    def _check_index(self, index: int) -> int:
        index = _ensure_index(index)
        if not 0 <= index < self._n_bins_total:
            raise InvalidIndex(f"BinnedData: bin index {index} is out of range [0,{self._n_bins_total - 1}].")
        return index

    def get_index(self, bin_indices: Sequence[int]) -> int:
        """Return the flat index for a sequence of per-axis bin indices."""
        bin_indices = [_ensure_index(i) for i in bin_indices]
        if len(bin_indices) != self.n_dimensions:
            raise SizeMismatch(
                f"BinnedData: expected {self.n_dimensions} bin indices, got {len(bin_indices)}."
            )
        index = 0
        for axis_index, n_bins in reversed(list(zip(bin_indices, self._shape))):
            if not 0 <= axis_index < n_bins:
                raise InvalidIndex(f"BinnedData: axis bin index {axis_index} is out of range [0,{n_bins - 1}].")
            index = index * n_bins + axis_index
        return index

    def get_bin_indices(self, index: int) -> tuple[int, ...]:
        """Return the per-axis bin indices of a flat index."""
        index = self._check_index(index)
        bin_indices = []
        for n_bins in self._shape:
            index, axis_index = divmod(index, n_bins)
            bin_indices.append(axis_index)
        return tuple(bin_indices)

    def find_index(self, values: Sequence[float]) -> int:
        """Return the flat index of the bin containing a point."""
        values = _ensure_vector(values)
        if values.size != self.n_dimensions:
            raise SizeMismatch(f"BinnedData: expected {self.n_dimensions} coordinates, got {values.size}.")
        return self.get_index([axis.find_bin(v) for axis, v in zip(self._axes, values)])

    def get_bin_centers(self, index: int) -> Array:
        bin_indices = self.get_bin_indices(index)
        return np.array([axis.bin_center(i) for axis, i in zip(self._axes, bin_indices)])

    def get_bin_widths(self, index: int) -> Array:
        bin_indices = self.get_bin_indices(index)
        return np.array([axis.bin_width(i) for axis, i in zip(self._axes, bin_indices)])

    # ---- Data ----

    @property
    def data(self) -> Array:
        return self._data.copy()

    def get_data(self, index: int) -> float:
        return float(self._data[self._check_index(index)])

    def set_data(self, index: int, value: float) -> None:
        self._data[self._check_index(index)] = _ensure_real_scalar(value)

    # ---- Covariance ----

    @property
    def has_covariance(self) -> bool:
        return self._covariance is not None

    @property
    def covariance(self) -> CovarianceMatrix | None:
        return self._covariance

    def _owned_covariance(self) -> CovarianceMatrix:
        if self._covariance is None:
            self._covariance = CovarianceMatrix(self._n_bins_total, seed=self._seed)
        return self._covariance

    def get_covariance(self, index1: int, index2: int) -> float:
        if self._covariance is None:
            raise ValueError("BinnedData: no covariance has been set.")
        return self._covariance.get_covariance(index1, index2)

    def get_inverse_covariance(self, index1: int, index2: int) -> float:
        if self._covariance is None:
            raise ValueError("BinnedData: no covariance has been set.")
        return self._covariance.get_inverse_covariance(index1, index2)

    def set_covariance(self, index1: int, index2: int, value: float) -> None:
        self._owned_covariance().set_covariance(index1, index2, value)

    def set_inverse_covariance(self, index1: int, index2: int, value: float) -> None:
        self._owned_covariance().set_inverse_covariance(index1, index2, value)

    def chi_square(self, prediction: ArrayLike) -> float:
        """Return the chi-square of the data relative to a prediction for every bin."""
        if self._covariance is None:
            raise ValueError("BinnedData: chi_square requires a covariance.")
        prediction = _ensure_vector(prediction)
        if prediction.size != self._n_bins_total:
            raise SizeMismatch(
                f"BinnedData: prediction has length {prediction.size}, expected {self._n_bins_total}."
            )
        return self._covariance.chi_square(self._data - prediction)

    def compress(self) -> bool:
        return self._covariance.compress() if self._covariance is not None else False

    @property
    def is_compressed(self) -> bool:
        return self._covariance is not None and self._covariance.is_compressed

    def memory_state(self) -> str:
        if self._covariance is None:
            return "[------] 0"
        return self._covariance.memory_state()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(shape={self._shape}, covariance={self._covariance!r})"
