# binning.py
"""
One-dimensional binning axes used to index binned data sets.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from .custom_types import Array, ArrayLike
from .exceptions import BinningError, InvalidIndex
from .array_backend.utils import (
    _ensure_index,
    _ensure_real_scalar,
    _ensure_vector
)

__all__ = [
    "AbsBinning",
    "UniformBinning",
    "NonUniformBinning",
]


class AbsBinning(ABC):
    """Abstract base class for a binning of one axis.

    Concrete subclasses provide `n_bins`, `find_bin`, `bin_low_edge` and
    `bin_width`; the high edge and center follow from those.
    """

    @property
    @abstractmethod
    def n_bins(self) -> int:
        """Return the number of bins along this axis."""
        ...

    @abstractmethod
    def find_bin(self, value: float) -> int:
        """Return the index of the bin containing value.

        Raises BinningError if value is outside the binned range.
        """
        ...

    @abstractmethod
    def bin_low_edge(self, index: int) -> float:
        ...

    @abstractmethod
    def bin_width(self, index: int) -> float:
        ...

    def bin_high_edge(self, index: int) -> float:
        return self.bin_low_edge(index) + self.bin_width(index)

    def bin_center(self, index: int) -> float:
        return self.bin_low_edge(index) + 0.5 * self.bin_width(index)

    def _check_index(self, index: int) -> int:
        index = _ensure_index(index)
        if not 0 <= index < self.n_bins:
            raise InvalidIndex(f"Bin index {index} is out of range [0,{self.n_bins - 1}].")
        return index

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(n_bins={self.n_bins})"


class UniformBinning(AbsBinning):
    """Equal-width bins covering [min_value, max_value)."""

    def __init__(self, min_value: float, max_value: float, n_bins: int) -> None:
        min_value = _ensure_real_scalar(min_value)
        max_value = _ensure_real_scalar(max_value)
        n_bins = _ensure_index(n_bins)
        if not max_value > min_value:
            raise BinningError(f"UniformBinning: invalid range [{min_value},{max_value}).")
        if n_bins <= 0:
            raise BinningError(f"UniformBinning: invalid number of bins {n_bins}.")
        self.min_value = min_value
        self.max_value = max_value
        self._n_bins = n_bins
        self._width = (max_value - min_value) / n_bins

    @property
    def n_bins(self) -> int:
        return self._n_bins

    def find_bin(self, value: float) -> int:
        value = _ensure_real_scalar(value)
        if not self.min_value <= value < self.max_value:
            raise BinningError(f"UniformBinning: value {value} is outside [{self.min_value},{self.max_value}).")
        # Guard against round-off pushing values just below max_value into bin n_bins.
        return min(int((value - self.min_value) / self._width), self._n_bins - 1)

    def bin_low_edge(self, index: int) -> float:
        index = self._check_index(index)
        return self.min_value + index * self._width

    def bin_width(self, index: int) -> float:
        self._check_index(index)
        return self._width


class NonUniformBinning(AbsBinning):
    """Contiguous bins defined by a strictly increasing sequence of edges."""

    def __init__(self, edges: ArrayLike) -> None:
        edges = _ensure_vector(edges)
        if edges.size < 2:
            raise BinningError("NonUniformBinning: need at least two bin edges.")
        if not np.all(np.diff(edges) > 0):
            raise BinningError("NonUniformBinning: bin edges must be strictly increasing.")
        self._edges = edges

    @property
    def n_bins(self) -> int:
        return self._edges.size - 1

    @property
    def edges(self) -> Array:
        return self._edges.copy()

    def find_bin(self, value: float) -> int:
        value = _ensure_real_scalar(value)
        if not self._edges[0] <= value < self._edges[-1]:
            raise BinningError(
                f"NonUniformBinning: value {value} is outside [{self._edges[0]},{self._edges[-1]})."
            )
        return int(np.searchsorted(self._edges, value, side="right")) - 1

    def bin_low_edge(self, index: int) -> float:
        index = self._check_index(index)
        return float(self._edges[index])

    def bin_width(self, index: int) -> float:
        index = self._check_index(index)
        return float(self._edges[index + 1] - self._edges[index])
