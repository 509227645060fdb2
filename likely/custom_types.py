# custom_types.py
"""
Type aliases shared across likely.

- Annotate function input with `ArrayLike`, output with `Array`.
- `PackedArray` marks a flat float64 array holding one triangle of a symmetric
  (or triangular) matrix in the layout of `likely.linalg.packed`.
"""
from __future__ import annotations
from typing import Sequence, TypeAlias

from numpy.typing import (
    NDArray as NumpyArray,
    ArrayLike as NumpyArrayLike
)

Array = NumpyArray
ArrayLike: TypeAlias = NumpyArrayLike
PackedArray: TypeAlias = NumpyArray

# Entropy for numpy.random.SeedSequence; None draws fresh entropy from the OS.
Seed: TypeAlias = int | Sequence[int] | None

# Fit parameters are addressed by name or by definition order.
ParameterKey: TypeAlias = str | int
