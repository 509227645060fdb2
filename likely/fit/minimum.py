# fit/minimum.py
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..custom_types import Array
from ..exceptions import UnknownParameter
from ..linalg.covariance import CovarianceMatrix

__all__ = ["FunctionMinimum"]


@dataclass
class FunctionMinimum:
    """Result of minimizing an objective over the parameters of a FitModel.

    `values` and `errors` cover every parameter of the model, in definition
    order; fixed parameters keep their configured value and have zero error.
    `covariance`, when available, is over the floating parameters only, in
    the order given by `np.flatnonzero(floating)`.
    """
    min_value: float
    names: tuple[str, ...]
    values: Array
    errors: Array
    floating: Array
    covariance: CovarianceMatrix | None
    success: bool
    message: str
    n_evaluations: int

    def _index(self, name: str) -> int:
        try:
            return self.names.index(name)
        except ValueError:
            raise UnknownParameter(f"FunctionMinimum: no parameter named {name!r}.") from None

    def get_value(self, name: str) -> float:
        return float(self.values[self._index(name)])

    def get_error(self, name: str) -> float:
        return float(self.errors[self._index(name)])

    @property
    def n_floating(self) -> int:
        return int(np.count_nonzero(self.floating))

    def format(self, format_spec: str = "%12.6f") -> str:
        width = max((len(name) for name in self.names), default=4)
        lines = [f"F(min) = {format_spec % self.min_value} after {self.n_evaluations} evaluations"
                 f"{'' if self.success else ' (not converged: ' + self.message + ')'}"]
        for name, value, error, floating in zip(self.names, self.values, self.errors, self.floating):
            suffix = f" +/- {format_spec % error}" if floating else " (fixed)"
            lines.append(f"{name:<{width}} {format_spec % value}{suffix}")
        return "\n".join(lines)
