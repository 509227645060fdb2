# fit/model.py
"""
Bookkeeping for models described by named fit parameters.

A FitModel keeps two views of each parameter:

- its configuration (default value, error, fixed/floating), held in a
  FitParameter and modified only by `define_parameter` and
  `configure_fit_parameters`;
- its current value, modified by `set_parameter_value` and
  `update_parameter_values`, with a "changed" flag that subclasses can use
  to skip recomputing quantities that depend on unchanged parameters.
"""
from __future__ import annotations

import copy
import logging
import sys
from typing import Any, Callable, TextIO

import numpy as np
from scipy.optimize import minimize

from ..custom_types import Array, ArrayLike, ParameterKey
from ..exceptions import ConfigurationError, SizeMismatch, UnknownParameter
from ..array_backend.utils import _ensure_real_scalar, _ensure_vector
from ..linalg.covariance import CovarianceMatrix
from .parameter import (
    FitParameter,
    FitParameters,
    modify_fit_parameters,
    format_fit_parameters
)
from .minimum import FunctionMinimum

__all__ = ["FitModel"]

logger = logging.getLogger(__name__)


class FitModel:
    """Base class for models with named fit parameters.

    Subclasses call `define_parameter` (typically from their constructor) and
    read current values with `get_parameter_value`.
    """

    def __init__(self, name: str) -> None:
        self._name = str(name)
        self._parameters: FitParameters = []
        self._values: list[float] = []
        self._changed: list[bool] = []
        self._name_index: dict[str, int] = {}

    @property
    def name(self) -> str:
        return self._name

    def get_n_parameters(self, only_floating: bool = False) -> int:
        if only_floating:
            return sum(1 for p in self._parameters if p.is_floating())
        return len(self._parameters)

    def get_fit_parameters(self) -> FitParameters:
        """Return copies of the parameter configurations, in definition order."""
        return [copy.copy(p) for p in self._parameters]

    # ---- Parameter definition and configuration ----

    def define_parameter(self, name: str, value: float, error: float = 0.0) -> None:
        """Define a new parameter; its current value starts as `value` and is flagged as changed."""
        parameter = FitParameter(name, value, error)
        if parameter.name in self._name_index:
            raise ConfigurationError(f"FitModel: parameter {parameter.name!r} is already defined.")
        self._name_index[parameter.name] = len(self._parameters)
        self._parameters.append(parameter)
        self._values.append(parameter.value)
        self._changed.append(True)

    def configure_fit_parameters(self, script: str) -> None:
        """Modify parameter defaults and errors using a configuration script.

        Current values are not changed. See `likely.fit.parameter` for the
        script syntax.
        """
        modify_fit_parameters(self._parameters, script)

    # ---- Current values and change tracking ----

    def _get_index(self, key: ParameterKey) -> int:
        if isinstance(key, str):
            try:
                return self._name_index[key]
            except KeyError:
                raise UnknownParameter(f"FitModel: no parameter named {key!r}.") from None
        if isinstance(key, (bool, np.bool_)) or not isinstance(key, (int, np.integer)):
            raise UnknownParameter(f"FitModel: invalid parameter key {key!r}.")
        if not 0 <= key < len(self._parameters):
            raise UnknownParameter(f"FitModel: parameter index {key} is out of range.")
        return int(key)

    def get_parameter_value(self, key: ParameterKey) -> float:
        return self._values[self._get_index(key)]

    def set_parameter_value(self, key: ParameterKey, value: float) -> None:
        self._set_parameter_value(self._get_index(key), _ensure_real_scalar(value))

    def _set_parameter_value(self, index: int, value: float) -> None:
        if value != self._values[index]:
            self._values[index] = value
            self._changed[index] = True

    def update_parameter_values(self, values: ArrayLike) -> bool:
        """Set all current values at once.

        Returns True if any parameter is flagged as changed afterwards,
        including changes made before this call and not yet reset.
        """
        values = _ensure_vector(values)
        if values.size != len(self._parameters):
            raise SizeMismatch(
                f"FitModel: got {values.size} parameter values, expected {len(self._parameters)}."
            )
        for index, value in enumerate(values):
            self._set_parameter_value(index, float(value))
        return any(self._changed)

    def is_parameter_value_changed(self, key: ParameterKey) -> bool:
        return self._changed[self._get_index(key)]

    def reset_parameter_values_changed(self) -> None:
        self._changed = [False] * len(self._changed)

    # ---- Minimization ----

    def find_minimum(self, fptr: Callable[[Array], float], method: str = "BFGS",
                     *, error_def: float = 0.5, **options: Any) -> FunctionMinimum:
        """Minimize `fptr` with respect to the floating parameters.

        `fptr` receives a vector with one value per parameter (in definition
        order). Floating parameters start from their configured defaults and
        fixed ones are held there; the model configuration and current values
        are not modified.

        Args:
            fptr: objective, e.g. -log(L) or a chi-square.
            method: any method accepted by `scipy.optimize.minimize`.
            error_def: objective change that defines a one-sigma error, 0.5
                       for -log(L) and 1 for a chi-square. The covariance of
                       the floating parameters is 2*error_def times the
                       inverse Hessian at the minimum.
            **options: forwarded to `scipy.optimize.minimize`.
        """
        floating = np.array([p.is_floating() for p in self._parameters], dtype=bool)
        if not floating.any():
            raise ConfigurationError(f"FitModel {self._name!r}: no floating parameters to minimize.")
        defaults = np.array([p.value for p in self._parameters], dtype=np.float64)
        errors0 = np.array([p.error for p in self._parameters], dtype=np.float64)

        def objective(x: Array) -> float:
            pvalues = defaults.copy()
            pvalues[floating] = x
            return float(fptr(pvalues))

        x0 = defaults[floating]
        if method.lower() == "nelder-mead":
            opts = dict(options.pop("options", None) or {})
            # Use the configured errors as the initial simplex steps.
            opts.setdefault("initial_simplex", np.vstack([x0, x0 + np.diag(errors0[floating])]))
            options["options"] = opts

        logger.info("Minimizing %s over %d floating parameters with %s.",
                    self._name, int(floating.sum()), method)
        result = minimize(objective, x0, method=method, **options)
        if not result.success:
            logger.warning("Minimization of %s did not converge: %s", self._name, result.message)

        values = defaults.copy()
        values[floating] = result.x
        covariance = self._covariance_from(result, 2.0 * error_def)
        errors = np.zeros_like(values)
        if covariance is not None:
            errors[floating] = np.sqrt(np.diag(covariance.to_dense()))
        logger.info("Minimum of %s is %g after %d evaluations.",
                    self._name, float(result.fun), int(getattr(result, "nfev", 0)))

        return FunctionMinimum(
            min_value=float(result.fun),
            names=tuple(p.name for p in self._parameters),
            values=values,
            errors=errors,
            floating=floating,
            covariance=covariance,
            success=bool(result.success),
            message=str(result.message),
            n_evaluations=int(getattr(result, "nfev", 0)),
        )

    def _covariance_from(self, result: Any, scale: float) -> CovarianceMatrix | None:
        hess_inv = getattr(result, "hess_inv", None)
        if hess_inv is None:
            return None
        if hasattr(hess_inv, "todense"):
            hess_inv = hess_inv.todense()
        H = scale * np.atleast_2d(np.asarray(hess_inv, dtype=np.float64))
        H = 0.5 * (H + H.T)
        if not np.all(np.diag(H) > 0):
            logger.warning("Inverse Hessian of %s has non-positive diagonal; no covariance.", self._name)
            return None
        return CovarianceMatrix.from_dense(H)

    # ---- Printing ----

    def format(self, format_spec: str = "%12.6f") -> str:
        header = f"{self._name} ({self.get_n_parameters()} parameters, {self.get_n_parameters(True)} floating)"
        table = format_fit_parameters(self._parameters, format_spec)
        return header + ("\n" + table if table else "")

    def print_to_stream(self, file: TextIO | None = None, format_spec: str = "%12.6f") -> None:
        print(self.format(format_spec), file=file if file is not None else sys.stdout)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name!r}, n_parameters={len(self._parameters)})"
