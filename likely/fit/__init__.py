from .parameter import (
    FitParameter,
    FitParameters,
    modify_fit_parameters,
    format_fit_parameters,
    print_fit_parameters,
)
from .minimum import FunctionMinimum
from .model import FitModel

__all__ = [
    "FitParameter",
    "FitParameters",
    "modify_fit_parameters",
    "format_fit_parameters",
    "print_fit_parameters",
    "FunctionMinimum",
    "FitModel",
]
