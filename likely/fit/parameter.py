# fit/parameter.py
"""
Fit parameters and the script language used to configure them.

A configuration script is a sequence of statements separated by ";":

    fix [pattern]              hold matching parameters at their current value
    fix [pattern] = 1.5        set the value, then fix
    release [pattern]          let matching parameters float again
    value [pattern] = -2       set the (default) value
    error [pattern] = 0.1      set the error, must be >= 0

Patterns match parameter names exactly, except that "*" matches any
sequence of characters. Every pattern must match at least one parameter.
A script is validated completely before any parameter is modified, so a
bad script leaves the parameters unchanged.
"""
from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import Callable, TextIO

from ..exceptions import ConfigurationError
from ..array_backend.utils import _ensure_real_scalar

__all__ = [
    "FitParameter",
    "FitParameters",
    "modify_fit_parameters",
    "format_fit_parameters",
    "print_fit_parameters",
]

_FORBIDDEN_NAME_CHARS = frozenset(",;[]=")

_STATEMENT = re.compile(
    r"^\s*(?P<keyword>[A-Za-z]+)\s*\[(?P<pattern>[^\[\]]+)\]\s*(?:=\s*(?P<value>\S+))?\s*$"
)


class FitParameter:
    """A named parameter with a default value and an error (step size).

    A parameter floats in a fit when it has not been fixed and its error is
    positive.
    """

    def __init__(self, name: str, value: float, error: float = 0.0) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError(f"FitParameter: invalid name {name!r}.")
        bad = _FORBIDDEN_NAME_CHARS.intersection(name)
        if bad:
            raise ConfigurationError(
                f"FitParameter: name {name!r} contains forbidden characters {''.join(sorted(bad))!r}."
            )
        self._name = name.strip()
        self._value = 0.0
        self._error = 0.0
        self._fixed = False
        self.set_value(value)
        self.set_error(error)

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> float:
        return self._value

    @property
    def error(self) -> float:
        return self._error

    @property
    def fixed(self) -> bool:
        return self._fixed

    def is_floating(self) -> bool:
        return not self._fixed and self._error > 0

    def set_value(self, value: float) -> None:
        self._value = _ensure_real_scalar(value)

    def set_error(self, error: float) -> None:
        error = _ensure_real_scalar(error)
        if error < 0:
            raise ConfigurationError(f"FitParameter: invalid error {error} < 0 for {self._name!r}.")
        self._error = error

    def fix(self, value: float | None = None) -> None:
        if value is not None:
            self.set_value(value)
        self._fixed = True

    def release(self) -> None:
        self._fixed = False

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}({self._name!r}, value={self._value}, "
                f"error={self._error}, fixed={self._fixed})")


FitParameters = list[FitParameter]


@dataclass(frozen=True)
class _Action:
    keyword: str
    targets: tuple[int, ...]
    value: float | None

    def apply(self, params: FitParameters) -> None:
        for index in self.targets:
            _KEYWORDS[self.keyword][1](params[index], self.value)


# keyword -> (value requirement: "none" | "optional" | "required", apply function)
_KEYWORDS: dict[str, tuple[str, Callable[[FitParameter, float | None], None]]] = {
    "fix": ("optional", lambda p, v: p.fix(v)),
    "release": ("none", lambda p, v: p.release()),
    "value": ("required", lambda p, v: p.set_value(v)),
    "error": ("required", lambda p, v: p.set_error(v)),
}


def _pattern_regex(pattern: str) -> re.Pattern:
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


def _parse_statement(statement: str, params: FitParameters) -> _Action:
    match = _STATEMENT.match(statement)
    if match is None:
        raise ConfigurationError(f"Badly formed fit parameter statement {statement.strip()!r}.")
    keyword = match.group("keyword").lower()
    if keyword not in _KEYWORDS:
        raise ConfigurationError(f"Unknown fit parameter keyword {match.group('keyword')!r}.")
    requirement = _KEYWORDS[keyword][0]

    raw_value = match.group("value")
    if raw_value is None and requirement == "required":
        raise ConfigurationError(f"Statement {statement.strip()!r} requires a value.")
    if raw_value is not None and requirement == "none":
        raise ConfigurationError(f"Statement {statement.strip()!r} does not take a value.")
    value = None
    if raw_value is not None:
        try:
            value = float(raw_value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid number {raw_value!r} in {statement.strip()!r}.") from e
    if keyword == "error" and value < 0:
        raise ConfigurationError(f"Invalid error {value} < 0 in {statement.strip()!r}.")

    pattern = match.group("pattern").strip()
    regex = _pattern_regex(pattern)
    targets = tuple(i for i, p in enumerate(params) if regex.match(p.name))
    if not targets:
        raise ConfigurationError(f"Pattern [{pattern}] does not match any parameter name.")
    return _Action(keyword, targets, value)


def modify_fit_parameters(params: FitParameters, script: str) -> None:
    """Apply a configuration script to a list of fit parameters, in place.

    Raises:
        ConfigurationError for a malformed script, an unknown keyword, a
        pattern that matches nothing or a negative error. No parameter is
        modified when an error is raised.
    """
    actions = [
        _parse_statement(statement, params)
        for statement in script.split(";")
        if statement.strip()
    ]
    for action in actions:
        action.apply(params)


def format_fit_parameters(params: FitParameters, format_spec: str = "%12.6f") -> str:
    """Return a multi-line table of parameter names, values and errors."""
    width = max((len(p.name) for p in params), default=4)
    lines = []
    for p in params:
        status = "fixed" if p.fixed else ("floating" if p.is_floating() else "")
        lines.append(
            f"{p.name:<{width}} {format_spec % p.value} +/- {format_spec % p.error} {status}".rstrip()
        )
    return "\n".join(lines)


def print_fit_parameters(params: FitParameters, file: TextIO | None = None,
                         format_spec: str = "%12.6f") -> None:
    print(format_fit_parameters(params, format_spec), file=file if file is not None else sys.stdout)
