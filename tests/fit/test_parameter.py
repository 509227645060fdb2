# tests/fit/test_parameter.py
import io
import types

import pytest

from likely import ConfigurationError, FitParameter, modify_fit_parameters
from likely.fit import FitParameters, format_fit_parameters, print_fit_parameters


@pytest.fixture
def params():
    return [
        FitParameter("param1", 1.0, 0.1),
        FitParameter("param2", 2.0, 0.2),
        FitParameter("param3", 3.0),
        FitParameter("(1-beta)*bias", 4.0, 0.4),
    ]


def _by_name(params):
    return {p.name: p for p in params}


def test_parameter_basics():
    p = FitParameter(" alpha ", 1.5, 0.25)
    assert p.name == "alpha"
    assert p.value == 1.5
    assert p.error == 0.25
    assert not p.fixed
    assert p.is_floating()

    p.fix()
    assert p.fixed and not p.is_floating()
    p.fix(2.0)
    assert p.value == 2.0
    p.release()
    assert p.is_floating()


def test_zero_error_does_not_float():
    assert not FitParameter("a", 1.0).is_floating()


@pytest.mark.parametrize("name", ["a,b", "x;y", "v[0]", "a=b", "", "   "])
def test_invalid_names(name):
    with pytest.raises(ConfigurationError):
        FitParameter(name, 0.0)


def test_negative_error():
    with pytest.raises(ConfigurationError):
        FitParameter("a", 0.0, -1.0)
    p = FitParameter("a", 0.0, 1.0)
    with pytest.raises(ConfigurationError):
        p.set_error(-0.5)
    assert p.error == 1.0
    # also catchable as a builtin ValueError
    with pytest.raises(ValueError):
        p.set_error(-0.5)


def test_fix_with_and_without_value(params):
    modify_fit_parameters(params, " fix [param2] = -2; fix [param1]")
    p = _by_name(params)
    assert p["param2"].fixed and p["param2"].value == -2.0
    assert p["param1"].fixed and p["param1"].value == 1.0
    assert not p["param3"].fixed


def test_release_with_wildcard(params):
    modify_fit_parameters(params, "fix [param*]")
    assert all(p.fixed for p in params[:3])
    modify_fit_parameters(params, "release [par*] ;")
    assert not any(p.fixed for p in params)


def test_value_and_error(params):
    modify_fit_parameters(params, "value[param3*]=-123; error[param1]=1e-2")
    p = _by_name(params)
    assert p["param3"].value == -123.0
    assert p["param1"].error == 0.01


def test_pattern_with_literal_star(params):
    modify_fit_parameters(params, "error [(1-beta)*bias] = 0.5")
    assert _by_name(params)["(1-beta)*bias"].error == 0.5


def test_keywords_are_case_insensitive(params):
    modify_fit_parameters(params, "FIX [param3]")
    assert _by_name(params)["param3"].fixed


def test_failed_script_changes_nothing(params):
    with pytest.raises(ConfigurationError):
        modify_fit_parameters(params, "value [param3]=0;error [param3] = -123")
    assert _by_name(params)["param3"].value == 3.0


@pytest.mark.parametrize("script", [
    "release [aram*]",          # no match
    "float [param1]",           # unknown keyword
    "value [param1]",           # missing value
    "release [param1] = 2",     # unexpected value
    "value [param1] = abc",     # not a number
    "value param1 = 2",         # no brackets
])
def test_bad_scripts(params, script):
    with pytest.raises(ConfigurationError):
        modify_fit_parameters(params, script)


def test_empty_script(params):
    modify_fit_parameters(params, " ; ;")
    assert [p.value for p in params] == [1.0, 2.0, 3.0, 4.0]


def test_format_and_print(params):
    params[0].fix()
    text = format_fit_parameters(params, "%.2f")
    lines = text.splitlines()
    assert len(lines) == 4
    assert lines[0].startswith("param1")
    assert lines[0].endswith("fixed")
    assert "1.00 +/- 0.10" in lines[0]
    assert lines[1].endswith("floating")
    assert lines[2].endswith("0.00")

    stream = io.StringIO()
    print_fit_parameters(params, file=stream, format_spec="%.2f")
    assert stream.getvalue() == text + "\n"


def test_fit_parameters_alias_is_builtin_list():
    assert isinstance(FitParameters, types.GenericAlias)
    assert FitParameters.__origin__ is list
    assert FitParameters.__args__ == (FitParameter,)
