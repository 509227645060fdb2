# tests/fit/test_model.py
import io

import numpy as np
import pytest
from numpy.testing import assert_allclose

from likely import (
    ConfigurationError,
    CovarianceMatrix,
    FitModel,
    FunctionMinimum,
    SizeMismatch,
    UnknownParameter
)


class LineModel(FitModel):
    def __init__(self):
        super().__init__("line")
        self.define_parameter("slope", 1.0, 0.1)
        self.define_parameter("offset", 0.0, 0.5)
        self.define_parameter("scale", 2.0)


@pytest.fixture
def model():
    return LineModel()


def test_definition(model):
    assert model.name == "line"
    assert model.get_n_parameters() == 3
    assert model.get_n_parameters(only_floating=True) == 2
    assert [p.name for p in model.get_fit_parameters()] == ["slope", "offset", "scale"]
    assert model.get_parameter_value("scale") == 2.0
    assert model.get_parameter_value(1) == 0.0
    assert repr(model) == "LineModel('line', n_parameters=3)"


def test_duplicate_parameter(model):
    with pytest.raises(ConfigurationError):
        model.define_parameter("slope", 0.0)


def test_unknown_parameter(model):
    with pytest.raises(UnknownParameter):
        model.get_parameter_value("intercept")
    with pytest.raises(UnknownParameter):
        model.set_parameter_value(3, 1.0)
    with pytest.raises(UnknownParameter):
        model.is_parameter_value_changed(True)
    # also catchable as a builtin LookupError
    with pytest.raises(LookupError):
        model.get_parameter_value(-1)


def test_change_tracking(model):
    assert all(model.is_parameter_value_changed(i) for i in range(3))
    model.reset_parameter_values_changed()
    assert not any(model.is_parameter_value_changed(i) for i in range(3))

    model.set_parameter_value("slope", 1.0)
    assert not model.is_parameter_value_changed("slope")
    model.set_parameter_value("slope", 1.5)
    assert model.is_parameter_value_changed("slope")
    assert model.get_parameter_value("slope") == 1.5

    model.reset_parameter_values_changed()
    assert not model.update_parameter_values([1.5, 0.0, 2.0])
    assert model.update_parameter_values([1.5, 0.25, 2.0])
    assert model.is_parameter_value_changed("offset")
    assert not model.is_parameter_value_changed("scale")

    with pytest.raises(SizeMismatch):
        model.update_parameter_values([1.0, 2.0])


def test_fit_parameters_are_copies(model):
    params = model.get_fit_parameters()
    params[0].fix(10.0)
    assert model.get_n_parameters(True) == 2
    assert model.get_fit_parameters()[0].value == 1.0


def test_configure_keeps_current_values(model):
    model.configure_fit_parameters("value [slope] = 4; fix [offset]; error [scale] = 1")
    params = model.get_fit_parameters()
    assert params[0].value == 4.0
    assert params[1].fixed
    assert params[2].is_floating()
    assert model.get_parameter_value("slope") == 1.0
    assert model.get_n_parameters(True) == 2


def test_find_minimum_one_parameter():
    model = FitModel("gauss")
    model.define_parameter("mu", 0.0, 1.0)
    fmin = model.find_minimum(lambda p: 0.5 * (p[0] - 3.0) ** 2)
    assert isinstance(fmin, FunctionMinimum)
    assert fmin.min_value == pytest.approx(0.0, abs=1e-8)
    assert fmin.get_value("mu") == pytest.approx(3.0, abs=1e-4)
    assert fmin.get_error("mu") == pytest.approx(1.0, rel=1e-3)
    assert isinstance(fmin.covariance, CovarianceMatrix)
    assert fmin.covariance.size == 1
    assert fmin.n_evaluations > 0


def test_find_minimum_chi_square_error_def():
    model = FitModel("chi2")
    model.define_parameter("mu", 0.0, 1.0)
    sigma = np.sqrt(2.0)
    fmin = model.find_minimum(lambda p: ((p[0] + 1.0) / sigma) ** 2, error_def=1.0)
    assert fmin.get_value("mu") == pytest.approx(-1.0, abs=1e-4)
    assert fmin.get_error("mu") == pytest.approx(sigma, rel=1e-3)


def test_find_minimum_holds_fixed_parameters(model):
    seen = []

    def fcn(p):
        seen.append(p.copy())
        return 0.5 * (p[0] - 2.0) ** 2 + 0.5 * (p[1] + 1.0) ** 2 + p[2]

    model.configure_fit_parameters("fix [offset] = 0.25")
    fmin = model.find_minimum(fcn)
    assert all(len(p) == 3 for p in seen)
    assert all(p[1] == 0.25 and p[2] == 2.0 for p in seen)
    assert fmin.n_floating == 1
    assert fmin.floating.tolist() == [True, False, False]
    assert fmin.get_value("slope") == pytest.approx(2.0, abs=1e-4)
    assert fmin.get_value("offset") == 0.25
    assert fmin.get_error("offset") == 0.0
    assert fmin.get_error("slope") == pytest.approx(1.0, rel=1e-3)
    # the model itself is not modified by a fit
    assert model.get_parameter_value("slope") == 1.0

    text = fmin.format("%.3f")
    assert "(fixed)" in text
    assert text.splitlines()[0].startswith("F(min) =")
    with pytest.raises(UnknownParameter):
        fmin.get_value("nope")


def test_find_minimum_two_parameters(model):
    def fcn(p):
        return 0.5 * (p[0] - 0.5) ** 2 + 0.5 * (p[1] - 1.5) ** 2

    fmin = model.find_minimum(fcn)
    assert_allclose(fmin.values, [0.5, 1.5, 2.0], atol=1e-4)
    assert fmin.covariance.size == 2
    assert_allclose(fmin.errors[:2], [1.0, 1.0], rtol=1e-3)


def test_find_minimum_nelder_mead(model):
    def fcn(p):
        return (p[0] - 0.5) ** 2 + 4.0 * (p[1] - 1.5) ** 2

    fmin = model.find_minimum(fcn, method="Nelder-Mead", options={"xatol": 1e-8, "fatol": 1e-12})
    assert_allclose(fmin.values[:2], [0.5, 1.5], atol=1e-4)
    # no inverse Hessian from a simplex search
    assert fmin.covariance is None
    assert_allclose(fmin.errors, 0.0)


def test_find_minimum_without_floating_parameters(model):
    model.configure_fit_parameters("fix [*]")
    with pytest.raises(ConfigurationError):
        model.find_minimum(lambda p: float(np.sum(p ** 2)))


def test_print(model):
    stream = io.StringIO()
    model.print_to_stream(stream)
    lines = stream.getvalue().splitlines()
    assert lines[0] == "line (3 parameters, 2 floating)"
    assert len(lines) == 4
