# tests/conftest.py
import numpy as np
import pytest

from likely import CovarianceMatrix


@pytest.fixture
def rng():
    return np.random.default_rng(42)


def random_spd(rng, n):
    """Random, exactly symmetric, well conditioned positive definite matrix."""
    A = rng.normal(size=(n, n))
    M = A @ A.T + n * np.eye(n)
    return 0.5 * (M + M.T)


def tridiagonal(n, diag=2.0, offdiag=-0.5):
    """Exactly symmetric tridiagonal positive definite matrix."""
    M = diag * np.eye(n)
    i = np.arange(n - 1)
    M[i, i + 1] = offdiag
    M[i + 1, i] = offdiag
    return M


@pytest.fixture
def spd_factory(rng):
    def make(n):
        return random_spd(rng, n)
    return make


@pytest.fixture
def diagonal_cov():
    """2x2 diagonal covariance with variances 4 and 9."""
    cov = CovarianceMatrix(2)
    cov.set_covariance(0, 0, 4.0)
    cov.set_covariance(1, 1, 9.0)
    return cov


@pytest.fixture
def tridiagonal_factory():
    return tridiagonal
