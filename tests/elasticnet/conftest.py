"""
Shared fixtures for LMM elastic net tests.

Fits are expensive (one QP per inner iteration), so the reference fits are
module-scoped and shared by the tests that only read them.
"""

import pandas as pd
import pytest

from pylmmen.core.compute.qp import solve_qp
from pylmmen.elasticnet import LMMENDesign, init_beta, initialize_example, lmmen, lmmen_path


@pytest.fixture(scope='module')
def example_data():
    """30 subjects × 5 observations, 4 random covariates, p = 8."""
    return initialize_example(n_i=5, n=30, q=4, seed=1)


@pytest.fixture(scope='module')
def example_warm_start(example_data):
    return init_beta(example_data, method='lm')


@pytest.fixture(scope='module')
def example_fit(example_data, example_warm_start):
    """Reference fit with frac (0.8, 1, 1, 1)."""
    return lmmen(example_data, example_warm_start, frac=(0.8, 1, 1, 1))


@pytest.fixture(scope='module')
def small_data():
    """10 subjects × 4 observations, 2 random covariates, p = 4."""
    return initialize_example(n_i=4, n=10, q=2, p=4, seed=3)


@pytest.fixture(scope='module')
def small_design(small_data):
    return LMMENDesign.from_dataframe(small_data)


@pytest.fixture
def tiny_frame():
    """Hand-written table: 3 subjects of sizes 2, 3, 2."""
    index = pd.Index([1, 1, 2, 2, 2, 3, 3], name='subject')
    return pd.DataFrame({
        'y': [1.0, 2.0, 0.5, 1.5, 3.0, 2.5, 0.0],
        'X1': [0.1, 0.4, -0.3, 1.2, 0.8, -1.0, 0.3],
        'X2': [1.0, -0.5, 0.2, 0.0, 0.7, 0.9, -1.1],
        'Z1': [0.3, -0.2, 1.1, 0.4, -0.6, 0.2, 0.9],
    }, index=index)


class QPSpy:
    """QP capability that records every call before delegating to solve_qp."""

    def __init__(self):
        self.calls = []

    def __call__(self, quadratic, linear, constraints, bounds):
        solution = solve_qp(quadratic, linear, constraints, bounds)
        self.calls.append(solution)
        return solution


@pytest.fixture
def qp_spy():
    return QPSpy()


@pytest.fixture(scope='module')
def small_path(small_data):
    """Grid over a decreasing L1 fraction for β."""
    fracs = [(f, 1, 1, 1) for f in (1.0, 0.6, 0.3, 0.1, 0.02)]
    return lmmen_path(small_data, init_beta(small_data), fracs)
