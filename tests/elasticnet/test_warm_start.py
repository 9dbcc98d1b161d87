"""Tests for warm starts and the simulated example data."""

import numpy as np
import pytest

from pylmmen.core.exceptions import ConfigurationError
from pylmmen.elasticnet import LMMENDesign, init_beta, initialize_example


class TestInitBeta:

    def test_lm_is_least_squares(self, small_design):
        d = small_design
        expected, *_ = np.linalg.lstsq(d.X, d.y, rcond=None)
        np.testing.assert_allclose(init_beta(d, method='lm'), expected)

    def test_accepts_table(self, small_data, small_design):
        np.testing.assert_allclose(init_beta(small_data), init_beta(small_design))

    def test_ridge_closed_form(self, small_design):
        d = small_design
        expected = np.linalg.solve(d.X.T @ d.X + 2.0 * np.eye(d.p), d.X.T @ d.y)
        np.testing.assert_allclose(init_beta(d, method='ridge', alpha=2.0), expected)

    def test_ridge_shrinks(self, small_design):
        lm = init_beta(small_design, method='lm')
        ridge = init_beta(small_design, method='ridge', alpha=100.0)
        assert np.linalg.norm(ridge) < np.linalg.norm(lm)

    def test_unknown_method(self, small_design):
        with pytest.raises(ValueError, match="Unknown method"):
            init_beta(small_design, method='lasso')

    def test_ridge_alpha_positive(self, small_design):
        with pytest.raises(ConfigurationError, match="alpha"):
            init_beta(small_design, method='ridge', alpha=0.0)


class TestInitializeExample:

    def test_layout(self):
        df = initialize_example(n_i=5, n=30, q=4, seed=0)

        assert df.shape == (150, 1 + 8 + 4)
        assert list(df.columns) == (
            ['y'] + [f'X{j}' for j in range(1, 9)] + [f'Z{j}' for j in range(1, 5)]
        )
        assert df.index.name == 'subject'
        np.testing.assert_array_equal(df.index.value_counts().sort_index().to_numpy(), 5)
        assert df.index.is_monotonic_increasing

    def test_random_covariates_are_leading_fixed_covariates(self):
        df = initialize_example(n_i=3, n=5, q=2, seed=0)
        np.testing.assert_array_equal(df['Z1'], df['X1'])
        np.testing.assert_array_equal(df['Z2'], df['X2'])

    def test_seed_reproducible(self):
        a = initialize_example(seed=7)
        b = initialize_example(seed=7)
        np.testing.assert_array_equal(a.to_numpy(), b.to_numpy())

    def test_explicit_p(self):
        df = initialize_example(n_i=2, n=4, q=1, p=3, seed=0)
        assert [c for c in df.columns if c.startswith('X')] == ['X1', 'X2', 'X3']

    def test_no_random_covariates(self):
        df = initialize_example(n_i=3, n=4, q=0, p=2, seed=0)
        assert not any(c.startswith('Z') for c in df.columns)

    def test_valid_design(self):
        d = LMMENDesign.from_dataframe(initialize_example(seed=1))
        assert (d.n_obs, d.n_subjects, d.p, d.q) == (150, 30, 8, 5)

    @pytest.mark.parametrize("kwargs", [
        {'n_i': 0}, {'n': 1}, {'q': 4, 'p': 2}, {'q': -1},
    ])
    def test_invalid_sizes(self, kwargs):
        with pytest.raises(ValueError, match="Invalid example size"):
            initialize_example(**kwargs)
