"""Tests for the closed-form loading update."""

import numpy as np
import pytest

from pylmmen.elasticnet import LMMENDesign, init_beta
from pylmmen.elasticnet._blocks import loading_indices, random_design_factor
from pylmmen.elasticnet._correlation import (
    eigen_pinv,
    loading_normal_equations,
    update_loadings,
)
from pylmmen.elasticnet._variance import posterior_moments


def _moments(design, lam):
    residual = design.y - design.X @ init_beta(design)
    C = random_design_factor(design.Z_bd, lam, np.eye(design.q), design.n_subjects)
    _, b_hat, G_hat = posterior_moments(C, residual)
    return b_hat, G_hat, residual


class TestEigenPinv:

    def test_matches_inverse_when_definite(self, rng):
        A = rng.standard_normal((4, 4))
        S = A @ A.T + np.eye(4)
        np.testing.assert_allclose(eigen_pinv(S), np.linalg.inv(S), rtol=1e-4, atol=1e-5)

    def test_zero_eigenvalues_dropped(self):
        np.testing.assert_allclose(
            eigen_pinv(np.diag([2.0, 0.0, 4.0])), np.diag([0.5, 0.0, 0.25])
        )

    def test_negative_eigenvalues_dropped(self):
        np.testing.assert_allclose(
            eigen_pinv(np.diag([4.0, -3.0])), np.diag([0.25, 0.0])
        )

    def test_tiny_eigenvalues_rounded_away(self):
        np.testing.assert_allclose(
            eigen_pinv(np.diag([1.0, 1e-7])), np.diag([1.0, 0.0])
        )


class TestLoadingNormalEquations:

    def test_shapes_and_symmetry(self, small_design):
        d = small_design
        lam = np.array([1.0, 0.8, 0.5])
        b_hat, G_hat, _ = _moments(d, lam)
        AtA, T, E_A = loading_normal_equations(d, lam, b_hat, G_hat)

        assert AtA.shape == (3, 3)
        assert T.shape == (3,)
        assert E_A.shape == (d.n_obs, 3)
        np.testing.assert_allclose(AtA, AtA.T)

    def test_expected_column_matches_definition(self, small_design):
        """E[A_l] = Z[:, i_l] λ_{i_l} b̂_{j_l} on each subject's rows."""
        d = small_design
        lam = np.array([1.0, 0.8, 0.5])
        b_hat, G_hat, _ = _moments(d, lam)
        _, _, E_A = loading_normal_equations(d, lam, b_hat, G_hat)

        rows, cols = loading_indices(d.q)
        for i, sl in enumerate(d.slices):
            b_i = b_hat[d.q * i:d.q * (i + 1)]
            for l, (r, c) in enumerate(zip(rows, cols)):
                np.testing.assert_allclose(E_A[sl, l], d.Z[sl, r] * lam[r] * b_i[c])


class TestUpdateLoadings:

    def test_zero_scale_zeroes_row_and_column(self, small_design):
        d = small_design
        lam = np.array([1.0, 0.0, 0.7])
        b_hat, G_hat, residual = _moments(d, lam)
        gamma = update_loadings(d, lam, b_hat, G_hat, residual)

        rows, cols = loading_indices(d.q)
        touches = (rows == 1) | (cols == 1)
        np.testing.assert_array_equal(gamma[touches], 0.0)
        assert np.all(np.isfinite(gamma))

    def test_rounded(self, small_design):
        d = small_design
        lam = np.array([1.0, 0.8, 0.5])
        b_hat, G_hat, residual = _moments(d, lam)
        gamma = update_loadings(d, lam, b_hat, G_hat, residual)
        np.testing.assert_array_equal(gamma, np.round(gamma, 6))

    def test_random_intercept_only(self, small_data):
        d = LMMENDesign.from_dataframe(small_data.drop(columns=['Z1', 'Z2']))
        lam = np.ones(1)
        b_hat, G_hat, residual = _moments(d, lam)
        gamma = update_loadings(d, lam, b_hat, G_hat, residual)
        assert gamma.shape == (0,)
