"""
Tests for the quadratic-program and log-density capabilities.
"""

import numpy as np
import pytest
from scipy import stats

from pylmmen.core.compute.density import gaussian_log_density
from pylmmen.core.compute.qp import QPSolution, polish_active_set, solve_qp
from pylmmen.core.exceptions import DimensionError, NumericalError, QPInfeasibleError
from pylmmen.core.protocols import LogDensity, QPSolver


# ═══════════════════════════════════════════════════════════════════════
# solve_qp
# ═══════════════════════════════════════════════════════════════════════


class TestSolveQP:

    def test_nonnegative_projection(self):
        """min ½‖x‖² − aᵀx s.t. x ≥ 0 has solution max(a, 0)."""
        a = np.array([1.5, -2.0, 0.5])
        sol = solve_qp(np.eye(3), a, np.eye(3), np.zeros(3))

        assert isinstance(sol, QPSolution)
        np.testing.assert_allclose(sol.solution, [1.5, 0.0, 0.5], atol=1e-6)
        np.testing.assert_allclose(sol.unconstrained_solution, a)
        assert sol.status in ('optimal', 'optimal_inaccurate')

    def test_active_bounds_are_exact_zeros(self):
        """Coordinates held by an active x_j ≥ 0 come back as exactly 0."""
        a = np.array([1.5, -2.0, 0.5])
        sol = solve_qp(np.eye(3), a, np.eye(3), np.zeros(3))

        assert sol.polished
        assert sol.solution[1] == 0.0
        np.testing.assert_array_equal(sol.active, [1])
        np.testing.assert_allclose(sol.solution, [1.5, 0.0, 0.5], atol=1e-12)
        np.testing.assert_allclose(sol.lagrangian, [0.0, 2.0, 0.0], atol=1e-12)

    def test_budget_zeroes_weak_coordinates(self):
        """Under Σx ≤ 1, only the largest coordinate survives: x̂ = (1, 0, 0)."""
        a = np.array([3.0, 1.0, -1.0])
        C = np.column_stack([np.eye(3), [-1.0, -1.0, -1.0]])
        b = np.array([0.0, 0.0, 0.0, -1.0])
        sol = solve_qp(np.eye(3), a, C, b)

        assert sol.polished
        assert sol.solution[1] == 0.0
        assert sol.solution[2] == 0.0
        np.testing.assert_allclose(sol.solution[0], 1.0, atol=1e-12)
        np.testing.assert_allclose(sol.lagrangian[3], 2.0, atol=1e-10)

    def test_scaled_program_exact_zero(self):
        G = np.array([[2.0, 0.5], [0.5, 1.0]]) * 1e-9
        a = np.array([1.0, -1.0]) * 1e-9
        sol = solve_qp(G, a, np.eye(2), np.zeros(2))

        assert sol.solution[1] == 0.0
        np.testing.assert_allclose(sol.solution[0], 0.5, atol=1e-12)

    def test_value_on_unscaled_objective(self):
        G = 50.0 * np.eye(2)
        a = np.array([100.0, 50.0])
        sol = solve_qp(G, a, np.eye(2), np.zeros(2))

        np.testing.assert_allclose(sol.solution, [2.0, 1.0], atol=1e-6)
        np.testing.assert_allclose(sol.value, -125.0, rtol=1e-6)

    def test_budget_constraint_active(self):
        """A binding budget Σx ≤ 1 carries the multiplier a − x̂ = 1.5."""
        a = np.array([2.0, 2.0])
        C = np.column_stack([np.eye(2), [-1.0, -1.0]])
        b = np.array([0.0, 0.0, -1.0])
        sol = solve_qp(np.eye(2), a, C, b)

        np.testing.assert_allclose(sol.solution, [0.5, 0.5], atol=1e-6)
        np.testing.assert_allclose(sol.lagrangian[2], 1.5, atol=1e-5)
        np.testing.assert_allclose(sol.lagrangian[:2], 0.0, atol=1e-5)

    def test_tiny_scale_problem(self):
        """Objectives scaled by 1e-9 give the same minimiser."""
        G = np.array([[2.0, 0.5], [0.5, 1.0]])
        a = np.array([1.0, -1.0])
        ref = solve_qp(G, a, np.eye(2), np.zeros(2))
        scaled = solve_qp(G * 1e-9, a * 1e-9, np.eye(2), np.zeros(2))
        np.testing.assert_allclose(scaled.solution, ref.solution, atol=1e-6)

    def test_infeasible(self):
        # x ≥ 1 and −x ≥ 0
        C = np.array([[1.0, -1.0]])
        b = np.array([1.0, 0.0])
        with pytest.raises(QPInfeasibleError) as exc_info:
            solve_qp(np.eye(1), np.zeros(1), C, b)
        assert exc_info.value.status is not None

    def test_quadratic_shape_mismatch(self):
        with pytest.raises(DimensionError, match="quadratic"):
            solve_qp(np.eye(2), np.zeros(3), np.eye(3), np.zeros(3))

    def test_constraint_shape_mismatch(self):
        with pytest.raises(DimensionError, match="constraints"):
            solve_qp(np.eye(2), np.zeros(2), np.eye(2), np.zeros(3))

    def test_satisfies_protocol(self):
        assert isinstance(solve_qp, QPSolver)


class TestPolishActiveSet:

    def test_exact_kkt_point(self):
        a = np.array([1.5, -2.0, 0.5])
        x, multipliers = polish_active_set(np.eye(3), a, np.eye(3), np.zeros(3), np.array([1]))

        np.testing.assert_array_equal(x, [1.5, 0.0, 0.5])
        np.testing.assert_array_equal(multipliers, [0.0, 2.0, 0.0])

    def test_wrong_active_set_rejected(self):
        """Holding a coordinate that wants to be positive gives a negative multiplier."""
        assert polish_active_set(
            np.eye(1), np.ones(1), np.eye(1), np.zeros(1), np.array([0])
        ) is None

    def test_missing_active_constraint_rejected(self):
        """Dropping a binding bound leaves an infeasible point."""
        assert polish_active_set(
            np.eye(1), -np.ones(1), np.eye(1), np.zeros(1), np.array([], dtype=int)
        ) is None

    def test_all_coordinates_fixed(self):
        x, multipliers = polish_active_set(
            np.eye(2), -np.ones(2), np.eye(2), np.zeros(2), np.array([0, 1])
        )
        np.testing.assert_array_equal(x, 0.0)
        np.testing.assert_array_equal(multipliers, [1.0, 1.0])


# ═══════════════════════════════════════════════════════════════════════
# gaussian_log_density
# ═══════════════════════════════════════════════════════════════════════


class TestGaussianLogDensity:

    def test_standard_normal(self):
        x = np.array([0.5, -1.0, 2.0])
        expected = -0.5 * (3 * np.log(2 * np.pi) + x @ x)
        np.testing.assert_allclose(
            gaussian_log_density(x, np.zeros(3), np.eye(3)), expected
        )

    def test_matches_scipy(self, rng):
        A = rng.standard_normal((4, 4))
        cov = A @ A.T + np.eye(4)
        x, mean = rng.standard_normal(4), rng.standard_normal(4)
        np.testing.assert_allclose(
            gaussian_log_density(x, mean, cov),
            stats.multivariate_normal.logpdf(x, mean=mean, cov=cov),
        )

    def test_indefinite_covariance(self):
        cov = np.array([[1.0, 0.0], [0.0, -1.0]])
        with pytest.raises(NumericalError, match="not positive definite"):
            gaussian_log_density(np.zeros(2), np.zeros(2), cov)

    def test_satisfies_protocol(self):
        assert isinstance(gaussian_log_density, LogDensity)
