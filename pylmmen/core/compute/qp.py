"""
Quadratic-program capability.

Solves the dense convex quadratic program

    minimize    ½ xᵀGx − aᵀx
    subject to  Cᵀx ≥ b

using the (G, a, C, b) convention of Goldfarb-Idnani style solvers. The
problem is handed to cvxpy (CLARABEL interior point by default).

G is symmetrised and the objective is divided by max|G| before solving.
A positive rescaling of the objective does not move the minimiser, and it
keeps the solver's absolute gap tolerances meaningful for the 1e-9 scaled
programs built by the penalised fit.

Interior-point iterates approach the boundary of the feasible set but
never land on it, so a coordinate whose bound x_j ≥ 0 is active comes back
as a small nonzero number. The solve is therefore polished: the active set
is read off the interior-point solution, coordinates held at zero by an
active bound are fixed at exactly 0, and the equality-constrained program
on the remaining active constraints is solved through its KKT system. The
polished point is kept only if it is feasible and every multiplier is
non-negative, i.e. if it satisfies the KKT conditions of the original
program.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import cvxpy as cp
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylmmen.core.exceptions import DimensionError, NumericalError, QPInfeasibleError

logger = logging.getLogger(__name__)

_INFEASIBLE = (cp.INFEASIBLE, cp.INFEASIBLE_INACCURATE)
_SOLVED = (cp.OPTIMAL, cp.OPTIMAL_INACCURATE)

# Tighter than CLARABEL's defaults so the active set is unambiguous
_CLARABEL_OPTIONS = {'tol_gap_abs': 1e-10, 'tol_gap_rel': 1e-10, 'tol_feas': 1e-10}


@dataclass(frozen=True)
class QPSolution:
    """Terminal state of one quadratic-program solve.

    Attributes:
        solution: Minimiser x̂ (m,). Coordinates held by an active
            x_j ≥ 0 bound are exactly 0.
        value: Objective ½ x̂ᵀGx̂ − aᵀx̂ at the minimiser, on the
            caller's (unscaled) objective.
        unconstrained_solution: G⁻¹a, the minimiser without constraints.
        lagrangian: Lagrange multipliers of the k inequality constraints.
        active: Indices of constraints that hold with equality at x̂.
        status: Solver status string ('optimal' or 'optimal_inaccurate').
        solver: Name of the backend that produced the solution.
        polished: Whether x̂ comes from the exact active-set solve.
    """
    solution: NDArray
    value: float
    unconstrained_solution: NDArray
    lagrangian: NDArray
    active: NDArray
    status: str
    solver: str
    polished: bool = False


def _bound_coordinates(C: NDArray, b: NDArray) -> NDArray:
    """Coordinate j for each column of C that encodes c·x_j ≥ 0 (c > 0), else −1."""
    coords = np.full(C.shape[1], -1)
    nonzero = C != 0
    single = (np.sum(nonzero, axis=0) == 1) & (b == 0)
    for i in np.flatnonzero(single):
        j = int(np.flatnonzero(nonzero[:, i])[0])
        if C[j, i] > 0:
            coords[i] = j
    return coords


def polish_active_set(
    G: NDArray,
    a: NDArray,
    C: NDArray,
    b: NDArray,
    active: NDArray,
    tol: float = 1e-9,
) -> tuple[NDArray, NDArray] | None:
    """Exact solution of the program with ``active`` constraints as equalities.

    Args:
        G, a, C, b: The (symmetric, scaled) program.
        active: Indices of the constraints taken as active.
        tol: Feasibility and multiplier-sign tolerance.

    Returns:
        (x, multipliers) if the result satisfies the KKT conditions of the
        inequality program, None otherwise.
    """
    m = G.shape[0]
    coords = _bound_coordinates(C, b)
    fixed_by = {int(coords[i]): int(i) for i in active if coords[i] >= 0}
    fixed = np.array(sorted(fixed_by), dtype=int)
    free = np.setdiff1d(np.arange(m), fixed)
    general = np.array([int(i) for i in active if coords[i] < 0], dtype=int)
    # a constraint left with no free coordinate is checked for feasibility only
    general = general[np.any(C[np.ix_(free, general)] != 0, axis=0)]

    E = C[np.ix_(free, general)]
    r = general.shape[0]
    kkt = np.block([
        [G[np.ix_(free, free)], -E],
        [E.T, np.zeros((r, r))],
    ])
    rhs = np.concatenate([a[free], b[general]])
    if kkt.size == 0:
        z = np.zeros(0)
    else:
        try:
            z = np.linalg.solve(kkt, rhs)
        except np.linalg.LinAlgError:
            return None

    x = np.zeros(m)
    x[free] = z[:free.shape[0]]
    multipliers = np.zeros(C.shape[1])
    multipliers[general] = z[free.shape[0]:]

    # Stationarity row of each fixed coordinate gives its bound multiplier
    gradient = G @ x - a - C[:, general] @ multipliers[general]
    for j, i in fixed_by.items():
        multipliers[i] = gradient[j] / C[j, i]

    slack = C.T @ x - b
    if np.any(slack < -tol * (1.0 + np.abs(b))) or np.any(multipliers < -tol):
        return None
    return x, multipliers


def solve_qp(
    quadratic: ArrayLike,
    linear: ArrayLike,
    constraints: ArrayLike,
    bounds: ArrayLike,
    *,
    solver: str = cp.CLARABEL,
    active_tol: float = 1e-8,
) -> QPSolution:
    """Solve min ½ xᵀGx − aᵀx subject to Cᵀx ≥ b.

    Args:
        quadratic: Symmetric positive semi-definite matrix G (m, m).
        linear: Linear term a (m,).
        constraints: Constraint matrix C (m, k); column j is constraint j.
        bounds: Right-hand side b (k,).
        solver: cvxpy solver name.
        active_tol: Slack below which a constraint is reported active.

    Returns:
        QPSolution.

    Raises:
        DimensionError: If the shapes of G, a, C, b disagree.
        QPInfeasibleError: If the solver certifies infeasibility.
        NumericalError: If the solver stops in any other non-optimal state.
    """
    G = np.asarray(quadratic, dtype=np.float64)
    a = np.asarray(linear, dtype=np.float64).ravel()
    C = np.asarray(constraints, dtype=np.float64)
    b = np.asarray(bounds, dtype=np.float64).ravel()

    m = a.shape[0]
    if G.shape != (m, m):
        raise DimensionError(
            f"quadratic: expected shape ({m}, {m}), got {G.shape}"
        )
    if C.ndim != 2 or C.shape[0] != m or C.shape[1] != b.shape[0]:
        raise DimensionError(
            f"constraints: expected shape ({m}, {b.shape[0]}), got {C.shape}"
        )

    G = 0.5 * (G + G.T)
    scale = float(np.max(np.abs(G))) if G.size else 1.0
    if not np.isfinite(scale) or scale <= 0.0:
        scale = 1.0
    G_s, a_s = G / scale, a / scale

    x = cp.Variable(m)
    objective = cp.Minimize(0.5 * cp.quad_form(x, cp.psd_wrap(G_s)) - a_s @ x)
    inequality = C.T @ x >= b
    problem = cp.Problem(objective, [inequality])
    options = _CLARABEL_OPTIONS if solver == cp.CLARABEL else {}
    problem.solve(solver=solver, **options)

    status = problem.status
    if status in _INFEASIBLE:
        raise QPInfeasibleError(
            f"Quadratic program is infeasible (solver status: {status}, "
            f"{m} variables, {b.shape[0]} constraints)",
            status=status,
        )
    if status not in _SOLVED or x.value is None:
        raise NumericalError(
            f"Quadratic program was not solved (solver status: {status})",
            status=status,
        )
    if status == cp.OPTIMAL_INACCURATE:
        logger.debug("QP solved to reduced accuracy (%s)", status)

    x_ip = np.asarray(x.value, dtype=np.float64).ravel()
    dual_ip = np.maximum(np.asarray(inequality.dual_value, dtype=np.float64).ravel(), 0.0)
    slack_ip = C.T @ x_ip - b
    # complementarity: an active constraint has a multiplier larger than its slack
    tight = slack_ip <= active_tol * (1.0 + np.abs(b))
    candidates = (np.flatnonzero((slack_ip < dual_ip) | tight), np.flatnonzero(tight))

    polished = None
    for guess in candidates:
        polished = polish_active_set(G_s, a_s, C, b, guess)
        if polished is not None:
            break
    if polished is not None:
        x_hat, dual = polished
    else:
        logger.debug("QP polish rejected; keeping the interior-point solution")
        x_hat, dual = x_ip, dual_ip

    value = float(0.5 * x_hat @ G @ x_hat - a @ x_hat)
    slack = C.T @ x_hat - b
    active = np.flatnonzero(slack <= active_tol * (1.0 + np.abs(b)))

    try:
        unconstrained = np.linalg.solve(G, a)
    except np.linalg.LinAlgError:
        unconstrained = np.linalg.pinv(G) @ a

    return QPSolution(
        solution=x_hat,
        value=value,
        unconstrained_solution=unconstrained,
        lagrangian=dual * scale,
        active=active,
        status=status,
        solver=str(solver),
        polished=polished is not None,
    )
