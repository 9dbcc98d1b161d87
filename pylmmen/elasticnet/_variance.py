"""
Inner loop: joint update of the fixed effects β and the scale λ.

With the loading matrix Γ held fixed, each iteration

1. re-estimates the residual variance σ² and the posterior moments of
   the spherical random effects b (an EM-type E-step), and
2. solves one quadratic program for (β⁺, β⁻, λ), the elastic-net split
   β = β⁺ − β⁻ with β⁺, β⁻ ≥ 0.

Writing the stacked model as y − Xβ = Z_bd (I_n ⊗ ΛΓ) b + ε, the
expected penalised loss is quadratic in (β, λ) once b is replaced by its
posterior mean b̂ and second moment Ĝ = σ²M + b̂b̂ᵀ. The QP carries
the ridge parts of the penalty on its diagonal and the L1 budgets as
linear inequality constraints.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from pylmmen.core.compute.qp import QPSolution
from pylmmen.core.protocols import QPSolver
from pylmmen.elasticnet._blocks import lift, random_design_factor
from pylmmen.elasticnet._common import (
    EPS_TOL,
    MAX_INNER_ITER,
    QP_SCALE,
    ROUND_DIGITS,
    PenaltyBounds,
)
from pylmmen.elasticnet._convergence import ConvergenceController
from pylmmen.elasticnet.design import LMMENDesign

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InnerResult:
    """State handed from the inner loop to the loading update.

    Attributes:
        beta: Fixed effects after the last QP solve (p,).
        lam: Scale parameters after the last QP solve (q,).
        sigma_2: Residual variance of the last iteration.
        b_hat: Posterior mean of b from the last iteration (n*q,).
        G_hat: Posterior second moment of b from the last iteration (n*q, n*q).
        residual: y − Xβ at the start of the last iteration (N,).
        qp_solution: Last QP solution.
        n_iter: Iterations run.
        converged: Whether the β tolerance was met before the cap.
        last_change: Final max |Δβ|.
    """
    beta: NDArray
    lam: NDArray
    sigma_2: float
    b_hat: NDArray
    G_hat: NDArray
    residual: NDArray
    qp_solution: QPSolution
    n_iter: int
    converged: bool
    last_change: float


def constraint_system(bounds: PenaltyBounds, p: int, q: int) -> tuple[NDArray, NDArray]:
    """Constraint matrix C and bounds b such that Cᵀx ≥ b encodes

        β⁺, β⁻, λ ≥ 0
        Σ w_β (β⁺ + β⁻) ≤ t_L1β
        Σ w_λ λ ≤ t_L1λ

    The zero vector always satisfies these constraints.
    """
    m = 2 * p + q
    A = np.vstack([
        np.eye(m),
        -np.concatenate([bounds.weights_fixed, np.zeros(q)]),
        -np.concatenate([np.zeros(2 * p), bounds.weights_random]),
    ])
    b = np.concatenate([np.zeros(m), [-bounds.l1_fixed, -bounds.l1_random]])
    return A.T, b


def posterior_moments(
    C: NDArray,
    residual: NDArray,
) -> tuple[float, NDArray, NDArray]:
    """σ², posterior mean b̂ and second moment Ĝ of the random effects.

    The identity added to CCᵀ and CᵀC is a ridge regulariser.

    Returns:
        (sigma_2, b_hat, G_hat)
    """
    n_obs, nq = C.shape
    V = C @ C.T + np.eye(n_obs)
    sigma_2 = float(residual @ np.linalg.solve(V, residual) / n_obs)

    M = np.linalg.inv(C.T @ C + np.eye(nq))
    b_hat = M @ (C.T @ residual)
    G_hat = sigma_2 * M + np.outer(b_hat, b_hat)
    return sigma_2, b_hat, G_hat


def assemble_qp(
    design: LMMENDesign,
    Gamma: NDArray,
    b_hat: NDArray,
    G_hat: NDArray,
    bounds: PenaltyBounds,
    X_star: NDArray,
    X_star_cross: NDArray,
) -> tuple[NDArray, NDArray]:
    """Quadratic and linear term of the (β⁺, β⁻, λ) program.

    Args:
        design: Validated design.
        Gamma: Current loading matrix (q, q).
        b_hat: Posterior mean of b (n*q,).
        G_hat: Posterior second moment of b (n*q, n*q).
        bounds: Penalty bounds.
        X_star: [X, −X] (N, 2p).
        X_star_cross: X_starᵀ X_star (2p, 2p).

    Returns:
        (G, a), scaled by QP_SCALE with EPS_TOL added to the diagonal of G.
    """
    n, q, p = design.n_subjects, design.q, design.p
    Gamma_bd = lift(Gamma, n)
    stack = np.kron(np.ones((n, 1)), np.eye(q))       # 1_n ⊗ I_q

    # Column a of R collects Z[:, a] (Γ b̂_i)_a over subjects: the design of λ
    R = (design.Z_bd * (Gamma_bd @ b_hat)) @ stack

    random_block = (
        stack.T @ (design.W_bd * (Gamma_bd @ G_hat @ Gamma_bd.T)) @ stack
        + np.eye(q) * bounds.l2_random / (1.0 + bounds.l2_random)
    )
    fixed_block = (
        X_star_cross
        + np.eye(2 * p) * bounds.l2_fixed / (1.0 + bounds.l2_fixed)
    )
    cross_block = X_star.T @ R

    G = np.block([
        [fixed_block, cross_block],
        [cross_block.T, random_block],
    ])
    a = (design.y @ np.hstack([X_star, R])) * QP_SCALE
    G = G * QP_SCALE + EPS_TOL * np.eye(G.shape[0])
    return G, a


def run_inner_loop(
    design: LMMENDesign,
    beta: NDArray,
    lam: NDArray,
    Gamma: NDArray,
    bounds: PenaltyBounds,
    eps: float,
    qp_solver: QPSolver,
) -> InnerResult:
    """Iterate the σ²/posterior/QP update until β settles.

    Args:
        design: Validated design.
        beta: Starting fixed effects (p,).
        lam: Starting scale parameters (q,).
        Gamma: Loading matrix, fixed for the whole loop (q, q).
        bounds: Penalty bounds.
        eps: Tolerance on max |Δβ|.
        qp_solver: QP capability.

    Returns:
        InnerResult. Reaching MAX_INNER_ITER is reported through
        ``converged=False``, never raised.
    """
    p, q = design.p, design.q
    X_star = np.hstack([design.X, -design.X])
    X_star_cross = X_star.T @ X_star
    C_con, b_con = constraint_system(bounds, p, q)

    control = ConvergenceController(eps, MAX_INNER_ITER, name='inner')
    while control.running:
        beta_current = beta
        residual = design.y - design.X @ beta_current

        C = random_design_factor(design.Z_bd, lam, Gamma, design.n_subjects)
        sigma_2, b_hat, G_hat = posterior_moments(C, residual)

        G, a = assemble_qp(design, Gamma, b_hat, G_hat, bounds, X_star, X_star_cross)
        qp = qp_solver(G, a, C_con, b_con)

        x = qp.solution
        beta = np.round(x[:p] - x[p:2 * p], ROUND_DIGITS) + 0.0
        # interior-point iterates can sit a hair outside the λ ≥ 0 bound
        lam = np.maximum(np.round(x[2 * p:], ROUND_DIGITS), 0.0)

        control.update(beta_current, beta)
        logger.debug(
            "inner iteration %d: sigma2=%.6g, max|dbeta|=%.3g, active lambda=%d/%d",
            control.n_iter, sigma_2, control.last_change, int(np.sum(lam > 0)), q,
        )

    return InnerResult(
        beta=beta,
        lam=lam,
        sigma_2=sigma_2,
        b_hat=b_hat,
        G_hat=G_hat,
        residual=residual,
        qp_solution=qp,
        n_iter=control.n_iter,
        converged=control.converged,
        last_change=control.last_change,
    )
