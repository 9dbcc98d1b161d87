"""
Outer step: closed-form update of the loadings γ of Γ.

Given β, λ and the posterior moments of b from a converged inner loop,
the free loading γ_l = Γ[i_l, j_l] enters the model through the column

    A_l = Z[:, i_l] λ_{i_l} b_{j_l}

so the expected least-squares problem in γ has the normal equations

    E[AᵀA] γ = E[A]ᵀ r − E[Aᵀ Z Λ b]

whose terms split over subjects:

    E[AᵀA]_{lm}  = Σ_i B_i[i_l, i_m] Ĝ_i[j_l, j_m]
    E[AᵀZΛb]_l   = Σ_i Σ_a B_i[i_l, a] Ĝ_i[j_l, a]
    B_i          = (Z_iᵀ Z_i) ∘ λλᵀ

The system is solved with an eigenvalue pseudo-inverse because it
becomes singular as soon as the penalty shrinks some λ to zero.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pylmmen.elasticnet._blocks import loading_indices
from pylmmen.elasticnet._common import EIGEN_ROUND_DIGITS, ROUND_DIGITS
from pylmmen.elasticnet.design import LMMENDesign


def eigen_pinv(matrix: NDArray) -> NDArray:
    """Pseudo-inverse of a symmetric matrix from its eigendecomposition.

    Eigenvalues are rounded to EIGEN_ROUND_DIGITS decimals; those that end
    up zero or negative are treated as non-invertible and contribute
    nothing.
    """
    values, vectors = np.linalg.eigh(matrix)
    values = np.round(values, EIGEN_ROUND_DIGITS)
    inv_values = np.zeros_like(values)
    positive = values > 0
    inv_values[positive] = 1.0 / values[positive]
    return (vectors * inv_values) @ vectors.T


def loading_normal_equations(
    design: LMMENDesign,
    lam: NDArray,
    b_hat: NDArray,
    G_hat: NDArray,
) -> tuple[NDArray, NDArray, NDArray]:
    """Accumulate E[AᵀA], the correction T and E[A] subject by subject.

    Returns:
        (AtA (L, L), T (L,), E_A (N, L)) with L = q(q-1)/2.
    """
    q = design.q
    rows, cols = loading_indices(q)
    n_loadings = rows.shape[0]

    AtA = np.zeros((n_loadings, n_loadings))
    T = np.zeros(n_loadings)
    E_A = np.zeros((design.n_obs, n_loadings))
    lam_outer = np.outer(lam, lam)

    for i, sl in enumerate(design.slices):
        block = slice(q * i, q * (i + 1))
        b_i = b_hat[block]
        G_i = G_hat[block, block]
        B_i = design.W_bd[block, block] * lam_outer

        AtA += B_i[np.ix_(rows, rows)] * G_i[np.ix_(cols, cols)]
        T += np.sum(B_i[rows, :] * G_i[cols, :], axis=1)
        E_A[sl] = b_i[cols] * design.Z[sl][:, rows] * lam[rows]

    return AtA, T, E_A


def update_loadings(
    design: LMMENDesign,
    lam: NDArray,
    b_hat: NDArray,
    G_hat: NDArray,
    residual: NDArray,
) -> NDArray:
    """New free loadings γ (q(q-1)/2,) in storage order.

    A loading is zeroed when the scale of its column direction or of its
    row direction is zero, so an eliminated random effect never regains
    correlation structure.

    Args:
        design: Validated design.
        lam: Scale parameters from the inner loop (q,).
        b_hat: Posterior mean of b (n*q,).
        G_hat: Posterior second moment of b (n*q, n*q).
        residual: y − Xβ from the last inner iteration (N,).
    """
    rows, cols = loading_indices(design.q)
    if rows.shape[0] == 0:
        return np.zeros(0)

    AtA, T, E_A = loading_normal_equations(design, lam, b_hat, G_hat)
    gamma = np.round(eigen_pinv(AtA) @ (E_A.T @ residual - T), ROUND_DIGITS)

    active = lam > 0
    return gamma * active[cols] * active[rows] + 0.0
