"""
Block-diagonal construction and Γ indexing helpers.

The random-effects design is handled per subject: subject i owns rows
``slices[i]`` of Z and the q columns ``q*i : q*(i+1)`` of the
block-diagonal design Z_bd. Parameter matrices shared by all subjects
(Λ, Γ) are lifted to the stacked problem as I_n ⊗ M.

The free loadings γ of the unit lower-triangular Γ are stored as a flat
vector in column-major order of the strict lower triangle:
(1,0), (2,0), ..., (q-1,0), (2,1), ..., (q-1,q-2).
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
import scipy.linalg as sla


def subject_slices(sizes: NDArray) -> tuple[slice, ...]:
    """Row slice of each subject, given contiguous group sizes n_i."""
    ends = np.cumsum(sizes)
    starts = ends - sizes
    return tuple(slice(int(s), int(e)) for s, e in zip(starts, ends))


def block_diagonal_design(Z: NDArray, sizes: NDArray) -> NDArray:
    """Z_bd (N, n*q): subject i's rows of Z placed in column block i."""
    return sla.block_diag(*(Z[sl] for sl in subject_slices(sizes)))


def lift(matrix: NDArray, n_subjects: int) -> NDArray:
    """I_n ⊗ M."""
    return np.kron(np.eye(n_subjects), matrix)


def loading_indices(q: int) -> tuple[NDArray, NDArray]:
    """Row and column index of every free entry of Γ, in storage order.

    Returns:
        (rows, cols), each of length q(q-1)/2, with rows > cols.
    """
    cols, rows = np.triu_indices(q, k=1)
    return rows, cols


def gamma_matrix(gamma: NDArray, q: int) -> NDArray:
    """Unit lower-triangular Γ (q, q) from its free loadings."""
    G = np.eye(q)
    rows, cols = loading_indices(q)
    G[rows, cols] = gamma
    return G


def random_design_factor(
    Z_bd: NDArray,
    lam: NDArray,
    Gamma: NDArray,
    n_subjects: int,
) -> NDArray:
    """C = Z_bd (I_n ⊗ Λ)(I_n ⊗ Γ), shape (N, n*q).

    y − Xβ = C b + ε with b ~ N(0, σ²I) is the spherical form of the
    model; CCᵀ + I is the relative marginal covariance of y.
    """
    return Z_bd @ lift(np.diag(lam) @ Gamma, n_subjects)
