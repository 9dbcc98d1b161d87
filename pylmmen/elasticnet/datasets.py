"""
Synthetic example data for the LMM elastic net.

Generates tables in the input layout expected by lmmen(): a ``y``
column, fixed covariates ``X1..Xp``, random covariates ``Z1..Zq`` and the
subject label as index. The true model has a sparse β and a reduced-rank
random-effects covariance, so both selection problems are non-trivial.

The active random-effects covariance (intercept, Z1, Z2) is

    [[9.0, 4.8, 0.6],
     [4.8, 4.0, 1.0],
     [0.6, 1.0, 1.0]]

as in the simulation design of Bondell, Krishna & Ghosh (2010).
"""

from __future__ import annotations

import numpy as np
import pandas as pd

ACTIVE_RE_COV = np.array([
    [9.0, 4.8, 0.6],
    [4.8, 4.0, 1.0],
    [0.6, 1.0, 1.0],
])


def initialize_example(
    n_i: int = 5,
    n: int = 30,
    q: int = 4,
    p: int | None = None,
    seed: int | None = None,
) -> pd.DataFrame:
    """Simulate a subject-grouped dataset.

    Args:
        n_i: Observations per subject.
        n: Number of subjects.
        q: Number of random covariates (the intercept comes on top).
        p: Number of fixed covariates. Default 2*q. Must be >= q, since
            the random covariates are the first q fixed covariates.
        seed: Seed for numpy's default_rng.

    Returns:
        DataFrame with N = n*n_i rows indexed by subject label 1..n.
    """
    if p is None:
        p = 2 * q
    if n_i < 1 or n < 2 or q < 0 or p < max(q, 1):
        raise ValueError(
            f"Invalid example size: n_i={n_i}, n={n}, q={q}, p={p} "
            f"(need n_i >= 1, n >= 2, q >= 0, p >= max(q, 1))"
        )

    rng = np.random.default_rng(seed)
    n_obs = n * n_i
    subject = np.repeat(np.arange(1, n + 1), n_i)

    X = rng.standard_normal((n_obs, p))
    Z = X[:, :q]

    beta = np.zeros(p)
    beta[:min(2, p)] = 1.0

    k = min(3, q + 1)
    b_active = rng.multivariate_normal(np.zeros(k), ACTIVE_RE_COV[:k, :k], size=n)
    Z_active = np.column_stack([np.ones(n_obs), Z])[:, :k]
    random_part = np.sum(Z_active * b_active[subject - 1], axis=1)

    y = X @ beta + random_part + rng.standard_normal(n_obs)

    frame = {'y': y}
    frame.update({f'X{j + 1}': X[:, j] for j in range(p)})
    frame.update({f'Z{j + 1}': Z[:, j] for j in range(q)})
    return pd.DataFrame(frame, index=pd.Index(subject, name='subject'))
