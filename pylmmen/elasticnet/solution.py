"""
Solution wrappers for the LMM elastic net.

LMMENSolution wraps Result[LMMENParams] and provides property accessors
for the estimates and fit statistics. LMMENPath collects the solutions of
a scan over penalty fraction vectors and picks the one with minimum BIC.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pylmmen.core.compute.qp import QPSolution
from pylmmen.core.result import Result
from pylmmen.elasticnet._common import LMMENParams


class LMMENSolution:
    """Solution wrapper for one penalised fit."""

    def __init__(self, _result: Result[LMMENParams]):
        self._result = _result

    @property
    def params(self) -> LMMENParams:
        return self._result.params

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Fixed effects ---

    @property
    def fixed(self) -> NDArray:
        """Fixed effect estimates β̂."""
        return self.params.fixed

    @property
    def fixef(self) -> dict[str, float]:
        """Fixed effects as name → value dict."""
        return dict(zip(self.params.fixed_names, self.params.fixed))

    @property
    def n_nonzero_fixed(self) -> int:
        return int(np.count_nonzero(self.params.fixed))

    # --- Random effects ---

    @property
    def stddev(self) -> NDArray:
        """Standard deviations of the random effects."""
        return self.params.stddev

    @property
    def lambda_(self) -> NDArray:
        """Scale parameters λ̂ (diagonal of Λ)."""
        return self.params.lambda_

    @property
    def gamma(self) -> NDArray:
        """Unit lower-triangular loading matrix Γ̂."""
        return self.params.gamma

    @property
    def cov_re(self) -> NDArray:
        """Covariance matrix of the random effects."""
        return self.params.cov_re

    @property
    def corr_re(self) -> NDArray:
        """Correlation matrix of the random effects."""
        return self.params.corr_re

    @property
    def n_active_random(self) -> int:
        """Number of random-effect directions with nonzero scale."""
        return int(np.count_nonzero(self.params.lambda_))

    @property
    def sigma_2(self) -> float:
        """Residual variance σ̂²."""
        return self.params.sigma_2

    # --- Model fit ---

    @property
    def mean_est(self) -> NDArray:
        """Fitted means Xβ̂."""
        return self.params.mean_est

    @property
    def neg2_log_likelihood(self) -> float:
        return self.params.neg2_log_likelihood

    @property
    def log_likelihood(self) -> float:
        return -0.5 * self.params.neg2_log_likelihood

    @property
    def df(self) -> float:
        return self.params.df

    @property
    def bic(self) -> float:
        return self.params.bic

    @property
    def frac(self) -> NDArray:
        """Penalty fraction vector the fit was run with."""
        return self.params.frac

    @property
    def qp_solution(self) -> QPSolution:
        """Terminal quadratic-program solution."""
        return self.params.qp_solution

    @property
    def converged(self) -> bool:
        return self.params.converged

    def __repr__(self) -> str:
        frac = ', '.join(f'{f:g}' for f in self.params.frac)
        return (
            f"LMMENSolution(frac=({frac}), "
            f"n={self.params.n_obs}, "
            f"fixed={self.n_nonzero_fixed}/{len(self.params.fixed)} nonzero, "
            f"random={self.n_active_random}/{len(self.params.lambda_)} active, "
            f"BIC={self.params.bic:.4f})"
        )


class LMMENPath:
    """Ordered collection of fits over a grid of fraction vectors."""

    def __init__(self, solutions: tuple[LMMENSolution, ...]):
        if not solutions:
            raise ValueError("LMMENPath needs at least one solution")
        self._solutions = tuple(solutions)

    def __len__(self) -> int:
        return len(self._solutions)

    def __getitem__(self, index: int) -> LMMENSolution:
        return self._solutions[index]

    def __iter__(self):
        return iter(self._solutions)

    @property
    def solutions(self) -> tuple[LMMENSolution, ...]:
        return self._solutions

    @property
    def bic(self) -> NDArray:
        """BIC of every fit, in grid order."""
        return np.array([s.bic for s in self._solutions])

    @property
    def fracs(self) -> NDArray:
        """Fraction vectors, one row per fit."""
        return np.vstack([s.frac for s in self._solutions])

    @property
    def best_index(self) -> int:
        """Grid position of the minimum BIC (first one on ties)."""
        return int(np.argmin(self.bic))

    @property
    def best(self) -> LMMENSolution:
        return self._solutions[self.best_index]

    def __repr__(self) -> str:
        return (
            f"LMMENPath({len(self)} fits, best index={self.best_index}, "
            f"BIC={self.best.bic:.4f})"
        )
