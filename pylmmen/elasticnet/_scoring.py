"""
Model scoring: marginal likelihood, degrees of freedom and BIC.

For the final β, λ and Γ the marginal covariance of y is block diagonal
over subjects with blocks σ²((Z_iΛΓ)(Z_iΛΓ)ᵀ + I). The fit is scored by

    −2 log L = −2 log N(y; Xβ, σ²(CCᵀ + I))
    df       = #{β ≠ 0} + k(k + 1)/2,   k = #{λ ≠ 0}
    BIC      = −2 log L + df log N

where k(k + 1)/2 counts the free entries of the covariance spanned by
the active random-effect directions.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from pylmmen.core.protocols import LogDensity
from pylmmen.elasticnet._blocks import random_design_factor
from pylmmen.elasticnet._common import EPS_TOL, ROUND_DIGITS
from pylmmen.elasticnet.design import LMMENDesign


@dataclass(frozen=True)
class FitScore:
    """Scored fit at the final parameter values."""
    sigma_2: float
    mean_est: NDArray
    neg2_log_likelihood: float
    df: float
    bic: float
    cov_re: NDArray
    stddev: NDArray
    corr_re: NDArray


def degrees_of_freedom(beta: NDArray, lam: NDArray) -> float:
    """Nonzero fixed effects plus the covariance entries of active directions."""
    k = int(np.count_nonzero(lam))
    return float(np.count_nonzero(beta) + k * (k + 1) / 2)


def random_effect_covariance(
    lam: NDArray,
    Gamma: NDArray,
    sigma_2: float,
) -> tuple[NDArray, NDArray, NDArray]:
    """Covariance σ²(ΛΓ)(ΛΓ)ᵀ of b, its standard deviations and correlations.

    The standard deviations are floored by EPS_TOL before dividing, so a
    direction with zero scale gets zero correlations instead of NaN.
    """
    LG = np.diag(lam) @ Gamma
    cov = sigma_2 * (LG @ LG.T)
    stddev = np.sqrt(np.maximum(np.diag(cov), 0.0))
    scale = np.diag(1.0 / (stddev + EPS_TOL))
    corr = np.round(scale @ cov @ scale, ROUND_DIGITS)
    return cov, stddev, corr


def score_fit(
    design: LMMENDesign,
    beta: NDArray,
    lam: NDArray,
    Gamma: NDArray,
    log_density: LogDensity,
) -> FitScore:
    """Score the final estimates.

    σ² is re-estimated from the final residuals, as in the inner loop.
    """
    residual = design.y - design.X @ beta
    C = random_design_factor(design.Z_bd, lam, Gamma, design.n_subjects)
    V = C @ C.T + np.eye(design.n_obs)
    sigma_2 = float(residual @ np.linalg.solve(V, residual) / design.n_obs)

    mean_est = design.X @ beta
    neg2_ll = -2.0 * log_density(design.y, mean_est, sigma_2 * V)
    df = degrees_of_freedom(beta, lam)
    bic = neg2_ll + df * np.log(design.n_obs)

    cov_re, stddev, corr_re = random_effect_covariance(lam, Gamma, sigma_2)

    return FitScore(
        sigma_2=sigma_2,
        mean_est=mean_est,
        neg2_log_likelihood=float(neg2_ll),
        df=df,
        bic=float(bic),
        cov_re=cov_re,
        stddev=stddev,
        corr_re=corr_re,
    )
