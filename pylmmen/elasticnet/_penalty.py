"""
Translation of penalty fractions into absolute QP bounds.

The caller expresses the penalty as a fraction vector
(f_L1β, f_L1λ, α_β, α_λ): the two L1 fractions scale the budget against
the size of the starting values, and α_β, α_λ ∈ (0, 1] are elastic-net
mixing ratios α = L1 / (L1 + L2). Solving the mixing identity for the L2
part gives

    L2 = L1 (1 − α) / α

which is multiplied by L2_BOUND_SCALE so that both penalty types act on a
comparable scale inside the quadratic program.

The L1 budgets are adaptive: each coordinate is weighted by the inverse
magnitude of its starting value.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylmmen.core.exceptions import ConfigurationError
from pylmmen.elasticnet._common import EPS_TOL, L2_BOUND_SCALE, PenaltyBounds


def check_fractions(frac: ArrayLike) -> NDArray:
    """Validate a fraction vector (f_L1β, f_L1λ, α_β, α_λ).

    Raises:
        ConfigurationError: If the vector is not 4 finite numbers, an L1
            fraction is negative, or a mixing ratio lies outside (0, 1].
    """
    try:
        frac = np.asarray(frac, dtype=np.float64).ravel()
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"frac: expected 4 numbers, got {frac!r}") from e

    if frac.shape[0] != 4:
        raise ConfigurationError(
            f"frac: expected 4 elements (L1 fixed, L1 random, alpha fixed, "
            f"alpha random), got {frac.shape[0]}"
        )
    if not np.all(np.isfinite(frac)):
        raise ConfigurationError(f"frac: contains non-finite values {frac.tolist()}")
    if np.any(frac[:2] < 0):
        raise ConfigurationError(
            f"frac: L1 fractions must be >= 0, got {frac[:2].tolist()}"
        )
    for name, alpha in zip(('alpha fixed', 'alpha random'), frac[2:]):
        if alpha <= 0 or alpha > 1:
            raise ConfigurationError(
                f"frac: mixing ratio {name} must lie in (0, 1], got {alpha}"
            )
    return frac


def adaptive_weights(start: NDArray) -> NDArray:
    """1/|start|, with exact zeros mapped to 1/EPS_TOL.

    A zero start value gives the coordinate a weight so large that its
    share of the L1 budget vanishes at the working precision.
    """
    magnitude = np.abs(start)
    return 1.0 / np.where(magnitude > 0, magnitude, EPS_TOL)


def translate_bounds(
    frac: NDArray,
    beta_start: NDArray,
    lambda_start: NDArray,
) -> PenaltyBounds:
    """Absolute L1 and L2 bounds and adaptive weights for one fit.

    Args:
        frac: Validated fraction vector (see check_fractions).
        beta_start: Warm-start fixed effects β⁰ (p,).
        lambda_start: Initial Cholesky diagonal λ⁰ (q,).

    Returns:
        PenaltyBounds, fixed for the whole optimisation.
    """
    l1_fixed = frac[0] * float(np.sum(np.abs(beta_start)))
    l1_random = frac[1] * float(np.sum(np.abs(lambda_start)))

    alpha_fixed, alpha_random = frac[2], frac[3]
    l2_fixed = l1_fixed * (1.0 - alpha_fixed) / alpha_fixed * L2_BOUND_SCALE
    l2_random = l1_random * (1.0 - alpha_random) / alpha_random * L2_BOUND_SCALE

    w = adaptive_weights(beta_start)
    return PenaltyBounds(
        l1_fixed=float(l1_fixed),
        l1_random=float(l1_random),
        l2_fixed=float(l2_fixed),
        l2_random=float(l2_random),
        weights_fixed=np.concatenate([w, w]),
        weights_random=adaptive_weights(lambda_start),
    )
