"""
Gaussian log-density capability.

Thin binding of the multivariate normal log density to scipy.stats, used
by the model scorer to evaluate the marginal likelihood of y.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike
from scipy import stats

from pylmmen.core.exceptions import NumericalError


def gaussian_log_density(
    x: ArrayLike,
    mean: ArrayLike,
    covariance: ArrayLike,
) -> float:
    """log N(x; mean, covariance) for a single observation vector x.

    Raises:
        NumericalError: If the covariance is singular or not positive
            definite.
    """
    x = np.asarray(x, dtype=np.float64).ravel()
    mean = np.asarray(mean, dtype=np.float64).ravel()
    covariance = np.asarray(covariance, dtype=np.float64)
    try:
        return float(stats.multivariate_normal.logpdf(x, mean=mean, cov=covariance))
    except (np.linalg.LinAlgError, ValueError) as e:
        raise NumericalError(
            f"Marginal covariance of y ({covariance.shape[0]}x{covariance.shape[1]}) "
            f"is not positive definite: {e}"
        ) from e
