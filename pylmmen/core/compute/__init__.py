"""
Shared compute infrastructure for pylmmen.

Numerical capabilities the estimator consumes but does not implement:
a quadratic-program solver and a Gaussian log density, plus timing.

Submodules:
    timing: Execution timing utilities
    qp: Quadratic-program solver bound to cvxpy
    density: Multivariate normal log density bound to scipy.stats
"""

from pylmmen.core.compute.timing import Timer
from pylmmen.core.compute.qp import QPSolution, solve_qp
from pylmmen.core.compute.density import gaussian_log_density

__all__ = [
    "Timer",
    "QPSolution",
    "solve_qp",
    "gaussian_log_density",
]
