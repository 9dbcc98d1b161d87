"""
Common data types and numerical constants for the LMM elastic net.

Contains the frozen parameter payload that goes inside the Result[P]
envelope. The payload is a pure data container: no methods, no computation.

References:
    Bondell, H. D., Krishna, A., & Ghosh, S. K. (2010).
    Joint variable selection for fixed and random effects in linear
    mixed-effects models. Biometrics, 66(4), 1069-1077.
"""

from dataclasses import dataclass

from numpy.typing import NDArray

from pylmmen.core.compute.qp import QPSolution


# Decimal digits kept for β, λ and γ after every update
ROUND_DIGITS = 6

# Decimal digits kept for the eigenvalues of the loading normal equations
EIGEN_ROUND_DIGITS = 5

# Ridge added to the QP Hessian; also floors λ⁰ and the sd used for correlations
EPS_TOL = 1e-8

# Scale applied to the QP Hessian and linear term
QP_SCALE = 1e-9

# Puts the L2 bounds on the same footing as the L1 budgets inside the QP
L2_BOUND_SCALE = 1e4

MAX_INNER_ITER = 100
MAX_OUTER_ITER = 200


@dataclass(frozen=True)
class PenaltyBounds:
    """Absolute penalty bounds derived once from the fraction vector.

    Attributes:
        l1_fixed: L1 budget on the adaptively weighted |β|.
        l1_random: L1 budget on the adaptively weighted λ.
        l2_fixed: Ridge bound on β.
        l2_random: Ridge bound on λ.
        weights_fixed: Adaptive weights 1/|β⁰| for (β⁺, β⁻), shape (2p,).
        weights_random: Adaptive weights 1/λ⁰, shape (q,).
    """
    l1_fixed: float
    l1_random: float
    l2_fixed: float
    l2_random: float
    weights_fixed: NDArray
    weights_random: NDArray


@dataclass(frozen=True)
class LMMENParams:
    """
    Parameter payload for a fitted LMM elastic net.

    Field names follow the quantities reported by the fitter: β, the
    random-effect scale λ and loading Γ, and the BIC of the fit.
    """
    # Fixed effects
    fixed: NDArray                     # β̂ (p,)
    fixed_names: tuple[str, ...]

    # Random effects
    stddev: NDArray                    # sqrt(diag(Σ_b)) (q,)
    lambda_: NDArray                   # scale λ̂ (q,)
    gamma: NDArray                     # Γ̂ unit lower triangular (q, q)
    cov_re: NDArray                    # Σ_b = σ²(ΛΓ)(ΛΓ)' (q, q)
    corr_re: NDArray                   # correlation matrix of b (q, q)
    random_names: tuple[str, ...]
    sigma_2: float                     # residual variance σ²

    # Model fit
    mean_est: NDArray                  # Xβ̂ (N,)
    neg2_log_likelihood: float         # −2 log L
    df: float
    bic: float
    frac: NDArray                      # fraction vector supplied (4,)
    n_obs: int
    n_subjects: int

    # Convergence
    converged: bool                    # outer loop met eps
    inner_converged: bool              # last inner loop met eps
    n_outer_iter: int
    n_inner_iter: int                  # total inner iterations over all outer passes

    # Internal
    qp_solution: QPSolution            # terminal QP solve
