"""
Solver dispatch for the LMM elastic net.

Public API:
    lmmen()      — fit one penalised linear mixed model
    lmmen_path() — fit a sequence of fraction vectors and keep every fit
"""

from __future__ import annotations

import logging
import warnings
from typing import Sequence

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from pylmmen.core.compute.density import gaussian_log_density
from pylmmen.core.compute.qp import solve_qp
from pylmmen.core.compute.timing import Timer
from pylmmen.core.exceptions import ConfigurationError, NonConvergenceWarning, ValidationError
from pylmmen.core.protocols import LogDensity, QPSolver
from pylmmen.core.result import Result
from pylmmen.core.validation import check_1d, check_array, check_finite, check_length, check_positive
from pylmmen.elasticnet._blocks import gamma_matrix, loading_indices
from pylmmen.elasticnet._common import (
    EPS_TOL,
    MAX_INNER_ITER,
    MAX_OUTER_ITER,
    ROUND_DIGITS,
    LMMENParams,
)
from pylmmen.elasticnet._convergence import ConvergenceController
from pylmmen.elasticnet._correlation import update_loadings
from pylmmen.elasticnet._penalty import check_fractions, translate_bounds
from pylmmen.elasticnet._scoring import score_fit
from pylmmen.elasticnet._variance import run_inner_loop
from pylmmen.elasticnet.design import LMMENDesign
from pylmmen.elasticnet.solution import LMMENPath, LMMENSolution

logger = logging.getLogger(__name__)


def lmmen(
    data: 'pd.DataFrame | LMMENDesign',
    init_beta: ArrayLike,
    frac: ArrayLike,
    *,
    eps: float = 1e-4,
    verbose: bool = False,
    qp_solver: QPSolver | None = None,
    log_density: LogDensity | None = None,
) -> LMMENSolution:
    """Fit a linear mixed model under the LMM elastic net penalty.

    Minimises the expected penalised loss

        ‖y − Xβ − Z ΛΓ b‖² + λ₂ᶠ Σβ² + λ₂ʳ Σd² + λ₁ᶠ Σ|β| + λ₁ʳ Σ|d|

    over β and the scale d = diag(Λ), alternating a quadratic program in
    (β, d) with a closed-form update of the loadings Γ, and scores the
    result with BIC.

    Args:
        data: DataFrame with one ``y`` column, ``X…`` fixed and ``Z…``
            random covariates, indexed by numeric subject label (rows
            grouped by subject, ascending), or a prepared LMMENDesign.
        init_beta: Warm-start fixed effects (p,), e.g. from init_beta().
            Also sets the adaptive L1 weights.
        frac: Fraction vector (L1 fixed, L1 random, alpha fixed,
            alpha random). The L1 fractions scale the budgets against the
            warm start; the alphas in (0, 1] are elastic-net mixing ratios
            (1 = pure lasso).
        eps: Tolerance on the max absolute change of β, used by both
            loops. Must be > 0.
        verbose: If True, print the bound and BIC when the fit finishes.
        qp_solver: Quadratic-program capability. Default: solve_qp (cvxpy).
        log_density: Gaussian log density. Default: gaussian_log_density.

    Returns:
        LMMENSolution.

    Raises:
        ConfigurationError: eps <= 0 or a malformed fraction vector.
        ValidationError: Malformed data or warm start.
        RankDeficiencyError: X or Z not of full column rank.
        QPInfeasibleError: The quadratic program has no feasible point.

    Examples:
        >>> from pylmmen.elasticnet import lmmen, init_beta, initialize_example
        >>> dat = initialize_example(n_i=5, n=30, q=4, seed=1)
        >>> fit = lmmen(dat, init_beta(dat, method='lm'), frac=(0.8, 1, 1, 1))
        >>> fit.fixed, fit.bic
    """
    timer = Timer()
    timer.start()

    eps = check_positive(eps, 'eps')
    frac = check_fractions(frac)

    with timer.section('setup'):
        design = _as_design(data)
        beta0 = _check_warm_start(init_beta, design.p)

    return _fit(design, beta0, frac, eps, verbose, qp_solver, log_density, timer)


def lmmen_path(
    data: 'pd.DataFrame | LMMENDesign',
    init_beta: ArrayLike,
    fracs: Sequence[ArrayLike],
    *,
    eps: float = 1e-4,
    verbose: bool = False,
    qp_solver: QPSolver | None = None,
    log_density: LogDensity | None = None,
) -> LMMENPath:
    """Fit one independent lmmen per fraction vector.

    The design is validated once; each fit starts from the same warm start.
    The returned path exposes the BIC of every fit and the fit with
    minimum BIC.

    Args:
        data: As for lmmen().
        init_beta: As for lmmen().
        fracs: Sequence of fraction vectors.
        eps, verbose, qp_solver, log_density: As for lmmen().

    Returns:
        LMMENPath in the order of ``fracs``.
    """
    eps = check_positive(eps, 'eps')
    fracs = [check_fractions(f) for f in fracs]
    if not fracs:
        raise ConfigurationError("fracs: at least one fraction vector required")

    design = _as_design(data)
    beta0 = _check_warm_start(init_beta, design.p)

    solutions = []
    for frac in fracs:
        timer = Timer()
        timer.start()
        solutions.append(
            _fit(design, beta0, frac, eps, verbose, qp_solver, log_density, timer)
        )
    return LMMENPath(tuple(solutions))


# =====================================================================
# Helpers
# =====================================================================

def _as_design(data) -> LMMENDesign:
    if isinstance(data, LMMENDesign):
        return data
    if isinstance(data, pd.DataFrame):
        return LMMENDesign.from_dataframe(data)
    raise ValidationError(
        f"data: expected a pandas DataFrame or LMMENDesign, got {type(data).__name__}"
    )


def _check_warm_start(init_beta: ArrayLike, p: int) -> NDArray:
    beta0 = check_array(init_beta, 'init_beta').ravel()
    check_1d(beta0, 'init_beta')
    check_length(beta0, p, 'init_beta')
    check_finite(beta0, 'init_beta')
    return beta0.astype(np.float64)


def _starting_factor(q: int) -> tuple[NDArray, NDArray]:
    """λ⁰ and γ⁰ from the Cholesky factor of a regularised identity."""
    chol = np.linalg.cholesky((1.0 + EPS_TOL) * np.eye(q))
    lam0 = np.maximum(np.diag(chol), EPS_TOL)
    rows, cols = loading_indices(q)
    gamma0 = (np.diag(1.0 / lam0) @ chol)[rows, cols]
    return lam0, gamma0


def _fit(
    design: LMMENDesign,
    beta0: NDArray,
    frac: NDArray,
    eps: float,
    verbose: bool,
    qp_solver: QPSolver | None,
    log_density: LogDensity | None,
    timer: Timer,
) -> LMMENSolution:
    """Run the nested estimation loops and score the result."""
    if qp_solver is None:
        qp_solver = solve_qp
    if log_density is None:
        log_density = gaussian_log_density

    q = design.q

    with timer.section('optimization'):
        lam0, gamma = _starting_factor(q)
        bounds = translate_bounds(frac, beta0, lam0)
        beta, lam = beta0, lam0

        outer = ConvergenceController(eps, MAX_OUTER_ITER, name='outer')
        n_inner_total = 0
        inner_cap_hits = 0
        while outer.running:
            beta_entering = beta
            Gamma = gamma_matrix(gamma, q)

            inner = run_inner_loop(design, beta, lam, Gamma, bounds, eps, qp_solver)
            n_inner_total += inner.n_iter
            if not inner.converged:
                inner_cap_hits += 1

            beta, lam = inner.beta, inner.lam
            gamma = update_loadings(
                design, lam, inner.b_hat, inner.G_hat, inner.residual
            )

            # Only β is compared: λ and Γ may still move when this fires
            outer.update(beta_entering, beta)
            logger.debug(
                "outer iteration %d: %d inner iterations, max|dbeta|=%.3g",
                outer.n_iter, inner.n_iter, outer.last_change,
            )

    with timer.section('scoring'):
        Gamma = gamma_matrix(gamma, q)
        score = score_fit(design, beta, lam, Gamma, log_density)

    warn_list = []
    if inner_cap_hits:
        warn_list.append(
            f"inner loop reached {MAX_INNER_ITER} iterations without converging "
            f"in {inner_cap_hits} of {outer.n_iter} outer iterations"
        )
    if outer.exhausted:
        warn_list.append(outer.message())
    for msg in warn_list:
        logger.warning(msg)
        warnings.warn(msg, NonConvergenceWarning, stacklevel=3)

    timer.stop()

    params = LMMENParams(
        fixed=beta,
        fixed_names=design.fixed_names,
        stddev=score.stddev,
        lambda_=lam,
        gamma=Gamma,
        cov_re=score.cov_re,
        corr_re=score.corr_re,
        random_names=design.random_names,
        sigma_2=score.sigma_2,
        mean_est=score.mean_est,
        neg2_log_likelihood=score.neg2_log_likelihood,
        df=score.df,
        bic=score.bic,
        frac=frac,
        n_obs=design.n_obs,
        n_subjects=design.n_subjects,
        converged=outer.converged,
        inner_converged=inner.converged,
        n_outer_iter=outer.n_iter,
        n_inner_iter=n_inner_total,
        qp_solution=inner.qp_solution,
    )

    result = Result(
        params=params,
        info={
            'method': 'lmmen',
            'solver': inner.qp_solution.solver,
            'eps': eps,
            'converged': outer.converged,
            'inner_converged': inner.converged,
            'n_outer_iter': outer.n_iter,
            'n_inner_iter': n_inner_total,
            'final_beta_change': outer.last_change,
            'penalty_bounds': bounds,
        },
        timing=timer.result(),
        backend_name='cpu_lmmen',
        warnings=tuple(warn_list),
    )

    if verbose:
        bound = ','.join(f'{f:g}' for f in frac)
        print(f"Finished bound of ({bound}), BIC: {round(score.bic, ROUND_DIGITS)}")

    return LMMENSolution(_result=result)
