"""
Exception hierarchy for pylmmen.

All exceptions inherit from PyLmmenError so that any library-specific
failure can be caught in one place. Non-fatal conditions are reported
through warnings, never raised.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Configuration and rank problems are detected before any fitting
"""


class PyLmmenError(Exception):
    """Base exception for all pylmmen errors."""
    pass


class ValidationError(PyLmmenError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions, e.g. a warm
    start whose length differs from the number of fixed-effect columns.
    """
    pass


class ConfigurationError(ValidationError):
    """
    Fit configuration is unusable.

    Raised for a non-positive tolerance, a malformed penalty fraction
    vector, or an elastic-net mixing ratio outside (0, 1].
    """
    pass


class RankDeficiencyError(ValidationError):
    """
    A design matrix is not of full column rank.

    Attributes:
        matrix_name: Which design is deficient ('X' or 'Z')
        rank: Numerical rank found
        expected_rank: Number of columns (the required rank)
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        rank: int | None = None,
        expected_rank: int | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.rank = rank
        self.expected_rank = expected_rank


class NumericalError(PyLmmenError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during fitting,
    including a quadratic program that ends in a non-optimal state.

    Attributes:
        status: Solver status string, if the failure came from a solver
    """

    def __init__(self, message: str, status: str | None = None):
        super().__init__(message)
        self.status = status


class QPInfeasibleError(NumericalError):
    """
    The quadratic program has no feasible point.

    The constraint set of the penalised fit always contains the zero
    vector, so this signals corrupted bounds rather than a tight penalty.
    """
    pass


class NonConvergenceWarning(RuntimeWarning):
    """
    An iteration loop reached its cap before meeting the tolerance.

    The fit still completes with the last computed values; the condition is
    also recorded on the result.
    """
    pass
