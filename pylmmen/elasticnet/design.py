"""
Design validation for the LMM elastic net.

LMMENDesign validates and organizes the inputs of a fit: the response y,
the fixed-effects matrix X, the random-effects matrix Z (with the
intercept column prepended), the subject partition of the rows and the
block-diagonal random design built from it.

Input table convention: one column whose name starts with ``y`` (the
response), one or more columns starting with ``X`` (fixed covariates),
zero or more columns starting with ``Z`` (random covariates), and a
numeric index holding the subject label of every row. Rows of a subject
are contiguous and subjects appear in ascending label order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pylmmen.core.exceptions import ValidationError
from pylmmen.core.validation import (
    check_array,
    check_finite,
    check_1d,
    check_2d,
    check_consistent_length,
    check_column_rank,
)
from pylmmen.elasticnet._blocks import block_diagonal_design, subject_slices

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class LMMENDesign:
    """Validated design for an LMM elastic net fit.

    Attributes:
        y: Response vector (N,).
        X: Fixed effects design matrix (N, p).
        Z: Random effects design matrix (N, q); column 0 is the intercept.
        subject_sizes: Number of rows per subject, in row order (n,).
        Z_bd: Block-diagonal random design (N, n*q).
        W_bd: Z_bdᵀ Z_bd (n*q, n*q).
        fixed_names: Names of the X columns.
        random_names: Names of the Z columns, '(Intercept)' first.
        n_obs: N, total number of observations.
        n_subjects: n, number of subjects.
        p: Number of fixed effect columns.
        q: Number of random effect columns (intercept included).
    """
    y: NDArray
    X: NDArray
    Z: NDArray
    subject_sizes: NDArray
    Z_bd: NDArray
    W_bd: NDArray
    fixed_names: tuple[str, ...]
    random_names: tuple[str, ...]
    n_obs: int
    n_subjects: int
    p: int
    q: int

    @property
    def slices(self) -> tuple[slice, ...]:
        """Row slice of each subject."""
        return subject_slices(self.subject_sizes)

    @classmethod
    def from_dataframe(cls, df: 'pd.DataFrame') -> LMMENDesign:
        """Assemble a design from a prefix-tagged table.

        Args:
            df: DataFrame with ``y``/``X…``/``Z…`` columns and the subject
                label of each row as its index.

        Returns:
            Validated LMMENDesign.

        Raises:
            ValidationError: On a malformed table.
            RankDeficiencyError: If X or Z is not of full column rank.
        """
        columns = [str(c) for c in df.columns]

        y_cols = [c for c in columns if c.startswith('y')]
        if len(y_cols) != 1:
            raise ValidationError(
                f"Expected exactly one response column starting with 'y', "
                f"found {len(y_cols)}: {y_cols}"
            )
        x_cols = [c for c in columns if c.startswith('X')]
        z_cols = [c for c in columns if c.startswith('Z')]

        values = {str(c): df[c] for c in df.columns}
        Z0 = (np.column_stack([values[c].to_numpy() for c in z_cols])
              if z_cols else None)
        X = (np.column_stack([values[c].to_numpy() for c in x_cols])
             if x_cols else np.empty((len(df), 0)))

        return cls.from_arrays(
            values[y_cols[0]].to_numpy(),
            X,
            np.asarray(df.index),
            Z=Z0,
            fixed_names=x_cols,
            random_names=z_cols,
        )

    @classmethod
    def from_arrays(
        cls,
        y: ArrayLike,
        X: ArrayLike,
        subject: ArrayLike,
        *,
        Z: ArrayLike | None = None,
        fixed_names: list[str] | None = None,
        random_names: list[str] | None = None,
    ) -> LMMENDesign:
        """Assemble a design from arrays.

        Args:
            y: Response (N,).
            X: Fixed effects design (N, p), p >= 1.
            subject: Numeric subject label per row (N,), grouped and
                ascending.
            Z: Random covariates (N, q-1) without the intercept, or None
                for a random intercept only.
            fixed_names: Names for the X columns. Default X1..Xp.
            random_names: Names for the Z columns (without intercept).
                Default Z1..Z(q-1).

        Returns:
            Validated LMMENDesign.
        """
        y = check_array(y, 'y')
        if y.ndim == 2 and y.shape[1] == 1:
            y = y.ravel()
        check_1d(y, 'y')

        X = check_array(X, 'X')
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        check_2d(X, 'X')
        if X.shape[1] == 0:
            raise ValidationError("X: at least one fixed effect column (prefix 'X') required")

        n_obs = y.shape[0]
        if Z is None:
            Z0 = np.empty((n_obs, 0))
        else:
            Z0 = check_array(Z, 'Z')
            if Z0.ndim == 1:
                Z0 = Z0.reshape(-1, 1)
            check_2d(Z0, 'Z')

        try:
            subject = check_array(subject, 'subject')
        except ValidationError as e:
            raise ValidationError(
                f"subject labels (row identifiers) must be numeric: {e}"
            ) from e
        check_1d(subject, 'subject')

        check_consistent_length(y, X, Z0, subject, names=('y', 'X', 'Z', 'subject'))
        check_finite(y, 'y')
        check_finite(X, 'X')
        check_finite(Z0, 'Z')
        check_finite(subject, 'subject')

        if np.any(np.diff(subject) < 0):
            raise ValidationError(
                "subject: rows must be grouped by subject in ascending label order"
            )

        Z_full = np.column_stack([np.ones(n_obs), Z0])
        p = X.shape[1]
        q = Z_full.shape[1]

        check_column_rank(X, 'X')
        check_column_rank(Z_full, 'Z')

        _, sizes = np.unique(subject, return_counts=True)

        if fixed_names is None:
            fixed_names = [f'X{j + 1}' for j in range(p)]
        if random_names is None:
            random_names = [f'Z{j + 1}' for j in range(q - 1)]
        if len(fixed_names) != p or len(random_names) != q - 1:
            raise ValidationError(
                f"Column names do not match the designs: {len(fixed_names)} "
                f"fixed names for p={p}, {len(random_names)} random names "
                f"for {q - 1} random covariates"
            )

        Z_bd = block_diagonal_design(Z_full, sizes)

        return cls(
            y=y,
            X=X,
            Z=Z_full,
            subject_sizes=sizes,
            Z_bd=Z_bd,
            W_bd=Z_bd.T @ Z_bd,
            fixed_names=tuple(fixed_names),
            random_names=('(Intercept)',) + tuple(random_names),
            n_obs=n_obs,
            n_subjects=len(sizes),
            p=p,
            q=q,
        )
