"""
Warm starts for the fixed effects.

The penalised fit needs a starting β both as its first iterate and to set
the adaptive L1 weights 1/|β⁰|. Any finite vector of length p works; the
helpers here fit y on X ignoring the subject structure.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
import pandas as pd
import scipy.linalg as sla
from numpy.typing import NDArray

from pylmmen.core.validation import check_positive
from pylmmen.elasticnet.design import LMMENDesign

WarmStartMethod = Literal['lm', 'ridge']


def init_beta(
    data: 'pd.DataFrame | LMMENDesign',
    method: WarmStartMethod = 'lm',
    alpha: float = 1.0,
) -> NDArray:
    """Starting values for β.

    Args:
        data: Input table (see lmmen) or a prepared LMMENDesign.
        method: 'lm' for unpenalised least squares, 'ridge' for
            (XᵀX + αI)⁻¹Xᵀy.
        alpha: Ridge penalty, used only with method='ridge'.

    Returns:
        β⁰ of length p.
    """
    design = data if isinstance(data, LMMENDesign) else LMMENDesign.from_dataframe(data)
    X, y = design.X, design.y

    if method == 'lm':
        beta, *_ = sla.lstsq(X, y)
    elif method == 'ridge':
        alpha = check_positive(alpha, 'alpha')
        beta = sla.solve(X.T @ X + alpha * np.eye(design.p), X.T @ y, assume_a='pos')
    else:
        raise ValueError(f"Unknown method: {method!r}. Use 'lm' or 'ridge'.")

    return np.asarray(beta, dtype=np.float64)
