"""
pylmmen: penalised linear mixed models for Python.

Fits Gaussian linear mixed-effects models under an elastic-net penalty on
the fixed effects and on the scale of the random-effects covariance,
selecting fixed and random effects jointly in high-dimensional settings.

Submodules:
    elasticnet: LMM elastic net fitting, warm starts and example data
    core: Result envelope, exceptions, validation, numerical capabilities
"""

__version__ = "0.1.0"

from pylmmen import elasticnet
from pylmmen.elasticnet import lmmen, lmmen_path, init_beta, initialize_example

__all__ = [
    "__version__",
    "elasticnet",
    "lmmen",
    "lmmen_path",
    "init_beta",
    "initialize_example",
]
