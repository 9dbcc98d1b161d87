"""
LMM elastic net: joint selection of fixed and random effects.

Public API:
    lmmen()              — fit one penalised linear mixed model
    lmmen_path()         — fit a sequence of penalty fraction vectors
    init_beta()          — warm-start fixed effects
    initialize_example() — simulated example data
    LMMENDesign          — validated design
    LMMENSolution        — result wrapper for one fit
    LMMENPath            — ordered collection of fits
"""

from pylmmen.elasticnet.solvers import lmmen, lmmen_path
from pylmmen.elasticnet.design import LMMENDesign
from pylmmen.elasticnet.solution import LMMENSolution, LMMENPath
from pylmmen.elasticnet._common import LMMENParams
from pylmmen.elasticnet.warm_start import init_beta
from pylmmen.elasticnet.datasets import initialize_example

__all__ = [
    "lmmen",
    "lmmen_path",
    "init_beta",
    "initialize_example",
    "LMMENDesign",
    "LMMENSolution",
    "LMMENPath",
    "LMMENParams",
]
