"""Bridge sampling estimation of the log marginal likelihood.

This module provides the estimation pipeline:

- Transformation of bounded parameters to the real line
- Proposal fitting (multivariate normal or Student-t)
- Proposal draws and density evaluations at both sets of draws
- The iterative scheme for the optimal bridge function
- The top-level estimator combining these stages
"""

from .bridge_sampler import BridgeResult, WeightSample, run_bridge_sampler
from .config import BridgeMethod, BridgeSamplerConfig, ConvergenceCriterion
from .iterative import IterationStatus, run_iterative_scheme
from .proposal import Proposal, ProposalFamily, fit_proposal
from .samples import PosteriorSample
from .transforms import ParameterSet, ParameterSpec, TransformedDraw

__all__ = [
    "BridgeMethod",
    "BridgeResult",
    "BridgeSamplerConfig",
    "ConvergenceCriterion",
    "IterationStatus",
    "ParameterSet",
    "ParameterSpec",
    "PosteriorSample",
    "Proposal",
    "ProposalFamily",
    "TransformedDraw",
    "WeightSample",
    "fit_proposal",
    "run_bridge_sampler",
    "run_iterative_scheme",
]
