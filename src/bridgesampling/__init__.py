"""bridgesampling: marginal likelihoods from posterior draws by bridge sampling.

bridgesampling estimates the log marginal likelihood (model evidence) of a
Bayesian model from the draws of any MCMC sampler and the model's
unnormalized log posterior. The package provides:

- Transformation of bounded parameters and proposal fitting
- The iterative bridge sampling scheme (normal and warp3 bridges)
- Approximate relative error of the estimate
- Bayes factors and posterior model probabilities

Examples
--------
Basic usage:

    >>> from bridgesampling import run_bridge_sampler, error_measures
    >>> result = run_bridge_sampler(
    ...     samples={"mu": mu_draws, "sigma": sigma_draws},
    ...     log_posterior=my_log_posterior,
    ...     data=my_data,
    ...     lower={"sigma": 0.0},
    ... )
    >>> result.log_marginal_likelihood
    >>> error_measures(result).percentage
"""

from .analysis import (
    BayesFactor,
    ErrorEstimate,
    bayes_factor,
    error_measures,
    posterior_model_probabilities,
)
from .bridge import (
    BridgeResult,
    BridgeSamplerConfig,
    ParameterSet,
    ParameterSpec,
    PosteriorSample,
    run_bridge_sampler,
)
from .utils.exceptions import (
    BridgeSamplingError,
    DegenerateProposalError,
    InputError,
    InvalidPriorError,
    IterationCancelledError,
    NumericalInstabilityError,
    OutOfBoundsError,
)

__all__ = [
    "BayesFactor",
    "BridgeResult",
    "BridgeSamplerConfig",
    "BridgeSamplingError",
    "DegenerateProposalError",
    "ErrorEstimate",
    "InputError",
    "InvalidPriorError",
    "IterationCancelledError",
    "NumericalInstabilityError",
    "OutOfBoundsError",
    "ParameterSet",
    "ParameterSpec",
    "PosteriorSample",
    "bayes_factor",
    "error_measures",
    "posterior_model_probabilities",
    "run_bridge_sampler",
]
